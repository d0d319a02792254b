"""Pipeline orchestration for analyze, recompile and stack-swap flows."""

from __future__ import annotations

import logging
import shutil
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple
from uuid import uuid4

from .analyzers import StackDetector
from .config import LLMConfig, MimicKitConfig
from .extraction import ExtractionContract, TextRunner
from .extractors import ArchitectureExtractor, IntentExtractor, PlanCompiler
from .ingest import GitClient, GitHubIntake, RepositoryScanner
from .llm.runner import LLMRunner
from .logging import get_logger
from .models import (
    DEFAULT_TARGET_AGENT,
    SCAN_MODES,
    TARGET_AGENTS,
    IntentSpecification,
    LocalSource,
    RemoteSource,
    RepositorySnapshot,
    RunResult,
    Source,
    StageState,
    utc_timestamp,
)
from .prompting import PromptBuilder
from .stores import ArtifactWriter, JsonFileRunStore, RunStore, require_run
from .swap import StackSwapEngine, validate_swap_request

STAGE_LABELS: Dict[str, str] = {
    "fetch": "Repository fetch",
    "ingest": "Repository ingest",
    "intake": "Repo intake",
    "stack": "Stack detection",
    "architecture": "Architecture extraction",
    "intent": "Intent extraction",
    "plan": "Plan compilation",
}

_ANALYSIS_STAGES = ("stack", "architecture", "intent", "plan")


def select_stages(source: Source, *, fetch_capable: bool) -> Tuple[str, ...]:
    """Decide once, up front, which stages a run will execute."""
    if isinstance(source, LocalSource):
        return ("ingest", *_ANALYSIS_STAGES)
    if fetch_capable:
        return ("fetch", "ingest", *_ANALYSIS_STAGES)
    return ("intake", *_ANALYSIS_STAGES)


def new_run_id() -> str:
    return f"run_{int(time.time() * 1000)}_{uuid4().hex[:6]}"


class StageTracker:
    """Records pending/running/done/error transitions for an ordered stage list."""

    def __init__(
        self,
        stage_ids: Sequence[str],
        *,
        clock: Callable[[], str] = utc_timestamp,
        logger: logging.Logger | None = None,
    ) -> None:
        self.stages = [StageState(id=stage_id, label=STAGE_LABELS[stage_id]) for stage_id in stage_ids]
        self._clock = clock
        self.logger = logger or get_logger("orchestrator")

    @property
    def ids(self) -> List[str]:
        return [stage.id for stage in self.stages]

    def get(self, stage_id: str) -> StageState:
        for stage in self.stages:
            if stage.id == stage_id:
                return stage
        raise KeyError(stage_id)

    @contextmanager
    def stage(self, stage_id: str) -> Iterator[StageState]:
        state = self.get(stage_id)
        state.status = "running"
        state.started_at = self._clock()
        self.logger.info("Stage %s started", stage_id)
        try:
            yield state
        except Exception as exc:
            state.status = "error"
            state.finished_at = self._clock()
            state.error = str(exc) or exc.__class__.__name__
            if self.logger.isEnabledFor(logging.DEBUG):
                self.logger.exception("Stage %s failed: %s", stage_id, exc)
            else:
                self.logger.error("Stage %s failed: %s", stage_id, exc)
            raise
        state.status = "done"
        state.finished_at = self._clock()
        self.logger.info("Stage %s finished", stage_id)

    def snapshot(self) -> List[StageState]:
        return [stage.model_copy() for stage in self.stages]


class Orchestrator:
    """Sequences ingestion and extraction stages and owns the run store."""

    def __init__(
        self,
        config: MimicKitConfig | None = None,
        *,
        store: RunStore | None = None,
        artifacts: ArtifactWriter | None = None,
        contract: ExtractionContract | None = None,
        llm_runner: TextRunner | None = None,
        scanner: RepositoryScanner | None = None,
        git: GitClient | None = None,
        intake: GitHubIntake | None = None,
        detector: StackDetector | None = None,
        prompt_builder: PromptBuilder | None = None,
        clock: Callable[[], str] = utc_timestamp,
        id_factory: Callable[[], str] = new_run_id,
    ) -> None:
        self.config = config or MimicKitConfig(root=Path.cwd())
        self.logger = get_logger("orchestrator")
        self._clock = clock
        self._id_factory = id_factory

        runs = self.config.runs
        self.store: RunStore = store or JsonFileRunStore(runs.store_path, max_runs=runs.max_runs)
        self.artifacts = artifacts or ArtifactWriter(runs.root)

        limits = self.config.limits
        self.git = git or GitClient()
        self.scanner = scanner or RepositoryScanner(limits, git=self.git, clock=clock)
        self.intake = intake or GitHubIntake(
            limits,
            api_base=self.config.ingest.api_base,
            token=self.config.ingest.github_token,
            clock=clock,
        )
        self.detector = detector or StackDetector()

        if contract is None:
            llm_cfg = self.config.llm or LLMConfig()
            retries = llm_cfg.max_retries if llm_cfg.max_retries is not None else 2
            contract = ExtractionContract(self._resolve_llm_runner(llm_runner), max_retries=retries)
        self.contract = contract

        builder = prompt_builder or PromptBuilder()
        self.architecture_extractor = ArchitectureExtractor(self.contract, builder)
        self.intent_extractor = IntentExtractor(self.contract, builder)
        self.plan_compiler = PlanCompiler(self.contract, builder)
        self.swap_engine = StackSwapEngine(self.intent_extractor, self.plan_compiler)

    # ------------------------------------------------------------------
    # Public API

    def run(
        self,
        source: Source,
        scan_mode: str = "quick",
        *,
        target_agent: str = DEFAULT_TARGET_AGENT,
    ) -> RunResult:
        """Execute every stage in order and persist the resulting run.

        Any stage failure is recorded on the stage and re-raised; no partial
        run is returned or stored.
        """
        if scan_mode not in SCAN_MODES:
            raise ValueError(f"Unknown scan mode '{scan_mode}'")
        if target_agent not in TARGET_AGENTS:
            raise ValueError(f"Unknown target agent '{target_agent}'")

        run_id = self._id_factory()
        fetch_capable = isinstance(source, RemoteSource) and self.git.is_available()
        tracker = StageTracker(
            select_stages(source, fetch_capable=fetch_capable),
            clock=self._clock,
            logger=self.logger,
        )
        self.logger.info("Starting run %s with stages %s", run_id, ", ".join(tracker.ids))

        snapshot = self._acquire_snapshot(source, scan_mode, run_id, tracker)

        with tracker.stage("stack"):
            fingerprint = self.detector.detect(snapshot)
        with tracker.stage("architecture"):
            architecture = self.architecture_extractor.extract(snapshot, fingerprint)
        with tracker.stage("intent"):
            intent = self.intent_extractor.extract(snapshot, architecture)
        with tracker.stage("plan"):
            plan = self.plan_compiler.compile(
                fingerprint, architecture, intent, snapshot, target_agent
            )

        result = RunResult(
            id=run_id,
            created_at=self._clock(),
            snapshot=snapshot,
            fingerprint=fingerprint,
            architecture=architecture,
            intent=intent,
            plan=plan,
            stages=tracker.snapshot(),
        )
        self._persist(result)
        self.logger.info("Run %s complete", run_id)
        return result

    def recompile(
        self,
        run_id: str,
        intent: IntentSpecification | Mapping[str, Any],
        target_agent: Optional[str] = None,
    ) -> RunResult:
        """Rebuild the plan from an edited intent; snapshot, stack and architecture carry over."""
        if target_agent is not None and target_agent not in TARGET_AGENTS:
            raise ValueError(f"Unknown target agent '{target_agent}'")
        if not isinstance(intent, IntentSpecification):
            intent = IntentSpecification.model_validate(intent)
        prior = require_run(self.store, run_id)
        agent = target_agent or prior.plan.target_agent

        self.logger.info("Recompiling plan for run %s (%s)", run_id, agent)
        plan = self.plan_compiler.compile(
            prior.fingerprint, prior.architecture, intent, prior.snapshot, agent
        )
        result = prior.model_copy(update={"intent": intent, "plan": plan})
        self._persist(result)
        return result

    def swap(
        self,
        run_id: str,
        category: str,
        current: str,
        replacement: str,
        target_agent: Optional[str] = None,
    ) -> RunResult:
        """Apply a stack swap to a stored run and persist the rewritten result."""
        validate_swap_request(category, current, replacement, target_agent)
        prior = require_run(self.store, run_id)
        result = self.swap_engine.swap(prior, category, current, replacement, target_agent)
        self._persist(result)
        return result

    def get_run(self, run_id: str) -> RunResult:
        return require_run(self.store, run_id)

    def list_runs(self) -> List[RunResult]:
        return self.store.list()

    # ------------------------------------------------------------------
    # Helpers

    def _acquire_snapshot(
        self, source: Source, scan_mode: str, run_id: str, tracker: StageTracker
    ) -> RepositorySnapshot:
        if isinstance(source, LocalSource):
            with tracker.stage("ingest"):
                return self.scanner.scan(source.path, scan_mode, ref=source.ref)

        if "intake" in tracker.ids:
            with tracker.stage("intake"):
                return self.intake.build_snapshot(
                    source.url, source.ref, scan_mode, token=source.github_token
                )

        workspace = self.config.runs.root / run_id / "workspace"
        try:
            with tracker.stage("fetch"):
                fetched = self.git.fetch(
                    source.url,
                    workspace,
                    ref=source.ref,
                    depth=self.config.ingest.clone_depth,
                )
            with tracker.stage("ingest"):
                repo, languages = self.intake.describe(
                    source.url, fetched.ref, token=source.github_token
                )
                return self.scanner.scan(
                    fetched.workspace,
                    scan_mode,
                    ref=fetched.ref,
                    repo=repo,
                    languages=languages,
                )
        finally:
            if self.config.ingest.cleanup_workspace and workspace.exists():
                self.logger.debug("Removing workspace %s", workspace)
                shutil.rmtree(workspace, ignore_errors=True)

    def _persist(self, run: RunResult) -> None:
        self.store.put(run)
        try:
            target = self.artifacts.write(run)
        except OSError as exc:
            self.logger.warning("Failed to write artifacts for run %s: %s", run.id, exc)
            return
        self.logger.debug("Artifacts for run %s written to %s", run.id, target)

    def _resolve_llm_runner(self, llm_runner: TextRunner | None) -> TextRunner | None:
        if llm_runner is not None:
            return llm_runner

        llm_cfg = self.config.llm or LLMConfig()
        kwargs: Dict[str, Any] = {}
        if llm_cfg.base_url:
            kwargs["base_url"] = llm_cfg.base_url
        if llm_cfg.api_key:
            kwargs["api_key"] = llm_cfg.api_key
        if llm_cfg.temperature is not None:
            kwargs["temperature"] = llm_cfg.temperature
        if llm_cfg.request_timeout is not None:
            kwargs["request_timeout"] = llm_cfg.request_timeout
        runner = LLMRunner(
            llm_cfg.model,
            provider=llm_cfg.provider,
            max_tokens=llm_cfg.max_tokens,
            **kwargs,
        )
        if not runner.configured:
            self.logger.debug(
                "No generation service configured; using deterministic generation mode."
            )
            return None
        return runner


__all__ = ["Orchestrator", "STAGE_LABELS", "StageTracker", "new_run_id", "select_stages"]
