"""Complete run records assembled from deterministic fallbacks."""

from __future__ import annotations

from mimickit.analyzers import detect_stack
from mimickit.extraction import ExtractionContract
from mimickit.extractors import PlanCompiler
from mimickit.failsafe import build_architecture_fallback, build_intent_fallback
from mimickit.models import RepositorySnapshot, RunResult, StageState


def make_run(
    snapshot: RepositorySnapshot,
    *,
    run_id: str = "run_1",
    target_agent: str = "claude-code",
    created_at: str = "2025-01-01T00:00:00.000Z",
) -> RunResult:
    fingerprint = detect_stack(snapshot)
    architecture = build_architecture_fallback(snapshot, fingerprint)
    intent = build_intent_fallback(snapshot, architecture)
    plan = PlanCompiler(ExtractionContract(None)).compile(
        fingerprint, architecture, intent, snapshot, target_agent
    )
    return RunResult(
        id=run_id,
        created_at=created_at,
        snapshot=snapshot,
        fingerprint=fingerprint,
        architecture=architecture,
        intent=intent,
        plan=plan,
        stages=[StageState(id="ingest", label="Repository ingest", status="done")],
    )


__all__ = ["make_run"]
