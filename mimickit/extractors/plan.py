"""Plan compilation stage."""

from __future__ import annotations

from ..extraction import ExtractionContract, ExtractionOutcome
from ..failsafe import build_plan_fallback
from ..models import (
    ArchitectureModel,
    ExecutablePlan,
    IntentSpecification,
    RepositorySnapshot,
    StructuredPlan,
    TechnologyFingerprint,
)
from ..prompting.builder import PromptBuilder
from ..prompting.render import PlanRenderer


class PlanCompiler:
    """Compiles artifacts into a structured plan plus its rendered prompt text."""

    def __init__(
        self,
        contract: ExtractionContract,
        builder: PromptBuilder | None = None,
        renderer: PlanRenderer | None = None,
    ) -> None:
        self.contract = contract
        self.builder = builder or PromptBuilder()
        self.renderer = renderer or PlanRenderer()

    def run(
        self,
        fingerprint: TechnologyFingerprint,
        architecture: ArchitectureModel,
        intent: IntentSpecification,
        snapshot: RepositorySnapshot,
        target_agent: str,
    ) -> ExtractionOutcome[StructuredPlan]:
        return self.contract.extract(
            self.builder.plan_prompt(fingerprint, architecture, intent, snapshot, target_agent),
            StructuredPlan,
            lambda: build_plan_fallback(fingerprint, architecture, intent, snapshot, target_agent),
            label="plan",
        )

    def compile(
        self,
        fingerprint: TechnologyFingerprint,
        architecture: ArchitectureModel,
        intent: IntentSpecification,
        snapshot: RepositorySnapshot,
        target_agent: str,
    ) -> ExecutablePlan:
        structured = self.run(fingerprint, architecture, intent, snapshot, target_agent).value
        return self.assemble(structured, target_agent)

    def assemble(self, structured: StructuredPlan, target_agent: str) -> ExecutablePlan:
        return ExecutablePlan(
            target_agent=target_agent,
            structured=structured,
            prompt=self.renderer.render(structured, target_agent),
        )
