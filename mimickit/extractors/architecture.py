"""Architecture extraction stage."""

from __future__ import annotations

from ..extraction import ExtractionContract, ExtractionOutcome
from ..failsafe import build_architecture_fallback
from ..models import MODEL_VERSION, ArchitectureModel, RepositorySnapshot, TechnologyFingerprint
from ..prompting.builder import PromptBuilder


class ArchitectureExtractor:
    """Turns a snapshot and fingerprint into a component/edge graph."""

    def __init__(self, contract: ExtractionContract, builder: PromptBuilder | None = None) -> None:
        self.contract = contract
        self.builder = builder or PromptBuilder()

    def run(
        self, snapshot: RepositorySnapshot, fingerprint: TechnologyFingerprint
    ) -> ExtractionOutcome[ArchitectureModel]:
        outcome = self.contract.extract(
            self.builder.architecture_prompt(snapshot, fingerprint),
            ArchitectureModel,
            lambda: build_architecture_fallback(snapshot, fingerprint),
            label="architecture",
        )
        outcome.value = outcome.value.model_copy(update={"version": MODEL_VERSION})
        return outcome

    def extract(
        self, snapshot: RepositorySnapshot, fingerprint: TechnologyFingerprint
    ) -> ArchitectureModel:
        return self.run(snapshot, fingerprint).value
