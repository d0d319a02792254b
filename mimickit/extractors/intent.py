"""Intent extraction stage and its swap-scoped rewrite."""

from __future__ import annotations

from ..extraction import ExtractionContract, ExtractionOutcome
from ..failsafe import build_intent_fallback, build_swap_intent_fallback
from ..models import (
    MODEL_VERSION,
    ArchitectureModel,
    IntentSpecification,
    RepositorySnapshot,
    SwapDescriptor,
)
from ..prompting.builder import PromptBuilder


class IntentExtractor:
    """Derives the behavioural intent of the analysed repository."""

    def __init__(self, contract: ExtractionContract, builder: PromptBuilder | None = None) -> None:
        self.contract = contract
        self.builder = builder or PromptBuilder()

    def run(
        self, snapshot: RepositorySnapshot, architecture: ArchitectureModel
    ) -> ExtractionOutcome[IntentSpecification]:
        outcome = self.contract.extract(
            self.builder.intent_prompt(snapshot, architecture),
            IntentSpecification,
            lambda: build_intent_fallback(snapshot, architecture),
            label="intent",
        )
        return _stamp(outcome)

    def extract(
        self, snapshot: RepositorySnapshot, architecture: ArchitectureModel
    ) -> IntentSpecification:
        return self.run(snapshot, architecture).value

    def rewrite_for_swap(
        self,
        snapshot: RepositorySnapshot,
        architecture: ArchitectureModel,
        previous: IntentSpecification,
        descriptor: SwapDescriptor,
    ) -> ExtractionOutcome[IntentSpecification]:
        """Rewrite only the parts of ``previous`` affected by the swap."""
        outcome = self.contract.extract(
            self.builder.swap_intent_prompt(snapshot, architecture, previous, descriptor),
            IntentSpecification,
            lambda: build_swap_intent_fallback(previous, descriptor),
            label="swap-intent",
        )
        return _stamp(outcome)


def _stamp(outcome: ExtractionOutcome[IntentSpecification]) -> ExtractionOutcome[IntentSpecification]:
    outcome.value = outcome.value.model_copy(update={"version": MODEL_VERSION})
    return outcome
