"""Incremental artifact rewrite after substituting one technology for another."""

from __future__ import annotations

import unicodedata
from typing import Dict, List, Optional, Tuple

from .data.tech_registry import TECH_REGISTRY, lookup_technology
from .extractors import IntentExtractor, PlanCompiler
from .logging import get_logger
from .models import (
    TARGET_AGENTS,
    ArchitectureModel,
    RunResult,
    StackItem,
    SwapDescriptor,
    TechRegistry,
    TechnologyFingerprint,
    normalize_category,
)

MAX_REPLACEMENT_LENGTH = 80
SWAP_CONFIDENCE_PENALTY = 0.05
SWAP_CONFIDENCE_FLOOR = 0.55
INSERTED_CONFIDENCE = 0.58

ROLE_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "frontend": ("client",),
    "backend": ("api", "application"),
    "data-store": ("persist",),
    "auth": ("identity",),
    "infrastructure": ("runtime",),
}


class SwapError(ValueError):
    """Raised when a swap request is rejected before any artifact is touched."""


def validate_swap_request(
    category: str, current: str, replacement: str, target_agent: str | None = None
) -> Tuple[str, str, str]:
    """Return the canonical (category, current, replacement) or raise ``SwapError``."""
    canonical = normalize_category(category)
    if canonical is None:
        raise SwapError(f"Unknown stack category '{category}'")
    current = (current or "").strip()
    replacement = (replacement or "").strip()
    if not current:
        raise SwapError("Current technology name is required")
    if not replacement:
        raise SwapError("Replacement technology name is required")
    if len(replacement) > MAX_REPLACEMENT_LENGTH:
        raise SwapError(f"Replacement name exceeds {MAX_REPLACEMENT_LENGTH} characters")
    if any(unicodedata.category(char) == "Cc" for char in replacement):
        raise SwapError("Replacement name contains control characters")
    if replacement.lower() == current.lower():
        raise SwapError("Replacement must differ from the current technology")
    if target_agent is not None and target_agent not in TARGET_AGENTS:
        raise SwapError(f"Unknown target agent '{target_agent}'")
    return canonical, current, replacement


def swap_fingerprint(
    fingerprint: TechnologyFingerprint, category: str, current: str, replacement: str
) -> TechnologyFingerprint:
    updated = fingerprint.model_copy(deep=True)
    bucket = updated.bucket(category)
    lowered = current.lower()
    for index, item in enumerate(bucket):
        if item.name.lower() != lowered:
            continue
        bucket[index] = item.model_copy(
            update={
                "name": replacement,
                "confidence": max(
                    SWAP_CONFIDENCE_FLOOR, round(item.confidence - SWAP_CONFIDENCE_PENALTY, 2)
                ),
                "evidence": [*item.evidence, f"manual stack swap {current} -> {replacement}"],
            }
        )
        return updated
    bucket.insert(
        0,
        StackItem(
            category=category,
            name=replacement,
            confidence=INSERTED_CONFIDENCE,
            evidence=[f"manual stack swap inserted for {category}"],
        ),
    )
    return updated


def swap_architecture(
    architecture: ArchitectureModel, category: str, current: str, replacement: str
) -> ArchitectureModel:
    """Replace tech entries on components that use ``current`` or play the category's role."""
    updated = architecture.model_copy(deep=True)
    lowered = current.lower()
    keywords = ROLE_KEYWORDS.get(category, ())
    for component in updated.components:
        role = component.role.lower()
        touches_role = any(keyword in role for keyword in keywords)
        tech: List[str] = []
        for entry in component.tech:
            value = replacement if touches_role or entry.lower() == lowered else entry
            if value not in tech:
                tech.append(value)
        component.tech = tech
    return updated


class StackSwapEngine:
    """Rewrites fingerprint, architecture, intent and plan without re-reading the repository."""

    def __init__(
        self,
        intent_extractor: IntentExtractor,
        plan_compiler: PlanCompiler,
        *,
        registry: TechRegistry = TECH_REGISTRY,
    ) -> None:
        self.intent_extractor = intent_extractor
        self.plan_compiler = plan_compiler
        self.registry = registry
        self.logger = get_logger("swap")

    def descriptor(self, category: str, current: str, replacement: str) -> SwapDescriptor:
        entry = lookup_technology(current, self.registry)
        hints: Tuple[str, ...] = tuple(entry.transformation_hints) if entry else ()
        return SwapDescriptor(category=category, from_=current, to=replacement, hints=hints)

    def swap(
        self,
        prior: RunResult,
        category: str,
        current: str,
        replacement: str,
        target_agent: Optional[str] = None,
    ) -> RunResult:
        category, current, replacement = validate_swap_request(
            category, current, replacement, target_agent
        )
        agent = target_agent or prior.plan.target_agent
        self.logger.info("Swapping %s: %s -> %s for run %s", category, current, replacement, prior.id)

        fingerprint = swap_fingerprint(prior.fingerprint, category, current, replacement)
        architecture = swap_architecture(prior.architecture, category, current, replacement)
        descriptor = self.descriptor(category, current, replacement)
        intent = self.intent_extractor.rewrite_for_swap(
            prior.snapshot, architecture, prior.intent, descriptor
        ).value
        plan = self.plan_compiler.compile(fingerprint, architecture, intent, prior.snapshot, agent)

        return prior.model_copy(
            update={
                "fingerprint": fingerprint,
                "architecture": architecture,
                "intent": intent,
                "plan": plan,
            }
        )


__all__ = [
    "ROLE_KEYWORDS",
    "StackSwapEngine",
    "SwapError",
    "swap_architecture",
    "swap_fingerprint",
    "validate_swap_request",
]
