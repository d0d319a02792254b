"""Deterministic technology fingerprinting from a repository snapshot."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .base import ManifestAnalyzer
from .manifests import builtin_analyzers
from ..logging import get_logger
from ..models import (
    STACK_CATEGORIES,
    Finding,
    RepositorySnapshot,
    StackItem,
    TechnologyFingerprint,
)

LANGUAGE_BOOST = 0.16
MAX_LANGUAGE_FINDINGS = 3


@dataclass(frozen=True)
class ConfidencePolicy:
    """Tunable arithmetic used when merging findings."""

    seed_base: float = 0.45
    per_count: float = 0.15
    repeat_bonus: float = 0.10
    floor: float = 0.35
    ceiling: float = 0.99
    low_threshold: float = 0.55

    def seed(self, boost: float, count: int = 1) -> float:
        raw = self.seed_base + self.per_count * count + boost
        return round(max(self.floor, min(self.ceiling, raw)), 2)

    def bump(self, confidence: float) -> float:
        return min(self.ceiling, round(confidence + self.repeat_bonus, 2))

    def is_low(self, confidence: float) -> bool:
        return confidence <= self.low_threshold


def language_findings(snapshot: RepositorySnapshot) -> List[Finding]:
    findings = []
    for language in snapshot.languages[:MAX_LANGUAGE_FINDINGS]:
        pct = f"{round(language.share * 100, 2):g}"
        findings.append(
            Finding(
                category="language",
                name=language.name,
                evidence=f"language breakdown ({pct}% share)",
                boost=LANGUAGE_BOOST,
            )
        )
    return findings


def merge_findings(
    findings: Iterable[Finding], policy: ConfidencePolicy | None = None
) -> Dict[str, List[StackItem]]:
    """Group findings by (category, case-insensitive name) and score each group."""
    policy = policy or ConfidencePolicy()
    grouped: Dict[Tuple[str, str], StackItem] = {}
    for finding in findings:
        key = (finding.category, finding.name.lower())
        existing = grouped.get(key)
        if existing is None:
            grouped[key] = StackItem(
                category=finding.category,
                name=finding.name,
                version=finding.version,
                confidence=policy.seed(finding.boost),
                evidence=[finding.evidence],
            )
            continue
        existing.evidence.append(finding.evidence)
        existing.confidence = policy.bump(existing.confidence)
        if not existing.version and finding.version:
            existing.version = finding.version

    buckets: Dict[str, List[StackItem]] = {category: [] for category in STACK_CATEGORIES}
    for item in grouped.values():
        buckets[item.category].append(item)
    for items in buckets.values():
        items.sort(key=lambda item: item.confidence, reverse=True)
    return buckets


class StackDetector:
    """Pure snapshot-to-fingerprint classifier. Never performs I/O."""

    def __init__(
        self,
        analyzers: Optional[Sequence[ManifestAnalyzer]] = None,
        *,
        policy: ConfidencePolicy | None = None,
    ) -> None:
        self.analyzers = list(analyzers) if analyzers is not None else builtin_analyzers()
        self.policy = policy or ConfidencePolicy()
        self.logger = get_logger("analyzers.stack")

    def collect(self, snapshot: RepositorySnapshot) -> List[Finding]:
        findings: List[Finding] = []
        for file in snapshot.files:
            for analyzer in self.analyzers:
                if analyzer.supports(file.path):
                    findings.extend(analyzer.analyze(file.content, file.path))
                    break
        findings.extend(language_findings(snapshot))
        return findings

    def detect(self, snapshot: RepositorySnapshot) -> TechnologyFingerprint:
        findings = self.collect(snapshot)
        buckets = merge_findings(findings, self.policy)
        low = [
            f"{category}:{item.name}"
            for category in STACK_CATEGORIES
            for item in buckets[category]
            if self.policy.is_low(item.confidence)
        ]
        self.logger.debug("Merged %d finding(s) into %d item(s)", len(findings), sum(map(len, buckets.values())))
        return TechnologyFingerprint(
            frontend=buckets["frontend"],
            backend=buckets["backend"],
            data_store=buckets["data-store"],
            auth=buckets["auth"],
            infrastructure=buckets["infrastructure"],
            language=buckets["language"],
            low_confidence_findings=low,
        )


def detect_stack(snapshot: RepositorySnapshot) -> TechnologyFingerprint:
    """Detect the technology fingerprint with the built-in rules and default policy."""
    return StackDetector().detect(snapshot)


__all__ = [
    "ConfidencePolicy",
    "StackDetector",
    "detect_stack",
    "language_findings",
    "merge_findings",
]
