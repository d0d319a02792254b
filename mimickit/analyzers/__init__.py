"""Stack detection: manifest analyzers, merge policy and the detector."""

from __future__ import annotations

from .base import ManifestAnalyzer
from .manifests import builtin_analyzers
from .stack import ConfidencePolicy, StackDetector, detect_stack, merge_findings

__all__ = [
    "ConfidencePolicy",
    "ManifestAnalyzer",
    "StackDetector",
    "builtin_analyzers",
    "detect_stack",
    "merge_findings",
]
