"""Domain extractors built on the extraction contract."""

from .architecture import ArchitectureExtractor
from .intent import IntentExtractor
from .plan import PlanCompiler

__all__ = ["ArchitectureExtractor", "IntentExtractor", "PlanCompiler"]
