"""Schema-validated extraction with drift repair and deterministic fallback."""

from .contract import ExtractionContract, ExtractionOutcome, TextRunner, recover_json_candidate
from .repair import DRIFT_RULES, DriftRule, repair

__all__ = [
    "DRIFT_RULES",
    "DriftRule",
    "ExtractionContract",
    "ExtractionOutcome",
    "TextRunner",
    "recover_json_candidate",
    "repair",
]
