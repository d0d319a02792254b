"""Declarative repair rules for near-valid generation output."""

from __future__ import annotations

from dataclasses import dataclass
from fnmatch import fnmatchcase
from typing import Any, Callable, Iterable, Tuple


@dataclass(frozen=True)
class DriftRule:
    """Coerce values found at dotted paths matching ``pattern``.

    Paths are built from mapping keys joined with dots; list positions appear
    as ``[]`` so ``edges[].type`` addresses the type of every edge.
    """

    pattern: str
    coercion: Callable[[Any], Any]
    description: str = ""

    def matches(self, path: str) -> bool:
        return fnmatchcase(path, self.pattern)


def unwrap_singleton(value: Any) -> Any:
    """Return the only element of a one-item list, otherwise the value unchanged."""
    if isinstance(value, list) and len(value) == 1:
        return value[0]
    return value


def lowercase_token(value: Any) -> Any:
    value = unwrap_singleton(value)
    if isinstance(value, str):
        return value.strip().lower()
    return value


DRIFT_RULES: Tuple[DriftRule, ...] = (
    DriftRule("*[].type", lowercase_token, "relation type as list or mixed case"),
    DriftRule("*[].from", unwrap_singleton, "relation source as single-element list"),
    DriftRule("*[].to", unwrap_singleton, "relation target as single-element list"),
)


def repair(value: Any, rules: Iterable[DriftRule] = DRIFT_RULES) -> Any:
    """Return a repaired copy of ``value``; the input is left untouched."""
    return _walk(value, "", tuple(rules))


def _walk(value: Any, path: str, rules: Tuple[DriftRule, ...]) -> Any:
    if isinstance(value, dict):
        repaired = {}
        for key, child in value.items():
            child_path = f"{path}.{key}" if path else str(key)
            child = _walk(child, child_path, rules)
            for rule in rules:
                if rule.matches(child_path):
                    child = rule.coercion(child)
            repaired[key] = child
        return repaired
    if isinstance(value, list):
        return [_walk(item, f"{path}[]", rules) for item in value]
    return value


__all__ = ["DRIFT_RULES", "DriftRule", "lowercase_token", "repair", "unwrap_singleton"]
