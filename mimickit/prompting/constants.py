"""Shared constants for extraction prompts and plan rendering."""

from __future__ import annotations

SYSTEM_PROMPT = (
    "You are a strict JSON API. Return only valid JSON. "
    "Do not include markdown fences, comments, or prose."
)

FILE_SAMPLE_CHARS = 4_000
ARCHITECTURE_SUMMARY_BUDGET = 40_000
INTENT_SUMMARY_BUDGET = 35_000
TREE_SAMPLE_SIZE = 200
ENTRY_OVERHEAD = 10

PLAN_SECTIONS: tuple[str, ...] = (
    "system_overview",
    "architecture_description",
    "module_list",
    "interfaces",
    "data_models",
    "behavior_rules",
    "build_steps",
    "test_expectations",
    "constraints",
    "non_goals",
)

PLAN_SECTION_TITLES: dict[str, str] = {
    "system_overview": "System overview",
    "architecture_description": "Architecture description",
    "module_list": "Module list",
    "interfaces": "Interfaces",
    "data_models": "Data models",
    "behavior_rules": "Behavior rules",
    "build_steps": "Build steps",
    "test_expectations": "Test expectations",
    "constraints": "Constraints",
    "non_goals": "Non goals",
}


__all__ = [
    "ARCHITECTURE_SUMMARY_BUDGET",
    "ENTRY_OVERHEAD",
    "FILE_SAMPLE_CHARS",
    "INTENT_SUMMARY_BUDGET",
    "PLAN_SECTIONS",
    "PLAN_SECTION_TITLES",
    "SYSTEM_PROMPT",
    "TREE_SAMPLE_SIZE",
]
