"""Prompt construction and plan rendering."""

from .builder import PromptBuilder, schema_as_json
from .constants import SYSTEM_PROMPT
from .render import PlanRenderer, render_plan

__all__ = ["PlanRenderer", "PromptBuilder", "SYSTEM_PROMPT", "render_plan", "schema_as_json"]
