"""Renders a structured plan into the plain-text prompt handed to coding agents."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Sequence

from jinja2 import Environment, FileSystemLoader

from ..models import StructuredPlan
from .constants import PLAN_SECTION_TITLES, PLAN_SECTIONS

_TEMPLATE_NAME = "plan.txt.j2"


def numbered(items: Sequence[str]) -> str:
    return "\n".join(f"{index}. {item}" for index, item in enumerate(items, start=1))


class PlanRenderer:
    """Pure function of a ``StructuredPlan``: identical input renders identical text."""

    def __init__(self, templates_dir: Path | None = None) -> None:
        self.templates_dir = templates_dir or Path(__file__).with_name("templates")
        self._env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def sections(self, structured: StructuredPlan) -> List[Dict[str, str]]:
        rendered: List[Dict[str, str]] = []
        for index, name in enumerate(PLAN_SECTIONS, start=1):
            value = getattr(structured, name)
            body = value if isinstance(value, str) else numbered(value)
            rendered.append({"heading": f"{index}. {PLAN_SECTION_TITLES[name]}", "body": body})
        return rendered

    def render(self, structured: StructuredPlan, target_agent: str) -> str:
        template = self._env.get_template(_TEMPLATE_NAME)
        return template.render(target_agent=target_agent, sections=self.sections(structured))


_DEFAULT_RENDERER: PlanRenderer | None = None


def render_plan(structured: StructuredPlan, target_agent: str) -> str:
    """Render with the packaged template."""
    global _DEFAULT_RENDERER
    if _DEFAULT_RENDERER is None:
        _DEFAULT_RENDERER = PlanRenderer()
    return _DEFAULT_RENDERER.render(structured, target_agent)


__all__ = ["PlanRenderer", "numbered", "render_plan"]
