"""Writes per-run artifacts (run record and rendered plan) to disk."""

from __future__ import annotations

from pathlib import Path

from ..models import RunResult
from .run_store import write_json_atomic, write_text_atomic


class ArtifactWriter:
    """Lays out ``<root>/<run_id>/artifacts/{run.json,plan.md}``."""

    RUN_FILENAME = "run.json"
    PLAN_FILENAME = "plan.md"

    def __init__(self, root: Path) -> None:
        self.root = root

    def directory(self, run_id: str) -> Path:
        return self.root / run_id / "artifacts"

    def write(self, run: RunResult) -> Path:
        target = self.directory(run.id)
        write_json_atomic(target / self.RUN_FILENAME, run.to_dict())
        write_text_atomic(target / self.PLAN_FILENAME, run.plan.prompt)
        return target
