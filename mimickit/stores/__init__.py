"""Run persistence backends and artifact output."""

from .artifacts import ArtifactWriter
from .run_store import InMemoryRunStore, JsonFileRunStore, RunStore, UnknownRunError, require_run

__all__ = [
    "ArtifactWriter",
    "InMemoryRunStore",
    "JsonFileRunStore",
    "RunStore",
    "UnknownRunError",
    "require_run",
]
