"""Run stores: where completed RunResults live between requests."""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from pydantic import ValidationError

from ..logging import get_logger
from ..models import RunResult

_STORE_VERSION = 1


class UnknownRunError(KeyError):
    """Raised when a run id is not present in the store."""

    def __init__(self, run_id: str) -> None:
        super().__init__(run_id)
        self.run_id = run_id

    def __str__(self) -> str:
        return f"Run '{self.run_id}' not found"


class RunStore(Protocol):
    def get(self, run_id: str) -> Optional[RunResult]: ...

    def put(self, run: RunResult) -> None: ...

    def list(self) -> List[RunResult]: ...


def require_run(store: RunStore, run_id: str) -> RunResult:
    run = store.get(run_id)
    if run is None:
        raise UnknownRunError(run_id)
    return run


def _newest_first(runs: List[RunResult]) -> List[RunResult]:
    return sorted(runs, key=lambda run: run.created_at, reverse=True)


class InMemoryRunStore:
    """Process-local store; writes to the same id replace the previous value."""

    def __init__(self) -> None:
        self._runs: Dict[str, RunResult] = {}
        self._lock = threading.Lock()

    def get(self, run_id: str) -> Optional[RunResult]:
        with self._lock:
            return self._runs.get(run_id)

    def put(self, run: RunResult) -> None:
        with self._lock:
            self._runs[run.id] = run

    def list(self) -> List[RunResult]:
        with self._lock:
            return _newest_first(list(self._runs.values()))


class JsonFileRunStore:
    """Single JSON file holding the most recent runs, re-read on every operation."""

    def __init__(self, path: Path, *, max_runs: int = 50) -> None:
        self._path = path
        self._max_runs = max_runs
        self._lock = threading.Lock()
        self.logger = get_logger("stores.runs")

    @property
    def path(self) -> Path:
        return self._path

    def get(self, run_id: str) -> Optional[RunResult]:
        with self._lock:
            return self._load().get(run_id)

    def put(self, run: RunResult) -> None:
        with self._lock:
            runs = self._load()
            runs[run.id] = run
            kept = _newest_first(list(runs.values()))[: self._max_runs]
            self._write(kept)

    def list(self) -> List[RunResult]:
        with self._lock:
            return _newest_first(list(self._load().values()))

    # ------------------------------------------------------------------
    # Internal helpers

    def _load(self) -> Dict[str, RunResult]:
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError) as exc:
            self.logger.warning("Unable to read run store %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict) or data.get("version") != _STORE_VERSION:
            self.logger.warning("Ignoring run store %s with unexpected layout", self._path)
            return {}
        entries = data.get("runs")
        if not isinstance(entries, list):
            return {}
        runs: Dict[str, RunResult] = {}
        for raw in entries:
            try:
                run = RunResult.model_validate(raw)
            except ValidationError as exc:
                self.logger.warning("Skipping invalid run entry: %s", exc.error_count())
                continue
            runs[run.id] = run
        return runs

    def _write(self, runs: List[RunResult]) -> None:
        payload = {"version": _STORE_VERSION, "runs": [run.to_dict() for run in runs]}
        write_json_atomic(self._path, payload)


def write_text_atomic(path: Path, text: str) -> None:
    """Write via a sibling temporary file and ``os.replace``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def write_json_atomic(path: Path, payload: object) -> None:
    write_text_atomic(path, json.dumps(payload, indent=2))


__all__ = [
    "InMemoryRunStore",
    "JsonFileRunStore",
    "RunStore",
    "UnknownRunError",
    "require_run",
    "write_json_atomic",
    "write_text_atomic",
]
