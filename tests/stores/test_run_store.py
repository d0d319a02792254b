"""Tests for run persistence backends."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from mimickit.models import RepositorySnapshot
from mimickit.stores import InMemoryRunStore, JsonFileRunStore, UnknownRunError, require_run
from tests._fixtures.runs import make_run


def test_in_memory_store_replaces_by_id(next_snapshot: RepositorySnapshot) -> None:
    store = InMemoryRunStore()
    first = make_run(next_snapshot, run_id="run_a", created_at="2025-01-01T00:00:00.000Z")
    second = make_run(next_snapshot, run_id="run_b", created_at="2025-01-02T00:00:00.000Z")

    store.put(first)
    store.put(second)
    store.put(first.model_copy(update={"created_at": "2025-01-03T00:00:00.000Z"}))

    assert [run.id for run in store.list()] == ["run_a", "run_b"]
    assert store.get("missing") is None


def test_json_store_round_trips_runs(tmp_path: Path, next_snapshot: RepositorySnapshot) -> None:
    path = tmp_path / ".runs" / "runs.json"
    run = make_run(next_snapshot)

    JsonFileRunStore(path).put(run)
    reloaded = JsonFileRunStore(path).get(run.id)

    assert reloaded == run
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["version"] == 1
    assert payload["runs"][0]["fingerprint"]["data-store"][0]["name"] == "MongoDB"
    assert not list(path.parent.glob("*.tmp"))


def test_json_store_keeps_newest_runs(tmp_path: Path, next_snapshot: RepositorySnapshot) -> None:
    store = JsonFileRunStore(tmp_path / "runs.json", max_runs=2)
    for day in (1, 3, 2):
        store.put(
            make_run(
                next_snapshot, run_id=f"run_{day}", created_at=f"2025-01-0{day}T00:00:00.000Z"
            )
        )

    assert [run.id for run in store.list()] == ["run_3", "run_2"]
    assert store.get("run_1") is None


def test_json_store_tolerates_corrupt_file(
    tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    path = tmp_path / "runs.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonFileRunStore(path)

    with caplog.at_level(logging.WARNING, logger="mimickit"):
        assert store.list() == []

    assert "Unable to read run store" in caplog.text


def test_json_store_skips_invalid_entries(
    tmp_path: Path, next_snapshot: RepositorySnapshot
) -> None:
    path = tmp_path / "runs.json"
    valid = make_run(next_snapshot).to_dict()
    path.write_text(
        json.dumps({"version": 1, "runs": [{"id": "broken"}, valid]}), encoding="utf-8"
    )

    assert [run.id for run in JsonFileRunStore(path).list()] == ["run_1"]


def test_require_run_raises_for_unknown_id() -> None:
    with pytest.raises(UnknownRunError) as excinfo:
        require_run(InMemoryRunStore(), "run_missing")

    assert str(excinfo.value) == "Run 'run_missing' not found"
    assert excinfo.value.run_id == "run_missing"
