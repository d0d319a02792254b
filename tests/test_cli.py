"""CLI parser and command behaviour tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from mimickit import cli
from mimickit.cli import _build_parser
from mimickit.config import ConfigError, MimicKitConfig, RunsConfig
from mimickit.extraction import ExtractionContract
from mimickit.orchestrator import Orchestrator
from mimickit.stores import InMemoryRunStore
from tests._fixtures.repo_builder import RepoBuilder


@pytest.fixture
def orchestrator(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Orchestrator:
    config = MimicKitConfig(root=tmp_path, runs=RunsConfig(root=tmp_path / ".runs"))
    instance = Orchestrator(
        config,
        store=InMemoryRunStore(),
        contract=ExtractionContract(None),
        clock=lambda: "2025-01-01T00:00:00.000Z",
        id_factory=lambda: "run_cli",
    )
    monkeypatch.setattr(cli, "_create_orchestrator", lambda config_path: instance)
    return instance


@pytest.fixture
def local_repo(repo_builder: RepoBuilder) -> str:
    repo_builder.write(
        {
            "package.json": '{"dependencies": {"express": "4.18.2", "pg": "8.11.0"}}',
            "README.md": "# Ledger\n\nTracks invoices.\n",
        }
    )
    return str(repo_builder.path())


def test_cli_accepts_verbose_before_command() -> None:
    args = _build_parser().parse_args(["--verbose", "runs"])
    assert args.verbose is True
    assert args.command == "runs"


def test_cli_accepts_verbose_after_command() -> None:
    args = _build_parser().parse_args(["analyze", "--repo", ".", "--verbose"])
    assert args.verbose is True
    assert args.command == "analyze"


def test_analyze_defaults_and_exclusive_sources(capsys: pytest.CaptureFixture[str]) -> None:
    parser = _build_parser()

    args = parser.parse_args(["analyze", "--github", "https://github.com/acme/notes"])
    assert (args.scan_mode, args.target_agent, args.repo) == ("quick", "claude-code", None)

    with pytest.raises(SystemExit):
        parser.parse_args(["analyze", "--repo", ".", "--github", "https://github.com/acme/notes"])
    with pytest.raises(SystemExit):
        parser.parse_args(["analyze", "--repo", ".", "--target-agent", "copilot"])
    assert "invalid choice" in capsys.readouterr().err


def test_swap_and_serve_arguments() -> None:
    parser = _build_parser()

    swap = parser.parse_args(
        ["swap", "run_1", "--category", "db", "--current", "MongoDB", "--replacement", "PostgreSQL"]
    )
    serve = parser.parse_args(["serve"])

    assert (swap.run_id, swap.category, swap.target_agent) == ("run_1", "db", None)
    assert (serve.host, serve.port) == ("127.0.0.1", 8000)


def test_analyze_prints_summary(
    orchestrator: Orchestrator, local_repo: str, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(["analyze", "--repo", local_repo, "--target-agent", "codex"])

    out = capsys.readouterr().out
    assert "Run run_cli (codex)" in out
    assert "Plan written to " in out
    assert out.strip().endswith(str(Path(".runs") / "run_cli" / "artifacts" / "plan.md"))
    assert orchestrator.get_run("run_cli").fingerprint.backend[0].name == "Express"


def test_analyze_failure_exits_with_message(
    orchestrator: Orchestrator, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["analyze", "--repo", str(tmp_path / "missing")])

    assert excinfo.value.code == 1
    err = capsys.readouterr().err
    assert "mimickit analyze failed: Repository path not found" in err
    assert "--verbose" in err


def test_swap_command_rewrites_stored_run(
    orchestrator: Orchestrator, local_repo: str, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(["analyze", "--repo", local_repo])
    cli.main(
        [
            "swap",
            "run_cli",
            "--category",
            "backend",
            "--current",
            "Express",
            "--replacement",
            "Fastify",
        ]
    )

    assert orchestrator.get_run("run_cli").fingerprint.backend[0].name == "Fastify"
    assert capsys.readouterr().out.count("Run run_cli (claude-code)") == 2


def test_swap_command_reports_errors(
    orchestrator: Orchestrator, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit):
        cli.main(["swap", "run_x", "--category", "db", "--current", "A", "--replacement", "B"])
    assert "Run 'run_x' not found" in capsys.readouterr().err

    with pytest.raises(SystemExit):
        cli.main(["swap", "run_x", "--category", "queue", "--current", "A", "--replacement", "B"])
    assert "mimickit swap rejected: Unknown stack category 'queue'" in capsys.readouterr().err


def test_recompile_reads_yaml_intent(
    orchestrator: Orchestrator, local_repo: str, tmp_path: Path
) -> None:
    cli.main(["analyze", "--repo", local_repo])
    intent = orchestrator.get_run("run_cli").intent.to_dict()
    intent["system_purpose"] = "Tracks invoices and reminders."
    intent_file = tmp_path / "intent.yaml"
    intent_file.write_text(yaml.safe_dump(intent), encoding="utf-8")

    cli.main(["recompile", "run_cli", "--intent", str(intent_file), "--target-agent", "generic"])

    run = orchestrator.get_run("run_cli")
    assert run.plan.structured.system_overview == "Tracks invoices and reminders."
    assert run.plan.target_agent == "generic"


def test_recompile_rejects_non_object_intent(
    orchestrator: Orchestrator, local_repo: str, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(["analyze", "--repo", local_repo])
    intent_file = tmp_path / "intent.json"
    intent_file.write_text("[1, 2]", encoding="utf-8")

    with pytest.raises(SystemExit):
        cli.main(["recompile", "run_cli", "--intent", str(intent_file)])

    assert "intent.json must contain an intent object" in capsys.readouterr().err


def test_runs_lists_and_shows(
    orchestrator: Orchestrator, local_repo: str, capsys: pytest.CaptureFixture[str]
) -> None:
    cli.main(["analyze", "--repo", local_repo])
    capsys.readouterr()

    cli.main(["runs"])
    listing = capsys.readouterr().out.strip().split("\t")
    cli.main(["runs", "run_cli"])
    shown = json.loads(capsys.readouterr().out)

    assert listing[:2] == ["run_cli", "2025-01-01T00:00:00.000Z"]
    assert listing[2].startswith("file://")
    assert shown["id"] == "run_cli"


def test_config_errors_exit(monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]) -> None:
    def broken(config_path: Path | None) -> Orchestrator:
        raise ConfigError(".mimickit.yml must contain a mapping at the root")

    monkeypatch.setattr(cli, "_create_orchestrator", broken)

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["runs"])

    assert excinfo.value.code == 1
    assert "must contain a mapping" in capsys.readouterr().err
