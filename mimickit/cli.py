"""CLI entrypoints for mimickit commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

import yaml

from .config import ConfigError, load_config
from .logging import configure_logging
from .models import DEFAULT_TARGET_AGENT, SCAN_MODES, TARGET_AGENTS, LocalSource, RemoteSource, RunResult
from .orchestrator import Orchestrator
from .stores import UnknownRunError


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_target_agent_option(parser: argparse.ArgumentParser, *, default: str | None) -> None:
    parser.add_argument(
        "--target-agent",
        choices=TARGET_AGENTS,
        default=default,
        help="Coding agent the compiled plan is written for.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mimickit",
        description="Turn a repository into a stack fingerprint, architecture, intent and build plan.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to .mimickit.yml or the directory containing it (defaults to cwd).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser("analyze", help="Run the full pipeline on a repository.")
    _add_verbose_option(analyze_parser, suppress_default=True)
    source = analyze_parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--repo", metavar="PATH", help="Local repository path.")
    source.add_argument("--github", metavar="URL", help="Public repository URL.")
    analyze_parser.add_argument("--ref", default=None, help="Branch or ref to analyze.")
    analyze_parser.add_argument("--scan-mode", choices=SCAN_MODES, default="quick")
    _add_target_agent_option(analyze_parser, default=DEFAULT_TARGET_AGENT)

    swap_parser = subparsers.add_parser("swap", help="Swap one technology in a stored run.")
    _add_verbose_option(swap_parser, suppress_default=True)
    swap_parser.add_argument("run_id", metavar="RUN_ID")
    swap_parser.add_argument("--category", required=True)
    swap_parser.add_argument("--current", required=True)
    swap_parser.add_argument("--replacement", required=True)
    _add_target_agent_option(swap_parser, default=None)

    recompile_parser = subparsers.add_parser(
        "recompile", help="Recompile a stored run's plan from an edited intent file."
    )
    _add_verbose_option(recompile_parser, suppress_default=True)
    recompile_parser.add_argument("run_id", metavar="RUN_ID")
    recompile_parser.add_argument(
        "--intent",
        type=Path,
        required=True,
        help="JSON or YAML file containing the edited intent specification.",
    )
    _add_target_agent_option(recompile_parser, default=None)

    runs_parser = subparsers.add_parser("runs", help="List stored runs or show one run.")
    _add_verbose_option(runs_parser, suppress_default=True)
    runs_parser.add_argument("run_id", metavar="RUN_ID", nargs="?", default=None)

    serve_parser = subparsers.add_parser("serve", help="Start the HTTP service.")
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def _create_orchestrator(config_path: Path | None) -> Orchestrator:
    return Orchestrator(load_config(config_path))


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for mimickit commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    if args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
        return

    try:
        orchestrator = _create_orchestrator(args.config)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    if args.command == "analyze":
        if args.repo:
            source = LocalSource(path=args.repo, ref=args.ref)
        else:
            source = RemoteSource(url=args.github, ref=args.ref)
        try:
            run = orchestrator.run(source, args.scan_mode, target_agent=args.target_agent)
        except (RuntimeError, ValueError) as exc:
            parser.exit(1, f"mimickit analyze failed: {exc}\nRun with --verbose for more details.\n")
        _print_summary(orchestrator, run)
    elif args.command == "swap":
        try:
            run = orchestrator.swap(
                args.run_id, args.category, args.current, args.replacement, args.target_agent
            )
        except UnknownRunError as exc:
            parser.exit(1, f"{exc}\n")
        except ValueError as exc:
            parser.exit(1, f"mimickit swap rejected: {exc}\n")
        _print_summary(orchestrator, run)
    elif args.command == "recompile":
        try:
            intent = _load_intent(args.intent)
            run = orchestrator.recompile(args.run_id, intent, args.target_agent)
        except UnknownRunError as exc:
            parser.exit(1, f"{exc}\n")
        except (OSError, ValueError, yaml.YAMLError) as exc:
            parser.exit(1, f"mimickit recompile failed: {exc}\n")
        _print_summary(orchestrator, run)
    elif args.command == "runs":
        if args.run_id:
            try:
                run = orchestrator.get_run(args.run_id)
            except UnknownRunError as exc:
                parser.exit(1, f"{exc}\n")
            print(json.dumps(run.to_dict(), indent=2))
        else:
            for run in orchestrator.list_runs():
                print(f"{run.id}\t{run.created_at}\t{run.snapshot.repo.url}")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _load_intent(path: Path) -> dict:
    text = path.read_text(encoding="utf-8")
    data = yaml.safe_load(text) if path.suffix.lower() in {".yml", ".yaml"} else json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"{path.name} must contain an intent object")
    return data


def _print_summary(orchestrator: Orchestrator, run: RunResult) -> None:
    plan_path = orchestrator.artifacts.directory(run.id) / orchestrator.artifacts.PLAN_FILENAME
    print(f"Run {run.id} ({run.plan.target_agent})")
    print(f"Plan written to {_relativize(plan_path)}")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
