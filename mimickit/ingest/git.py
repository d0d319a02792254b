"""Shallow git fetches for remote repositories."""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Optional

from ..logging import get_logger
from .errors import IngestError

UNKNOWN_BRANCH = "unknown"


@dataclass(frozen=True)
class FetchResult:
    """Where a fetched repository landed and which revision it is at."""

    commit: str
    ref: str
    workspace: Path


class GitClient:
    """Thin wrapper over the git executable with an injectable command runner."""

    def __init__(self, runner: Callable[..., str] | None = None) -> None:
        self._runner = runner or self._default_runner
        self.logger = get_logger("ingest.git")

    def is_available(self) -> bool:
        """Return True when ``git --version`` succeeds."""
        try:
            self._run(["git", "--version"], cwd=None, capture_output=True)
        except (OSError, subprocess.CalledProcessError) as exc:
            self.logger.debug("git executable unavailable: %s", exc)
            return False
        return True

    def fetch(
        self,
        url: str,
        destination: Path,
        *,
        ref: Optional[str] = None,
        depth: int = 1,
    ) -> FetchResult:
        """Clone ``url`` into ``destination`` and report the checked-out revision."""
        destination.parent.mkdir(parents=True, exist_ok=True)
        clone_cmd = ["git", "clone", f"--depth={depth}", "--single-branch"]
        if ref:
            clone_cmd.extend(["--branch", ref])
        clone_cmd.extend([url, str(destination)])

        try:
            self._run(clone_cmd, cwd=destination.parent, capture_output=True)
            if ref:
                self._run(["git", "checkout", ref], cwd=destination, capture_output=True)
            commit = self._run(
                ["git", "rev-parse", "HEAD"], cwd=destination, capture_output=True
            ).strip()
            resolved_ref = ref or self._run(
                ["git", "rev-parse", "--abbrev-ref", "HEAD"],
                cwd=destination,
                capture_output=True,
            ).strip()
        except subprocess.CalledProcessError as exc:
            detail = (exc.stderr or "").strip() if isinstance(exc.stderr, str) else ""
            raise IngestError(f"git fetch of {url} failed: {detail or exc}") from exc
        except OSError as exc:
            raise IngestError(f"git fetch of {url} failed: {exc}") from exc

        if not commit:
            raise IngestError(f"Could not resolve commit SHA after cloning {url}")
        self.logger.info("Fetched %s at %s (%s)", url, resolved_ref, commit[:12])
        return FetchResult(commit=commit, ref=resolved_ref, workspace=destination)

    def current_branch(self, repo_path: Path) -> str:
        """Return the checked-out branch, or ``unknown`` outside a git work tree."""
        if not (repo_path / ".git").exists():
            return UNKNOWN_BRANCH
        try:
            branch = self._run(
                ["git", "rev-parse", "--abbrev-ref", "HEAD"],
                cwd=repo_path,
                capture_output=True,
            ).strip()
        except (OSError, subprocess.CalledProcessError) as exc:
            self.logger.debug("Could not read branch of %s: %s", repo_path, exc)
            return UNKNOWN_BRANCH
        return branch or UNKNOWN_BRANCH

    # ------------------------------------------------------------------
    # Helpers

    def _run(
        self,
        args: Iterable[str],
        *,
        cwd: Path | None,
        capture_output: bool = False,
    ) -> str:
        return self._runner(args, cwd=cwd, capture_output=capture_output)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path | None,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd) if cwd is not None else None,
            check=True,
            text=True,
            capture_output=capture_output,
        )
        if capture_output:
            return completed.stdout
        return ""


__all__ = ["FetchResult", "GitClient", "UNKNOWN_BRANCH"]
