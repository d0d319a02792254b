"""Local repository walking that produces an immutable snapshot."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterator, List, Optional, Sequence

from ..config import LimitsConfig
from ..logging import get_logger
from ..models import (
    LanguageShare,
    RepoInfo,
    RepoTreeNode,
    RepositorySnapshot,
    SelectedFile,
    SnapshotMetadata,
    utc_timestamp,
)
from .errors import IngestError
from .git import GitClient
from .sanitize import estimate_tokens, is_binary_file, is_script_file, safe_snippet
from .selection import (
    SIZE_OMITTED_PLACEHOLDER,
    Candidate,
    extension_languages,
    language_breakdown,
    select_candidates,
)

_EXCLUDED_DIRS = {
    "node_modules",
    ".git",
    "dist",
    "build",
    "coverage",
    ".next",
    ".cache",
    ".venv",
    "venv",
    "__pycache__",
    ".pytest_cache",
    ".mypy_cache",
    ".runs",
}

_LOCKFILES = {"package-lock.json", "yarn.lock", "pnpm-lock.yaml"}


@dataclass(frozen=True)
class _Entry:
    rel_path: str
    abs_path: Path
    size: int
    is_dir: bool


def _is_lockfile(name: str) -> bool:
    return name.endswith(".lock") or name in _LOCKFILES


def _iter_entries(root: Path) -> Iterator[_Entry]:
    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

        # Symlinks can point outside the repository; neither listed nor read.
        dirnames[:] = sorted(
            name
            for name in dirnames
            if name not in _EXCLUDED_DIRS and not (current_dir / name).is_symlink()
        )
        for name in dirnames:
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            yield _Entry(rel_path, current_dir / name, 0, True)

        for filename in sorted(filenames):
            if _is_lockfile(filename):
                continue
            path = current_dir / filename
            if path.is_symlink() or not path.is_file():
                continue
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            yield _Entry(rel_path, path, path.stat().st_size, False)


class RepositoryScanner:
    """Walks a working tree and samples the files most useful for extraction."""

    def __init__(
        self,
        limits: LimitsConfig | None = None,
        *,
        git: GitClient | None = None,
        clock: Callable[[], str] = utc_timestamp,
    ) -> None:
        self.limits = limits or LimitsConfig()
        self.git = git or GitClient()
        self._clock = clock
        self.logger = get_logger("ingest.scanner")

    def scan(
        self,
        root: str | Path,
        scan_mode: str = "quick",
        *,
        ref: Optional[str] = None,
        repo: Optional[RepoInfo] = None,
        languages: Optional[Sequence[LanguageShare]] = None,
    ) -> RepositorySnapshot:
        """Return a snapshot of ``root``.

        ``repo`` and ``languages`` replace the locally derived repository
        description and extension-based language breakdown when the caller
        already knows better (for example from a hosting API).
        """
        root_path = Path(root).expanduser().resolve()
        if not root_path.exists():
            raise IngestError(f"Repository path not found: {root}")
        if not root_path.is_dir():
            raise IngestError(f"Repository path is not a directory: {root}")

        entries = list(_iter_entries(root_path))
        files = [entry for entry in entries if not entry.is_dir]
        by_path = {entry.rel_path: entry for entry in files}

        file_tree = [
            RepoTreeNode(
                path=entry.rel_path,
                type="tree" if entry.is_dir else "blob",
                size=None if entry.is_dir else entry.size,
            )
            for entry in entries[: self.limits.max_tree_items]
        ]

        top_files = (
            self.limits.quick_top_files if scan_mode == "quick" else self.limits.deep_top_files
        )
        candidates = select_candidates(
            [(entry.rel_path, entry.size) for entry in files],
            top_files=top_files,
            limit=self.limits.max_contents_files,
        )
        selected, skipped_binary, skipped_script, token_estimate = self._read_candidates(
            candidates, by_path
        )

        if repo is None:
            branch = ref or self.git.current_branch(root_path)
            repo = RepoInfo(
                url=f"file://{root_path}",
                owner="local",
                name=root_path.name,
                branch=branch,
                default_branch=branch,
                size_kb=round(sum(entry.size for entry in files) / 1024),
            )
        if languages is None:
            languages = language_breakdown(
                extension_languages((entry.rel_path, entry.size) for entry in files)
            )

        self.logger.info(
            "Scanned %d file(s) under %s; sampled %d (%d binary, %d script skipped)",
            len(files),
            root_path,
            len(selected),
            skipped_binary,
            skipped_script,
        )
        return RepositorySnapshot(
            repo=repo,
            metadata=SnapshotMetadata(
                scan_mode=scan_mode,
                fetched_at=self._clock(),
                total_files=len(files),
                selected_files=len(selected),
                skipped_binary_files=skipped_binary,
                skipped_script_files=skipped_script,
                token_estimate=token_estimate,
            ),
            languages=list(languages),
            file_tree=file_tree,
            files=selected,
        )

    def _read_candidates(
        self, candidates: Sequence[Candidate], by_path: dict[str, _Entry]
    ) -> tuple[List[SelectedFile], int, int, int]:
        max_bytes = self.limits.max_file_bytes
        selected: List[SelectedFile] = []
        skipped_binary = 0
        skipped_script = 0
        token_estimate = 0

        for candidate in candidates:
            if is_binary_file(candidate.path):
                skipped_binary += 1
                continue
            if is_script_file(candidate.path):
                skipped_script += 1
                continue
            if candidate.size > max_bytes:
                selected.append(
                    SelectedFile(
                        path=candidate.path,
                        size=candidate.size,
                        reason=candidate.reason,
                        content=SIZE_OMITTED_PLACEHOLDER,
                        truncated=True,
                    )
                )
                continue

            try:
                raw = by_path[candidate.path].abs_path.read_text(
                    encoding="utf-8", errors="replace"
                )
            except OSError as exc:
                self.logger.debug("Skipping unreadable file %s: %s", candidate.path, exc)
                continue

            content = safe_snippet(raw, max_bytes)
            projected = token_estimate + estimate_tokens(content)
            if projected > self.limits.max_snapshot_tokens:
                self.logger.debug("Token budget reached at %s", candidate.path)
                break
            token_estimate = projected
            selected.append(
                SelectedFile(
                    path=candidate.path,
                    size=candidate.size,
                    reason=candidate.reason,
                    content=content,
                    truncated=raw != content,
                )
            )
        return selected, skipped_binary, skipped_script, token_estimate


__all__ = ["RepositoryScanner"]
