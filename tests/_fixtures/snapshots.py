"""In-memory snapshots and scripted generation services for tests."""

from __future__ import annotations

from typing import Iterable, List, Mapping, Sequence

from mimickit.models import (
    LanguageShare,
    RepoInfo,
    RepoTreeNode,
    RepositorySnapshot,
    SelectedFile,
    SnapshotMetadata,
)

_REASONS = {
    "package.json": "dependency manifest",
    "requirements.txt": "dependency manifest",
    "pyproject.toml": "dependency manifest",
    "go.mod": "dependency manifest",
    "Cargo.toml": "dependency manifest",
    "pom.xml": "dependency manifest",
    "build.gradle": "dependency manifest",
    "Dockerfile": "runtime manifest",
    "README.md": "project readme",
}


def make_snapshot(
    files: Mapping[str, str] | None = None,
    *,
    tree: Iterable[str] = (),
    languages: Sequence[tuple[str, int]] = (),
    name: str = "demo",
    description: str | None = None,
) -> RepositorySnapshot:
    """Build a snapshot from ``path -> content`` pairs without touching disk."""
    files = dict(files or {})
    selected = [
        SelectedFile(
            path=path,
            size=len(content),
            reason=_REASONS.get(path.rsplit("/", 1)[-1], "large source sample"),
            content=content,
        )
        for path, content in files.items()
    ]
    tree_paths = list(dict.fromkeys([*files, *tree]))
    total = sum(count for _, count in languages)
    return RepositorySnapshot(
        repo=RepoInfo(
            url=f"https://github.com/acme/{name}",
            owner="acme",
            name=name,
            branch="main",
            default_branch="main",
            description=description,
        ),
        metadata=SnapshotMetadata(
            scan_mode="quick",
            fetched_at="2025-01-01T00:00:00.000Z",
            total_files=len(tree_paths),
            selected_files=len(selected),
        ),
        languages=[
            LanguageShare(name=lang, bytes=count, share=round(count / total, 4))
            for lang, count in languages
        ],
        file_tree=[RepoTreeNode(path=path, type="blob", size=0) for path in tree_paths],
        files=selected,
    )


class ScriptedRunner:
    """Returns canned responses in order; exceptions in the script are raised."""

    def __init__(self, responses: Iterable[object]) -> None:
        self._responses: List[object] = list(responses)
        self.prompts: List[str] = []
        self.systems: List[str | None] = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    def run(self, prompt: str, *, system: str | None = None) -> str:
        self.prompts.append(prompt)
        self.systems.append(system)
        if not self._responses:
            raise RuntimeError("scripted runner exhausted")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return str(response)


__all__ = ["ScriptedRunner", "make_snapshot"]
