"""File selection heuristics shared by the local scanner and the content-API intake."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..models import LanguageShare

MAX_LANGUAGES = 12
SIZE_OMITTED_PLACEHOLDER = "[file omitted due to size limit]"
LARGE_SOURCE_REASON = "large source sample"
PER_FILE_REASON = "per-file depth sample"

IMPORTANT_FILES: Dict[str, str] = {
    "package.json": "dependency manifest",
    "requirements.txt": "dependency manifest",
    "pyproject.toml": "dependency manifest",
    "go.mod": "dependency manifest",
    "Cargo.toml": "dependency manifest",
    "pom.xml": "dependency manifest",
    "build.gradle": "dependency manifest",
    "Dockerfile": "runtime manifest",
    "docker-compose.yml": "infra manifest",
    "docker-compose.yaml": "infra manifest",
    "README.md": "project readme",
    "README": "project readme",
    "README.txt": "project readme",
    "CONTRIBUTING.md": "contributing guide",
    "AGENTS.MD": "agent instructions",
    "AGENTS.md": "agent instructions",
}

# Matched against the full relative path.
IMPORTANT_PATHS: Dict[str, str] = {
    "prisma/schema.prisma": "database schema",
    "schema.prisma": "database schema",
    "drizzle.config.ts": "database config",
    "drizzle.config.js": "database config",
    "src/app/globals.css": "global styles",
    "app/globals.css": "global styles",
    "src/styles/globals.css": "global styles",
    "styles/globals.css": "global styles",
}

CONFIG_FILE_SUFFIXES: Tuple[str, ...] = (
    "tsconfig.json",
    "next.config.js",
    "next.config.mjs",
    "vite.config.ts",
    "webpack.config.js",
    ".env.example",
    "serverless.yml",
    "k8s.yaml",
    "k8s.yml",
)

SOURCE_EXTENSIONS = frozenset(
    {"ts", "tsx", "js", "jsx", "py", "go", "rs", "java", "kt", "rb", "php", "swift", "scala", "cs"}
)

LANGUAGE_BY_EXTENSION: Dict[str, str] = {
    "ts": "TypeScript",
    "tsx": "TypeScript",
    "js": "JavaScript",
    "jsx": "JavaScript",
    "py": "Python",
    "go": "Go",
    "rs": "Rust",
    "java": "Java",
    "kt": "Kotlin",
    "rb": "Ruby",
    "php": "PHP",
    "swift": "Swift",
    "scala": "Scala",
    "cs": "C#",
    "css": "CSS",
    "html": "HTML",
    "scss": "SCSS",
    "vue": "Vue",
    "svelte": "Svelte",
}


@dataclass(frozen=True)
class Candidate:
    """A file chosen for content sampling, before its content is read."""

    path: str
    size: int
    reason: str


def suffix_of(path: str) -> str:
    return PurePosixPath(path).suffix[1:].lower()


def reason_for_file(path: str) -> Optional[str]:
    """Return why ``path`` is worth sampling, or None for ordinary files."""
    exact = IMPORTANT_FILES.get(PurePosixPath(path).name)
    if exact:
        return exact
    by_path = IMPORTANT_PATHS.get(path)
    if by_path:
        return by_path
    if path.endswith(CONFIG_FILE_SUFFIXES):
        return "config signal"
    return None


def is_source_file(path: str) -> bool:
    return suffix_of(path) in SOURCE_EXTENSIONS


def select_candidates(
    entries: Sequence[Tuple[str, int]],
    *,
    top_files: Optional[int],
    limit: int,
    source_reason: str = LARGE_SOURCE_REASON,
) -> List[Candidate]:
    """Important files first, then the largest source files, deduplicated and capped.

    ``top_files=None`` keeps every source file.
    """
    exact = [
        Candidate(path, size, reason)
        for path, size in entries
        if (reason := reason_for_file(path)) is not None
    ]
    sources = sorted(
        (entry for entry in entries if is_source_file(entry[0])),
        key=lambda entry: entry[1],
        reverse=True,
    )
    if top_files is not None:
        sources = sources[:top_files]

    seen: set[str] = set()
    combined: List[Candidate] = []
    for candidate in [*exact, *(Candidate(path, size, source_reason) for path, size in sources)]:
        if candidate.path in seen:
            continue
        seen.add(candidate.path)
        combined.append(candidate)
        if len(combined) >= limit:
            break
    return combined


def language_breakdown(byte_counts: Mapping[str, int]) -> List[LanguageShare]:
    """Convert per-language byte totals into the top shares, largest first."""
    total = sum(byte_counts.values())
    if not total:
        return []
    shares = [
        LanguageShare(name=name, bytes=count, share=round(count / total, 4))
        for name, count in byte_counts.items()
    ]
    shares.sort(key=lambda share: share.bytes, reverse=True)
    return shares[:MAX_LANGUAGES]


def extension_languages(entries: Iterable[Tuple[str, int]]) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    for path, size in entries:
        language = LANGUAGE_BY_EXTENSION.get(suffix_of(path))
        if language is None:
            continue
        counts[language] = counts.get(language, 0) + size
    return counts


__all__ = [
    "CONFIG_FILE_SUFFIXES",
    "Candidate",
    "IMPORTANT_FILES",
    "IMPORTANT_PATHS",
    "LARGE_SOURCE_REASON",
    "PER_FILE_REASON",
    "SIZE_OMITTED_PLACEHOLDER",
    "SOURCE_EXTENSIONS",
    "extension_languages",
    "is_source_file",
    "language_breakdown",
    "reason_for_file",
    "select_candidates",
]
