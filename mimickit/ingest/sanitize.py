"""Content screening applied before repository text reaches a prompt."""

from __future__ import annotations

import math
import re

FILTERED_MARKER = "[filtered-marker]"
DEFAULT_SNIPPET_CHARS = 12_000

PROMPT_INJECTION_MARKERS = (
    "ignore previous instructions",
    "system prompt",
    "developer instructions",
    "act as",
    "jailbreak",
    "you are chatgpt",
)

SCRIPT_EXTENSIONS = frozenset(
    {"sh", "bash", "zsh", "ps1", "bat", "cmd", "exe", "dll", "so", "dylib"}
)

BINARY_EXTENSIONS = frozenset(
    {
        "png",
        "jpg",
        "jpeg",
        "gif",
        "pdf",
        "zip",
        "tar",
        "gz",
        "ico",
        "woff",
        "woff2",
        "ttf",
        "eot",
        "mp3",
        "mp4",
        "mov",
        "webm",
        "avif",
    }
)

_MARKER_PATTERNS = tuple(
    re.compile(re.escape(marker), re.IGNORECASE) for marker in PROMPT_INJECTION_MARKERS
)


def estimate_tokens(text: str) -> int:
    return math.ceil(len(text) / 4)


def file_extension(path: str) -> str:
    """Return the lower-cased text after the last dot, ignoring any query string."""
    clean = path.split("?", 1)[0]
    index = clean.rfind(".")
    if index < 0 or index == len(clean) - 1:
        return ""
    return clean[index + 1 :].lower()


def is_binary_file(path: str) -> bool:
    return file_extension(path) in BINARY_EXTENSIONS


def is_script_file(path: str) -> bool:
    return file_extension(path) in SCRIPT_EXTENSIONS


def sanitize_text(content: str) -> str:
    """Replace known prompt-injection phrases, matched case-insensitively."""
    for pattern in _MARKER_PATTERNS:
        content = pattern.sub(FILTERED_MARKER, content)
    return content


def safe_snippet(content: str, max_chars: int = DEFAULT_SNIPPET_CHARS) -> str:
    return sanitize_text(content[:max_chars])


__all__ = [
    "BINARY_EXTENSIONS",
    "FILTERED_MARKER",
    "PROMPT_INJECTION_MARKERS",
    "SCRIPT_EXTENSIONS",
    "estimate_tokens",
    "file_extension",
    "is_binary_file",
    "is_script_file",
    "safe_snippet",
    "sanitize_text",
]
