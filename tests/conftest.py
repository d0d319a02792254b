from __future__ import annotations

import logging
from pathlib import Path

import pytest

from mimickit.models import RepositorySnapshot
from tests._fixtures.repo_builder import RepoBuilder
from tests._fixtures.snapshots import make_snapshot

NEXT_PACKAGE_JSON = """{
  "name": "demo",
  "dependencies": {"next": "^14.0.0", "react": "18.2.0", "mongoose": "~8.1.0"},
  "devDependencies": {"next-auth": "4.24.0"}
}"""

README = """# Demo

<p align="center">A collaborative notes app for small teams.</p>

![badge](https://example.com/badge.svg)

## Features

- Realtime editing
- **Shared workspaces** - invite teammates
- Search across notes

## Setup

Run it.
"""


@pytest.fixture(autouse=True)
def _reset_mimickit_logger():
    """Undo handler and propagation changes made by configure_logging."""
    yield
    logger = logging.getLogger("mimickit")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def repo_builder(tmp_path: Path) -> RepoBuilder:
    """Provide a reusable repo builder rooted at the pytest tmp_path."""
    return RepoBuilder(tmp_path)


@pytest.fixture
def next_snapshot() -> RepositorySnapshot:
    """A Next.js + MongoDB snapshot with a README and a few routes."""
    return make_snapshot(
        {
            "package.json": NEXT_PACKAGE_JSON,
            "README.md": README,
            "Dockerfile": "FROM node:20-alpine\nRUN npm ci\n",
        },
        tree=[
            "app/compose/page.tsx",
            "app/settings/page.tsx",
            "app/api/notes/route.ts",
            "middleware.ts",
        ],
        languages=[("TypeScript", 9000), ("CSS", 1000)],
    )
