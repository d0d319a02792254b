"""Tests for the GitHub REST intake."""

from __future__ import annotations

import base64
import io
import json
from typing import Any, Dict
from urllib.error import HTTPError, URLError

import pytest

from mimickit.config import LimitsConfig
from mimickit.ingest import GitHubIntake, IngestError, parse_github_url
from mimickit.ingest.selection import PER_FILE_REASON, SIZE_OMITTED_PLACEHOLDER

API = "https://api.github.com"


class FakeResponse:
    def __init__(self, payload: Any) -> None:
        self._body = json.dumps(payload).encode("utf-8")

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc_info: object) -> None:
        return None


class FakeGitHub:
    """Serves canned API payloads keyed by request path."""

    def __init__(self, routes: Dict[str, Any]) -> None:
        self.routes = routes
        self.requests: list[Any] = []

    def __call__(self, request: Any, timeout: float | None = None) -> FakeResponse:
        self.requests.append(request)
        path = request.full_url[len(API) :]
        if path not in self.routes:
            raise HTTPError(request.full_url, 404, "Not Found", {}, io.BytesIO(b"Not Found"))
        payload = self.routes[path]
        if isinstance(payload, Exception):
            raise payload
        return FakeResponse(payload)

    @property
    def paths(self) -> list[str]:
        return [request.full_url[len(API) :] for request in self.requests]


def _content(text: str) -> Dict[str, Any]:
    return {
        "type": "file",
        "size": len(text),
        "encoding": "base64",
        "content": base64.b64encode(text.encode("utf-8")).decode("ascii"),
    }


def _routes(**overrides: Any) -> Dict[str, Any]:
    routes: Dict[str, Any] = {
        "/repos/acme/notes": {
            "private": False,
            "size": 120,
            "default_branch": "main",
            "stargazers_count": 7,
            "open_issues_count": 2,
            "description": "Team notes",
            "language": "TypeScript",
        },
        "/repos/acme/notes/git/trees/main?recursive=1": {
            "tree": [
                {"path": "package.json", "type": "blob", "size": 30},
                {"path": "src", "type": "tree"},
                {"path": "src/app.ts", "type": "blob", "size": 20},
                {"path": "src/huge.ts", "type": "blob", "size": 999_999},
                {"path": "assets/logo.png", "type": "blob", "size": 10},
            ]
        },
        "/repos/acme/notes/contents/package.json?ref=main": _content('{"name": "notes"}'),
        "/repos/acme/notes/contents/src/app.ts?ref=main": _content("export const app = 1;"),
        "/repos/acme/notes/contents/src/huge.ts?ref=main": {"type": "file", "size": 999_999},
        "/repos/acme/notes/languages": {"TypeScript": 900, "CSS": 100},
    }
    routes.update(overrides)
    return routes


def _intake(routes: Dict[str, Any], **kwargs: Any) -> tuple[GitHubIntake, FakeGitHub]:
    fake = FakeGitHub(routes)
    intake = GitHubIntake(opener=fake, clock=lambda: "2025-01-01T00:00:00.000Z", **kwargs)
    return intake, fake


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        ("https://github.com/acme/notes", ("acme", "notes")),
        ("https://github.com/acme/notes.git", ("acme", "notes")),
        ("http://github.com/acme/notes/tree/main", ("acme", "notes")),
    ],
)
def test_parse_github_url(url: str, expected: tuple[str, str]) -> None:
    assert parse_github_url(url) == expected


@pytest.mark.parametrize(
    ("url", "message"),
    [
        ("ftp://github.com/acme/notes", "Invalid repo URL"),
        ("https://gitlab.com/acme/notes", "Only github.com"),
        ("https://github.com/acme", "owner and repository name"),
    ],
)
def test_parse_github_url_rejects(url: str, message: str) -> None:
    with pytest.raises(IngestError, match=message):
        parse_github_url(url)


def test_build_snapshot_samples_files() -> None:
    intake, fake = _intake(_routes())

    snapshot = intake.build_snapshot("https://github.com/acme/notes")

    assert snapshot.repo.owner == "acme"
    assert snapshot.repo.stars == 7
    assert snapshot.repo.description == "Team notes"
    assert [node.path for node in snapshot.file_tree][:2] == ["package.json", "src"]
    assert snapshot.file_tree[1].type == "tree"
    assert [(file.path, file.reason) for file in snapshot.files] == [
        ("package.json", "dependency manifest"),
        ("src/huge.ts", "large source sample"),
        ("src/app.ts", "large source sample"),
    ]
    huge = snapshot.files[1]
    assert huge.content == SIZE_OMITTED_PLACEHOLDER
    assert huge.truncated
    assert snapshot.files[2].content == "export const app = 1;"
    assert snapshot.metadata.total_files == 4
    assert snapshot.metadata.depth_strategy == "file-count"
    assert [(lang.name, lang.share) for lang in snapshot.languages] == [
        ("TypeScript", 0.9),
        ("CSS", 0.1),
    ]
    assert not any("logo.png" in path for path in fake.paths)


def test_deep_scan_of_small_repo_uses_per_file_depth() -> None:
    intake, _ = _intake(_routes())

    snapshot = intake.build_snapshot("https://github.com/acme/notes", scan_mode="deep")

    assert snapshot.metadata.depth_strategy == "per-file"
    assert {file.reason for file in snapshot.files[1:]} == {PER_FILE_REASON}


def test_request_headers_carry_token() -> None:
    intake, fake = _intake(_routes(), token="env-token")

    intake.build_snapshot("https://github.com/acme/notes", token="  request-token ")

    request = fake.requests[0]
    assert request.get_header("Authorization") == "Bearer request-token"
    assert request.get_header("X-github-api-version") == "2022-11-28"


def test_private_and_oversized_repos_are_rejected() -> None:
    private = _routes(**{"/repos/acme/notes": {"private": True, "size": 1}})
    intake, _ = _intake(private)
    with pytest.raises(IngestError, match="Private repositories"):
        intake.build_snapshot("https://github.com/acme/notes")

    intake, _ = _intake(_routes(), limits=LimitsConfig(max_repo_kb=100))
    with pytest.raises(IngestError, match="Repository too large"):
        intake.build_snapshot("https://github.com/acme/notes")


def test_rate_limit_error_is_explained() -> None:
    limited = HTTPError(
        f"{API}/repos/acme/notes",
        403,
        "Forbidden",
        {},
        io.BytesIO(b'{"message": "API rate limit exceeded"}'),
    )
    intake, _ = _intake(_routes(**{"/repos/acme/notes": limited}))

    with pytest.raises(IngestError, match="rate limit exceeded. Provide a GitHub token"):
        intake.build_snapshot("https://github.com/acme/notes")


def test_describe_falls_back_when_api_is_unreachable() -> None:
    offline = URLError("offline")
    intake, _ = _intake(
        _routes(**{"/repos/acme/notes": offline, "/repos/acme/notes/languages": offline})
    )

    repo, languages = intake.describe("https://github.com/acme/notes.git", "dev")

    assert (repo.owner, repo.name, repo.branch, repo.default_branch) == ("acme", "notes", "dev", "dev")
    assert languages is None


def test_describe_skips_api_for_other_hosts() -> None:
    intake, fake = _intake({})

    repo, languages = intake.describe("https://gitlab.com/acme/notes", "main")

    assert fake.requests == []
    assert repo.name == "notes"
    assert languages is None


def test_describe_uses_metadata_when_available(monkeypatch: pytest.MonkeyPatch) -> None:
    fake = FakeGitHub(_routes())
    monkeypatch.setattr("mimickit.ingest.github.urlopen", fake)
    intake = GitHubIntake()

    repo, languages = intake.describe("https://github.com/acme/notes", "main")

    assert repo.stars == 7
    assert repo.language == "TypeScript"
    assert languages is not None and languages[0].name == "TypeScript"
