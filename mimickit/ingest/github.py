"""Snapshot building through the GitHub REST API, used when git is unavailable."""

from __future__ import annotations

import base64
import json
from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlparse
from urllib.request import Request, urlopen

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
from .sanitize import estimate_tokens, is_binary_file, is_script_file, safe_snippet
from .selection import (
    PER_FILE_REASON,
    SIZE_OMITTED_PLACEHOLDER,
    Candidate,
    is_source_file,
    language_breakdown,
    select_candidates,
)

DEFAULT_API_BASE = "https://api.github.com"
API_VERSION = "2022-11-28"
REQUEST_TIMEOUT = 30.0


def parse_github_url(repo_url: str) -> Tuple[str, str]:
    """Return ``(owner, name)`` for a github.com repository URL."""
    parsed = urlparse(repo_url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise IngestError("Invalid repo URL.")
    if parsed.hostname != "github.com":
        raise IngestError("Only github.com repositories are supported.")
    parts = [part for part in parsed.path.split("/") if part]
    if len(parts) < 2:
        raise IngestError("Repo URL must include owner and repository name.")
    owner = parts[0]
    name = parts[1][:-4] if parts[1].endswith(".git") else parts[1]
    if not owner or not name:
        raise IngestError("Invalid GitHub repository path.")
    return owner, name


def _coordinates(repo_url: str) -> Tuple[str, str]:
    parts = [part for part in urlparse(repo_url).path.split("/") if part]
    if len(parts) > 1:
        owner, name = parts[0], parts[1]
    else:
        owner, name = "unknown", parts[0] if parts else "repository"
    return owner, name[:-4] if name.endswith(".git") else name


class GitHubIntake:
    """Reads repository metadata, tree and file contents over HTTPS."""

    def __init__(
        self,
        limits: LimitsConfig | None = None,
        *,
        api_base: str = DEFAULT_API_BASE,
        token: Optional[str] = None,
        opener: Callable[..., Any] | None = None,
        clock: Callable[[], str] = utc_timestamp,
    ) -> None:
        self.limits = limits or LimitsConfig()
        self.api_base = api_base.rstrip("/")
        self.token = token
        self._opener = opener
        self._clock = clock
        self.logger = get_logger("ingest.github")

    # ------------------------------------------------------------------
    # Public API

    def build_snapshot(
        self,
        repo_url: str,
        branch: Optional[str] = None,
        scan_mode: str = "quick",
        *,
        token: Optional[str] = None,
    ) -> RepositorySnapshot:
        """Build a snapshot of a public repository without cloning it."""
        owner, name = parse_github_url(repo_url)
        token = self._resolve_token(token)
        meta = self._get_json(f"/repos/{owner}/{name}", token)
        if not isinstance(meta, dict):
            raise IngestError("GitHub API returned an unexpected repository payload")

        if meta.get("private"):
            raise IngestError("Private repositories are out of scope.")
        size_kb = int(meta.get("size") or 0)
        if size_kb > self.limits.max_repo_kb:
            raise IngestError(
                f"Repository too large ({size_kb} KB). Limit is {self.limits.max_repo_kb} KB. "
                "Adjust MAX_REPO_KB to override."
            )

        default_branch = str(meta.get("default_branch") or "main")
        selected_branch = branch or default_branch
        tree_payload = self._get_json(
            f"/repos/{owner}/{name}/git/trees/{quote(selected_branch, safe='')}?recursive=1",
            token,
        )
        raw_tree = tree_payload.get("tree") if isinstance(tree_payload, dict) else None
        items = [item for item in raw_tree or [] if isinstance(item, dict) and "path" in item]

        file_tree = [
            RepoTreeNode(
                path=str(item["path"]),
                type="tree" if item.get("type") == "tree" else "blob",
                size=item.get("size") if isinstance(item.get("size"), int) else None,
            )
            for item in items[: self.limits.max_tree_items]
        ]
        blobs = [
            (str(item["path"]), int(item.get("size") or 0))
            for item in items
            if item.get("type") == "blob"
        ]

        source_count = sum(1 for path, _ in blobs if is_source_file(path))
        per_file = scan_mode == "deep" and source_count < self.limits.quick_top_files
        if per_file:
            candidates = select_candidates(
                blobs,
                top_files=None,
                limit=self.limits.max_contents_files,
                source_reason=PER_FILE_REASON,
            )
        else:
            candidates = select_candidates(
                blobs,
                top_files=(
                    self.limits.quick_top_files
                    if scan_mode == "quick"
                    else self.limits.deep_top_files
                ),
                limit=self.limits.max_contents_files,
            )
        snippet_limit = self.limits.max_file_bytes * 2 if per_file else self.limits.max_file_bytes

        selected, skipped_binary, skipped_script, token_estimate = self._read_candidates(
            owner, name, selected_branch, candidates, snippet_limit, token
        )

        languages = self._get_json(f"/repos/{owner}/{name}/languages", token)
        return RepositorySnapshot(
            repo=self._repo_info(repo_url, owner, name, selected_branch, meta),
            metadata=SnapshotMetadata(
                scan_mode=scan_mode,
                depth_strategy="per-file" if per_file else "file-count",
                fetched_at=self._clock(),
                total_files=len(blobs),
                selected_files=len(selected),
                skipped_binary_files=skipped_binary,
                skipped_script_files=skipped_script,
                token_estimate=token_estimate,
            ),
            languages=self._languages(languages),
            file_tree=file_tree,
            files=selected,
        )

    def describe(
        self,
        repo_url: str,
        branch: str,
        *,
        token: Optional[str] = None,
        fallback_branch: Optional[str] = None,
    ) -> Tuple[RepoInfo, Optional[List[LanguageShare]]]:
        """Best-effort repository description for a clone that was fetched with git.

        API failures leave the description at its URL-derived minimum and the
        language breakdown as None so the caller derives it locally.
        """
        owner, name = _coordinates(repo_url)
        meta: Dict[str, Any] = {}
        languages: Optional[List[LanguageShare]] = None
        if urlparse(repo_url).hostname == "github.com":
            token = self._resolve_token(token)
            try:
                payload = self._get_json(f"/repos/{owner}/{name}", token)
                if isinstance(payload, dict):
                    meta = payload
                languages = self._languages(
                    self._get_json(f"/repos/{owner}/{name}/languages", token)
                )
            except IngestError as exc:
                self.logger.debug("GitHub metadata unavailable for %s: %s", repo_url, exc)
        if not meta:
            meta = {"default_branch": fallback_branch or branch}
        return self._repo_info(repo_url, owner, name, branch, meta), languages or None

    # ------------------------------------------------------------------
    # Helpers

    def _resolve_token(self, token: Optional[str]) -> Optional[str]:
        trimmed = (token or "").strip()
        return trimmed or self.token

    def _headers(self, token: Optional[str]) -> Dict[str, str]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _open(self, path: str, token: Optional[str]) -> bytes:
        request = Request(f"{self.api_base}{path}", headers=self._headers(token), method="GET")
        opener = self._opener or urlopen
        with opener(request, timeout=REQUEST_TIMEOUT) as response:  # type: ignore[arg-type]
            return response.read()

    def _get_json(self, path: str, token: Optional[str]) -> Any:
        try:
            raw = self._open(path, token)
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore") if hasattr(exc, "read") else ""
            raise _normalize_http_error(exc.code, detail) from exc
        except URLError as exc:
            raise IngestError(f"GitHub API request failed: {exc.reason}") from exc
        try:
            return json.loads(raw.decode("utf-8"))
        except json.JSONDecodeError as exc:
            raise IngestError("GitHub API returned invalid JSON") from exc

    def _read_candidates(
        self,
        owner: str,
        name: str,
        ref: str,
        candidates: List[Candidate],
        snippet_limit: int,
        token: Optional[str],
    ) -> tuple[List[SelectedFile], int, int, int]:
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

            fetched = self._fetch_content(owner, name, candidate.path, ref, token)
            if fetched is None:
                continue
            size, raw = fetched

            content = safe_snippet(raw, snippet_limit)
            projected = token_estimate + estimate_tokens(content)
            if projected > self.limits.max_snapshot_tokens:
                break
            token_estimate = projected
            selected.append(
                SelectedFile(
                    path=candidate.path,
                    size=size,
                    reason=candidate.reason,
                    content=content,
                    truncated=raw == SIZE_OMITTED_PLACEHOLDER or raw != content,
                )
            )
        return selected, skipped_binary, skipped_script, token_estimate

    def _fetch_content(
        self, owner: str, name: str, path: str, ref: str, token: Optional[str]
    ) -> Optional[Tuple[int, str]]:
        encoded = "/".join(quote(segment, safe="") for segment in path.split("/"))
        try:
            payload = self._get_json(
                f"/repos/{owner}/{name}/contents/{encoded}?ref={quote(ref, safe='')}", token
            )
        except IngestError as exc:
            self.logger.debug("Skipping %s: %s", path, exc)
            return None

        if not isinstance(payload, dict) or payload.get("type") != "file":
            return None
        size = payload.get("size")
        if not isinstance(size, int):
            return None
        if size > self.limits.max_file_bytes:
            return size, SIZE_OMITTED_PLACEHOLDER

        encoded_content = payload.get("content")
        if not encoded_content or payload.get("encoding") != "base64":
            return None
        decoded = base64.b64decode(encoded_content).decode("utf-8", errors="replace")
        return size, decoded

    @staticmethod
    def _languages(payload: Any) -> List[LanguageShare]:
        if not isinstance(payload, dict):
            return []
        counts = {str(key): int(value) for key, value in payload.items() if isinstance(value, int)}
        return language_breakdown(counts)

    @staticmethod
    def _repo_info(
        repo_url: str, owner: str, name: str, branch: str, meta: Dict[str, Any]
    ) -> RepoInfo:
        return RepoInfo(
            url=repo_url,
            owner=owner,
            name=name,
            branch=branch,
            default_branch=str(meta.get("default_branch") or branch),
            size_kb=int(meta.get("size") or 0),
            stars=int(meta.get("stargazers_count") or 0),
            open_issues=int(meta.get("open_issues_count") or 0),
            description=meta.get("description") or None,
            language=meta.get("language") or None,
        )


def _normalize_http_error(status: int, text: str) -> IngestError:
    if status == 403 and "rate limit" in text.lower():
        return IngestError(
            "GitHub API rate limit exceeded. Provide a GitHub token or set GITHUB_TOKEN."
        )
    return IngestError(f"GitHub API error {status}: {text[:300]}")


__all__ = ["GitHubIntake", "parse_github_url"]
