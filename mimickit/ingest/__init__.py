"""Ingestion collaborators that turn a repository into a ``RepositorySnapshot``."""

from .errors import IngestError
from .git import FetchResult, GitClient
from .github import GitHubIntake, parse_github_url
from .scanner import RepositoryScanner

__all__ = [
    "FetchResult",
    "GitClient",
    "GitHubIntake",
    "IngestError",
    "RepositoryScanner",
    "parse_github_url",
]
