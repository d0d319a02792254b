"""Errors raised at the ingestion boundary."""

from __future__ import annotations


class IngestError(RuntimeError):
    """Raised when a repository cannot be fetched, walked or described."""


__all__ = ["IngestError"]
