"""Base classes for manifest analyzers."""

from abc import ABC, abstractmethod
from pathlib import PurePosixPath
from typing import FrozenSet, Iterable

from ..models import Finding


class ManifestAnalyzer(ABC):
    """Contract for analyzers that turn one manifest file into findings."""

    filenames: FrozenSet[str] = frozenset()

    def supports(self, path: str) -> bool:
        """Return True when the file's basename is one this analyzer understands."""
        return PurePosixPath(path).name in self.filenames

    @abstractmethod
    def analyze(self, content: str, path: str) -> Iterable[Finding]:
        """Produce findings from the manifest text."""
