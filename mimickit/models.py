"""Core data models shared across mimickit components.

Artifacts are pydantic models so the same classes serve as the output schemas
handed to the extraction contract. Transient values (findings, sources) stay
plain dataclasses.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

MODEL_VERSION = "1.0.0"

ScanMode = Literal["quick", "deep"]
TargetAgent = Literal["claude-code", "codex", "generic"]
StackCategory = Literal["frontend", "backend", "data-store", "auth", "infrastructure", "language"]
EdgeType = Literal["request", "data", "event"]
StageStatus = Literal["pending", "running", "done", "error"]

SCAN_MODES = ("quick", "deep")
TARGET_AGENTS = ("claude-code", "codex", "generic")
DEFAULT_TARGET_AGENT = "claude-code"
STACK_CATEGORIES = ("frontend", "backend", "data-store", "auth", "infrastructure", "language")

CATEGORY_FIELDS: Dict[str, str] = {
    "frontend": "frontend",
    "backend": "backend",
    "data-store": "data_store",
    "auth": "auth",
    "infrastructure": "infrastructure",
    "language": "language",
}

CATEGORY_ALIASES: Dict[str, str] = {
    "db": "data-store",
    "database": "data-store",
    "datastore": "data-store",
    "data_store": "data-store",
    "infra": "infrastructure",
}

Confidence = Annotated[float, Field(ge=0.0, le=1.0)]


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision and a ``Z`` suffix."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_category(value: str | None) -> Optional[str]:
    """Return the canonical stack category for user input, or None when unknown."""
    if not value:
        return None
    lowered = value.strip().lower()
    lowered = CATEGORY_ALIASES.get(lowered, lowered)
    return lowered if lowered in CATEGORY_FIELDS else None


class _Artifact(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        """Return a JSON-compatible mapping using public field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class _FrozenArtifact(_Artifact):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Repository snapshot


class RepoTreeNode(_FrozenArtifact):
    path: str
    type: Literal["blob", "tree"]
    size: Optional[int] = None


class SelectedFile(_FrozenArtifact):
    path: str
    size: int
    reason: str
    content: str
    truncated: bool = False


class RepoInfo(_FrozenArtifact):
    url: str
    owner: str
    name: str
    branch: str
    default_branch: str
    size_kb: int = 0
    stars: int = 0
    open_issues: int = 0
    description: Optional[str] = None
    language: Optional[str] = None


class SnapshotMetadata(_FrozenArtifact):
    scan_mode: ScanMode
    depth_strategy: Literal["file-count", "per-file"] = "file-count"
    fetched_at: str
    total_files: int
    selected_files: int
    skipped_binary_files: int = 0
    skipped_script_files: int = 0
    token_estimate: int = 0


class LanguageShare(_FrozenArtifact):
    name: str
    bytes: int
    share: float


class RepositorySnapshot(_FrozenArtifact):
    """Immutable view of a repository produced once by an ingestion collaborator."""

    version: str = MODEL_VERSION
    repo: RepoInfo
    metadata: SnapshotMetadata
    languages: List[LanguageShare] = Field(default_factory=list)
    file_tree: List[RepoTreeNode] = Field(default_factory=list)
    files: List[SelectedFile] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Technology fingerprint


class StackItem(_Artifact):
    category: StackCategory
    name: str
    version: Optional[str] = None
    confidence: Confidence
    evidence: List[str] = Field(default_factory=list)


class TechnologyFingerprint(_Artifact):
    """Merged per-category technology detections."""

    version: str = MODEL_VERSION
    frontend: List[StackItem] = Field(default_factory=list)
    backend: List[StackItem] = Field(default_factory=list)
    data_store: List[StackItem] = Field(default_factory=list, alias="data-store")
    auth: List[StackItem] = Field(default_factory=list)
    infrastructure: List[StackItem] = Field(default_factory=list)
    language: List[StackItem] = Field(default_factory=list)
    low_confidence_findings: List[str] = Field(default_factory=list)

    def bucket(self, category: str) -> List[StackItem]:
        """Return the live list backing ``category``."""
        return getattr(self, CATEGORY_FIELDS[category])

    def all_items(self) -> List[StackItem]:
        return [item for category in STACK_CATEGORIES for item in self.bucket(category)]

    def top_names(self, category: str, limit: int = 3) -> List[str]:
        return [item.name for item in self.bucket(category)[:limit]]


# ---------------------------------------------------------------------------
# Architecture, intent, plan


class ArchitectureComponent(_Artifact):
    id: str
    name: str
    role: str
    tech: List[str]
    inputs: List[str]
    outputs: List[str]
    confidence: Optional[Confidence] = None


class ArchitectureEdge(_Artifact):
    from_: str = Field(alias="from")
    to: str
    type: EdgeType


class ArchitectureModel(_Artifact):
    version: str = MODEL_VERSION
    components: List[ArchitectureComponent]
    edges: List[ArchitectureEdge]


class IntentSpecification(_Artifact):
    version: str = MODEL_VERSION
    system_purpose: str
    core_features: List[str]
    user_flows: List[str]
    business_rules: List[str]
    data_contracts: List[str]
    invariants: List[str]
    assumptions: List[str]
    unknowns: List[str]
    confidence_by_section: Dict[str, Confidence] = Field(default_factory=dict)


class StructuredPlan(_Artifact):
    system_overview: str
    architecture_description: str
    module_list: List[str]
    interfaces: List[str]
    data_models: List[str]
    behavior_rules: List[str]
    build_steps: List[str]
    test_expectations: List[str]
    constraints: List[str]
    non_goals: List[str]


class ExecutablePlan(_Artifact):
    version: str = MODEL_VERSION
    target_agent: TargetAgent
    structured: StructuredPlan
    prompt: str


# ---------------------------------------------------------------------------
# Run aggregate


class StageState(_Artifact):
    id: str
    label: str
    status: StageStatus = "pending"
    started_at: Optional[str] = None
    finished_at: Optional[str] = None
    error: Optional[str] = None


class RunResult(_Artifact):
    """Durable record of one pipeline run."""

    id: str
    created_at: str
    snapshot: RepositorySnapshot
    fingerprint: TechnologyFingerprint
    architecture: ArchitectureModel
    intent: IntentSpecification
    plan: ExecutablePlan
    stages: List[StageState]


# ---------------------------------------------------------------------------
# Technology compatibility registry


class TechRegistryEntry(_FrozenArtifact):
    key: str
    category: StackCategory
    alternatives: List[str]
    compatibility_notes: List[str]
    transformation_hints: List[str]


class TechRegistry(_FrozenArtifact):
    version: str
    entries: List[TechRegistryEntry]


# ---------------------------------------------------------------------------
# Transient values


@dataclass(frozen=True)
class Finding:
    """A single piece of detection evidence prior to merging."""

    category: str
    name: str
    evidence: str
    boost: float
    version: Optional[str] = None


@dataclass(frozen=True)
class LocalSource:
    """A repository already present on the local filesystem."""

    path: str
    ref: Optional[str] = None


@dataclass(frozen=True)
class RemoteSource:
    """A public repository addressed by URL."""

    url: str
    ref: Optional[str] = None
    github_token: Optional[str] = None


@dataclass(frozen=True)
class SwapDescriptor:
    """One technology substitution within a category."""

    category: str
    from_: str
    to: str
    hints: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "from": self.from_, "to": self.to, "hints": list(self.hints)}


Source = Union[LocalSource, RemoteSource]


__all__ = [
    "ArchitectureComponent",
    "ArchitectureEdge",
    "ArchitectureModel",
    "CATEGORY_ALIASES",
    "CATEGORY_FIELDS",
    "DEFAULT_TARGET_AGENT",
    "ExecutablePlan",
    "Finding",
    "IntentSpecification",
    "LanguageShare",
    "LocalSource",
    "MODEL_VERSION",
    "RemoteSource",
    "RepoInfo",
    "RepoTreeNode",
    "RepositorySnapshot",
    "RunResult",
    "SCAN_MODES",
    "STACK_CATEGORIES",
    "SelectedFile",
    "SnapshotMetadata",
    "Source",
    "StackItem",
    "StageState",
    "StructuredPlan",
    "SwapDescriptor",
    "TARGET_AGENTS",
    "TechRegistry",
    "TechRegistryEntry",
    "TechnologyFingerprint",
    "normalize_category",
    "utc_timestamp",
]
