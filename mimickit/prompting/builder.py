"""Builds size-bounded extraction prompts from snapshots and prior artifacts."""

from __future__ import annotations

import json
import re
import types
from typing import Annotated, Any, Callable, Dict, List, Literal, Sequence, Union, get_args, get_origin

from pydantic import BaseModel

from ..models import (
    ArchitectureModel,
    IntentSpecification,
    RepositorySnapshot,
    SelectedFile,
    StructuredPlan,
    SwapDescriptor,
    TechnologyFingerprint,
)
from .constants import (
    ARCHITECTURE_SUMMARY_BUDGET,
    ENTRY_OVERHEAD,
    FILE_SAMPLE_CHARS,
    INTENT_SUMMARY_BUDGET,
    TREE_SAMPLE_SIZE,
)
from .hints import infer_database_design, infer_design_hints, infer_route_hints

_API_PATH = re.compile(r"/(api|server|routers?)/", re.IGNORECASE)
_PAGE_FILE = re.compile(r"page\.(tsx|ts|jsx|js)$")

IntentRule = Callable[[str, str], bool]

INTENT_FILE_PRIORITY: tuple[IntentRule, ...] = (
    lambda path, reason: reason == "project readme",
    lambda path, reason: reason == "database schema",
    lambda path, reason: reason in {"contributing guide", "agent instructions"},
    lambda path, reason: bool(_API_PATH.search(path)),
    lambda path, reason: reason == "config signal",
    lambda path, reason: reason == "dependency manifest",
    lambda path, reason: reason == "global styles",
    lambda path, reason: bool(_PAGE_FILE.search(path)),
    lambda path, reason: True,
)

STACK_PROMPT_CATEGORIES = ("frontend", "backend", "data-store", "auth", "infrastructure")


def schema_as_json(model: type[BaseModel]) -> Dict[str, Any]:
    """Return a compact example-shaped description of a pydantic model."""
    shape: Dict[str, Any] = {}
    for name, field in model.model_fields.items():
        shape[field.alias or name] = _shape(field.annotation)
    return shape


def _shape(annotation: Any) -> Any:
    origin = get_origin(annotation)
    if origin is Annotated:
        return _shape(get_args(annotation)[0])
    if origin in (Union, types.UnionType):
        options = [arg for arg in get_args(annotation) if arg is not type(None)]
        return _shape(options[0]) if len(options) == 1 else [_shape(arg) for arg in options]
    if origin is Literal:
        return list(get_args(annotation))
    if origin in (list, tuple, set, frozenset):
        args = get_args(annotation)
        return [_shape(args[0])] if args else []
    if origin is dict:
        args = get_args(annotation)
        return {"<key>": _shape(args[1]) if len(args) == 2 else "string"}
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return schema_as_json(annotation)
    if annotation is bool:
        return "boolean"
    if annotation in (int, float):
        return "number"
    return "string"


def _compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _pretty(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def prioritize_files_for_intent(files: Sequence[SelectedFile]) -> List[SelectedFile]:
    """Stable bucket sort of files by how much behavioural signal they carry."""
    buckets: List[List[SelectedFile]] = [[] for _ in INTENT_FILE_PRIORITY]
    for file in files:
        for index, rule in enumerate(INTENT_FILE_PRIORITY):
            if rule(file.path, file.reason):
                buckets[index].append(file)
                break
    return [file for bucket in buckets for file in bucket]


def pack_file_samples(files: Sequence[SelectedFile], budget: int) -> List[Dict[str, str]]:
    """Greedily pack truncated file samples until ``budget`` characters are spent.

    The first sample is always kept so the prompt never loses all file content.
    """
    remaining = budget
    samples: List[Dict[str, str]] = []
    for file in files:
        entry = {"path": file.path, "reason": file.reason, "content": file.content[:FILE_SAMPLE_CHARS]}
        size = len(_compact(entry)) + ENTRY_OVERHEAD
        if remaining - size < 0 and samples:
            break
        remaining -= size
        samples.append(entry)
    return samples


def _snapshot_header(snapshot: RepositorySnapshot) -> Dict[str, Any]:
    return {
        "repo": snapshot.repo.to_dict(),
        "metadata": snapshot.metadata.to_dict(),
        "languages": [language.to_dict() for language in snapshot.languages],
        "treeSample": [f"{node.type}:{node.path}" for node in snapshot.file_tree[:TREE_SAMPLE_SIZE]],
        "files": [],
    }


def snapshot_summary(snapshot: RepositorySnapshot, budget: int = ARCHITECTURE_SUMMARY_BUDGET) -> str:
    """Repository summary whose size is bounded independent of repository size."""
    summary = _snapshot_header(snapshot)
    remaining = budget - len(_pretty(summary))
    summary["files"] = pack_file_samples(snapshot.files, remaining)
    return _pretty(summary)


def condensed_architecture(architecture: ArchitectureModel) -> Dict[str, Any]:
    return {
        "components": [
            {"id": component.id, "name": component.name, "role": component.role}
            for component in architecture.components
        ],
        "edges": [edge.to_dict() for edge in architecture.edges],
    }


def intent_summary(
    snapshot: RepositorySnapshot,
    architecture: ArchitectureModel,
    budget: int = INTENT_SUMMARY_BUDGET,
) -> str:
    summary = _snapshot_header(snapshot)
    summary["architecture"] = condensed_architecture(architecture)
    remaining = budget - len(_pretty(summary))
    summary["files"] = pack_file_samples(prioritize_files_for_intent(snapshot.files), remaining)
    return _pretty(summary)


def stack_summary(fingerprint: TechnologyFingerprint) -> Dict[str, List[str]]:
    return {category: fingerprint.top_names(category) for category in STACK_PROMPT_CATEGORIES}


class PromptBuilder:
    """Assembles the prompts for each extraction stage."""

    def architecture_prompt(
        self, snapshot: RepositorySnapshot, fingerprint: TechnologyFingerprint
    ) -> str:
        return self._join(
            "Return valid JSON only.",
            "Task: extract architecture model for this repository summary.",
            "Output schema:",
            _pretty(schema_as_json(ArchitectureModel)),
            "Rules:",
            "- components[] must include id, name, role, tech[], inputs[], outputs[]\n"
            "- edges[] must use type in {request,data,event} and reference component ids\n"
            "- no prose outside JSON",
            "Repository summary:",
            snapshot_summary(snapshot),
            "Detected stack:",
            _pretty(fingerprint.to_dict()),
        )

    def intent_prompt(self, snapshot: RepositorySnapshot, architecture: ArchitectureModel) -> str:
        return self._join(
            "Return valid JSON only.",
            "Task: extract behavioral intent spec for the TARGET REPOSITORY described below.",
            "The system_purpose should describe what THIS application does, and the remaining "
            "sections should describe its features, user flows and rules.",
            "Output schema:",
            _pretty(schema_as_json(IntentSpecification)),
            "Rules:",
            "- use concise, concrete statements about the TARGET repository\n"
            "- system_purpose: strip HTML tags, describe the app in plain text\n"
            "- core_features: list actual features visible in the source code and README\n"
            "- user_flows: derive from routes and UI components\n"
            "- business_rules: derive from auth, validation, and config patterns\n"
            "- include assumptions and unknowns\n"
            "- no prose outside JSON",
            "Repository and architecture summary:",
            intent_summary(snapshot, architecture),
        )

    def swap_intent_prompt(
        self,
        snapshot: RepositorySnapshot,
        architecture: ArchitectureModel,
        previous_intent: IntentSpecification,
        descriptor: SwapDescriptor,
    ) -> str:
        return self._join(
            "Return valid JSON only.",
            "Task: rewrite intent spec after tech stack swap.",
            "Rewrite only impacted modules/interfaces/behavior.",
            "Output schema:",
            _pretty(schema_as_json(IntentSpecification)),
            "Swap descriptor:",
            _pretty(descriptor.to_dict()),
            "Architecture model:",
            _pretty(architecture.to_dict()),
            "Existing intent:",
            _pretty(previous_intent.to_dict()),
            "Repository summary:",
            snapshot_summary(snapshot),
        )

    def plan_prompt(
        self,
        fingerprint: TechnologyFingerprint,
        architecture: ArchitectureModel,
        intent: IntentSpecification,
        snapshot: RepositorySnapshot,
        target_agent: str,
    ) -> str:
        artifacts = {
            "stack": stack_summary(fingerprint),
            "architecture": architecture.to_dict(),
            "intent": intent.to_dict(),
            "routeHints": infer_route_hints(snapshot, intent),
            "designHints": infer_design_hints(snapshot, fingerprint),
            "databaseHints": infer_database_design(fingerprint),
            "targetAgent": target_agent,
        }
        return self._join(
            "Return valid JSON only.",
            "Task: compile an executable build plan prompt for a coding agent.",
            "Output schema:",
            _pretty(schema_as_json(StructuredPlan)),
            "Rules:",
            "- keep build steps concrete, ordered, and directly executable\n"
            "- cover each user-facing route from the route hints in modules and build steps\n"
            "- describe behavior rules and their enforcement, not just feature names\n"
            "- if data store signals exist, include concrete schema/index/migration guidance\n"
            "- derive from architecture + intent + inferred route/design hints\n"
            "- avoid placeholders like 'as needed'",
            "Artifacts:",
            _compact(artifacts),
        )

    @staticmethod
    def _join(*parts: str) -> str:
        return "\n\n".join(parts)


__all__ = [
    "INTENT_FILE_PRIORITY",
    "PromptBuilder",
    "condensed_architecture",
    "intent_summary",
    "pack_file_samples",
    "prioritize_files_for_intent",
    "schema_as_json",
    "snapshot_summary",
]
