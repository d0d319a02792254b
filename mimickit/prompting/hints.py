"""Deterministic route, design and database hints for plan compilation."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, List

from ..models import IntentSpecification, RepositorySnapshot, TechnologyFingerprint

MAX_ROUTE_HINTS = 20

_APP_PAGE = re.compile(r"^(?:src/)?app/(?:(.*)/)?page\.(?:tsx|ts|jsx|js|mdx)$")
_PAGES_FILE = re.compile(r"^pages/(.*)\.(?:tsx|ts|jsx|js)$")
_NON_WORD = re.compile(r"[^a-z0-9/]")

_NO_DATABASE = [
    "No explicit database detected from sampled files. Implement repository interfaces "
    "and document persistence assumptions.",
    "Keep data contracts versioned and isolate storage behind service boundaries.",
]


def _normalize_route(raw: str) -> str:
    # Route groups "(marketing)" and parallel slots "@modal" do not appear in URLs.
    segments = [
        segment
        for segment in raw.split("/")
        if segment and not (segment.startswith("(") and segment.endswith(")")) and not segment.startswith("@")
    ]
    return "/" + "/".join(segments)


def _route_paths(snapshot: RepositorySnapshot) -> List[str]:
    paths = set()
    for node in snapshot.file_tree:
        match = _APP_PAGE.match(node.path)
        if match:
            paths.add(_normalize_route(match.group(1) or ""))
            continue
        match = _PAGES_FILE.match(node.path)
        if match and "/api/" not in node.path and not node.path.rsplit("/", 1)[-1].startswith("_"):
            route = match.group(1)
            if route == "index" or route.endswith("/index"):
                route = route[: -len("index")]
            paths.add(_normalize_route(route))
    return sorted(paths or {"/"}, key=lambda path: (path != "/", path))


def _is_auth(lower: str) -> bool:
    return "auth" in lower or "login" in lower or "sign" in lower


def route_purpose(path: str, intent: IntentSpecification) -> str:
    lower = path.lower()
    if path == "/":
        return "Entry point for navigation and core task initiation."
    if _is_auth(lower):
        return "Handles authentication, session initiation, and access control transitions."
    if "dashboard" in lower:
        return "Provides operational overview and status monitoring for key system outputs."
    if "api" in lower:
        return "Exposes server interface for structured requests and domain operations."
    if intent.user_flows:
        return f"Supports user flow: {intent.user_flows[0]}"
    return "Supports primary business flow inferred from system intent."


def route_layout(path: str) -> str:
    lower = path.lower()
    if path == "/":
        return "Primary shell layout with top navigation, summary hero area, and action-focused content blocks."
    if "dashboard" in lower or "admin" in lower:
        return "Dense dashboard layout with stats rail, filter controls, and data grid/table body."
    if "setting" in lower or "profile" in lower:
        return "Two-column settings layout with section navigation and form-heavy detail panel."
    if "[" in path or "detail" in lower or "item" in lower:
        return "Detail layout with context header, segmented content sections, and related actions sidebar."
    if _is_auth(lower):
        return "Narrow auth layout centered on form card, validation messaging, and alternate auth providers."
    return "Standard page layout with title/actions header, main content region, and contextual feedback area."


def route_components(path: str) -> List[str]:
    lower = path.lower()
    if path == "/":
        return ["Top nav", "hero/overview block", "primary CTA group", "summary cards"]
    if "dashboard" in lower:
        return ["KPI cards", "filter bar", "table/grid", "activity timeline"]
    if _is_auth(lower):
        return ["Auth form", "field validation", "submit controls", "fallback/error messaging"]
    if "setting" in lower or "profile" in lower:
        return ["Section tabs", "editable forms", "save/cancel actions", "success/error alerts"]
    if "[" in path:
        return ["Context header", "detail panels", "related records", "secondary actions"]
    return ["Page header", "content section", "interactive controls", "feedback states"]


def route_logic(path: str, intent: IntentSpecification) -> List[str]:
    keywords = [word for word in _NON_WORD.sub("", path.lower()).split("/") if len(word) > 2]

    def mentions(text: str) -> bool:
        lowered = text.lower()
        return any(word in lowered for word in keywords)

    flows = [flow for flow in intent.user_flows if mentions(flow)][:2]
    rules = [rule for rule in intent.business_rules if mentions(rule)][:2]
    return flows + rules


def infer_route_hints(
    snapshot: RepositorySnapshot, intent: IntentSpecification
) -> List[Dict[str, Any]]:
    """Page routes found in the file tree, each with a suggested layout."""
    return [
        {
            "path": path,
            "purpose": route_purpose(path, intent),
            "layout": route_layout(path),
            "components": route_components(path),
            "logic": route_logic(path, intent),
        }
        for path in _route_paths(snapshot)[:MAX_ROUTE_HINTS]
    ]


def package_dependencies(snapshot: RepositorySnapshot) -> Dict[str, Any]:
    manifest = next((file for file in snapshot.files if file.path.endswith("package.json")), None)
    if manifest is None:
        return {}
    try:
        data = json.loads(manifest.content)
    except (ValueError, RecursionError):
        return {}
    if not isinstance(data, dict):
        return {}
    merged: Dict[str, Any] = {}
    for section in ("dependencies", "devDependencies"):
        values = data.get(section)
        if isinstance(values, dict):
            merged.update(values)
    return merged


def infer_design_hints(
    snapshot: RepositorySnapshot, fingerprint: TechnologyFingerprint
) -> Dict[str, Any]:
    names = [name.lower() for name in package_dependencies(snapshot)]

    def has(needle: str) -> bool:
        return any(needle in name for name in names)

    frontend = next(iter(fingerprint.top_names("frontend")), "web framework")
    if has("tailwind"):
        palette = [
            "Use semantic tokens built on neutral scale (surface/base/text)",
            "Define primary, accent, success, warning, and danger colors in design tokens",
            "Ensure contrast ratios for text and interactive states",
        ]
    else:
        palette = [
            "Define CSS variables for background/surface/border/text/primary/accent",
            "Map color tokens to component states (default/hover/active/disabled)",
            "Use consistent grayscale + one primary accent family",
        ]
    components = [
        "App shell (header + navigation + workspace regions)",
        "Button variants (primary, ghost, destructive, loading)",
        "Form controls (input/select/textarea with validation states)",
        "Data display primitives (cards, tables, badges, confidence indicators)",
        "Feedback surfaces (toasts, inline errors, empty/loading/skeleton states)",
    ]
    if has("radix") or has("shadcn") or has("headless"):
        components.append("Headless composable primitives with app-level styling tokens")
    if has("material") or has("@mui"):
        components.append("Theme-driven component variants aligned with Material tokens")
    return {
        "visualDirection": (
            f"Design system for {frontend}: high-clarity workspace with strong hierarchy, "
            "restrained accents, and explicit state feedback."
        ),
        "colorPalette": palette,
        "typography": [
            "Primary UI font for body and labels with clear readability at 12-16px",
            "Secondary mono font for technical metadata and diagnostics",
            "Consistent heading scale with explicit weight/line-height tokens",
        ],
        "components": components,
    }


def infer_database_design(fingerprint: TechnologyFingerprint) -> List[str]:
    """Storage guidance for each top data store, or generic guidance when none is known."""
    names = fingerprint.top_names("data-store")
    if not names:
        return list(_NO_DATABASE)
    details: List[str] = []
    for name in names:
        lower = name.lower()
        if "mongo" in lower:
            details.append(
                "MongoDB design: define collections per aggregate, enforce schema validation, "
                "and create indexes for high-frequency query fields."
            )
            details.append(
                "Adopt explicit document versioning and migration scripts for backward-compatible schema changes."
            )
        elif any(token in lower for token in ("postgres", "mysql", "sql", "prisma")):
            details.append(
                "Relational design: identify core entities from contracts, normalize to stable table "
                "boundaries, and enforce foreign keys + unique constraints."
            )
            details.append("Use migration tooling with forward-only migrations and seed data for local/dev parity.")
        elif "dynamo" in lower:
            details.append(
                "DynamoDB design: model access patterns first, define partition/sort keys, "
                "and precompute GSIs for query-heavy views."
            )
            details.append("Keep item shapes explicit and track TTL/archival behavior for event-like records.")
        else:
            details.append(
                f"Database design for {name}: define canonical entity boundaries, keys, and lifecycle/migration strategy."
            )
    return details


__all__ = [
    "infer_database_design",
    "infer_design_hints",
    "infer_route_hints",
    "package_dependencies",
]
