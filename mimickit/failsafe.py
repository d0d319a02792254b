"""Deterministic fallback producers used when live extraction is unavailable."""

from __future__ import annotations

import re
from typing import Dict, List, Optional, Sequence

from .models import (
    ArchitectureComponent,
    ArchitectureEdge,
    ArchitectureModel,
    IntentSpecification,
    RepositorySnapshot,
    StructuredPlan,
    SwapDescriptor,
    TechnologyFingerprint,
)
from .prompting.hints import infer_database_design, infer_route_hints

SAFE_LIST_PLACEHOLDER = (
    "No explicit items detected; define during implementation with documented assumptions."
)

_FLOW_MAP: Dict[str, str] = {
    "compose": "User creates new content.",
    "post": "User views and interacts with posts.",
    "edit": "User edits existing content.",
    "projects": "User browses and manages projects.",
    "notifications": "User views activity notifications.",
    "settings": "User manages account settings.",
    "admin": "Admin manages site configuration and users.",
    "invite": "User processes a team invitation.",
    "sign-in": "User signs into the application.",
    "sign-up": "User creates a new account.",
    "search": "User searches for content.",
    "dashboard": "User views operational overview.",
    "profile": "User views or edits their profile.",
}
_DEFAULT_FLOW = "User navigates the application and interacts with primary features."
_DEFAULT_CONTRACT = "Data flows through typed interfaces between architectural components."

_INVARIANTS = [
    "Application state managed server-side with typed API boundaries.",
    "Schema migrations applied before deployment.",
]
_ASSUMPTIONS = [
    "Sampled files represent primary system behavior.",
    "Dependency manifests are present in repo root.",
]
_UNKNOWNS = [
    "Background jobs or scheduled tasks not visible in sampled files.",
    "Third-party integrations outside sampled scope.",
]

_BUILD_STEPS = [
    "Scaffold target repo and baseline tooling (lint/typecheck/test) before feature work.",
    "Build modules and interfaces in architecture dependency order.",
    "Implement behavior rules with explicit service boundaries.",
    "Apply data models, including migrations/schema/index definitions when applicable.",
    "Add tests for services, contracts, and critical edge-case behaviors.",
    "Run validation (typecheck/lint/tests) and fix regressions before completion.",
]
_TEST_EXPECTATIONS = [
    "Unit tests cover request handlers, core business logic, and validation paths.",
    "Integration tests cover critical user flows and module interactions.",
    "Contract tests verify API/data model compatibility and error envelopes.",
    "End-to-end checks validate primary user journeys against the running system.",
]
_NON_GOALS = [
    "No production migration execution against live user data.",
    "No major UX redesign outside the described architecture.",
    "No hidden background jobs/services without explicit architecture updates.",
]

_HTML_TAG = re.compile(r"<[^>]+>")
_FEATURES_SECTION = re.compile(
    r"##\s+(?:Key\s+)?Features\s*\n([\s\S]*?)(?:\n##\s|\n$|$)", re.IGNORECASE
)
_BULLET_PREFIX = re.compile(r"^\s*[-*]\s+\*?\*?")
_BULLET_SUFFIX = re.compile(r"\s+[-\u2014]\s.*$")
_PAGE_FILE = re.compile(r"page\.(tsx|ts|jsx|js)$")
_PERSISTENT_ROLE = re.compile(r"database|storage|persistence", re.IGNORECASE)


# ---------------------------------------------------------------------------
# Architecture


def build_architecture_fallback(
    snapshot: RepositorySnapshot, fingerprint: TechnologyFingerprint
) -> ArchitectureModel:
    """Four-layer architecture named after the top detection in each category.

    Edge endpoints are fixed ids and are not cross-checked against components.
    """
    frontend = _top_name(fingerprint, "frontend", "Frontend")
    backend = _top_name(fingerprint, "backend", "Backend")
    database = _top_name(fingerprint, "data-store", "Data Store")
    auth = _top_name(fingerprint, "auth", "Auth Service")

    components = [
        ArchitectureComponent(
            id="frontend",
            name=frontend,
            role="Client UI layer",
            tech=[frontend],
            inputs=["HTTP response", "user interactions"],
            outputs=["API requests"],
            confidence=0.65,
        ),
        ArchitectureComponent(
            id="backend",
            name=backend,
            role="Application/API layer",
            tech=[backend],
            inputs=["API requests"],
            outputs=["Business responses", "Data queries"],
            confidence=0.62,
        ),
        ArchitectureComponent(
            id="database",
            name=database,
            role="Persistence layer",
            tech=[database],
            inputs=["Data queries"],
            outputs=["Stored records"],
            confidence=0.58,
        ),
        ArchitectureComponent(
            id="auth",
            name=auth,
            role="Identity and access",
            tech=[auth],
            inputs=["Auth requests"],
            outputs=["Tokens/claims"],
            confidence=0.56,
        ),
    ]
    edges = [
        ArchitectureEdge(from_="frontend", to="backend", type="request"),
        ArchitectureEdge(from_="backend", to="database", type="data"),
        ArchitectureEdge(from_="frontend", to="auth", type="request"),
        ArchitectureEdge(from_="auth", to="backend", type="event"),
    ]
    return ArchitectureModel(components=components, edges=edges)


def _top_name(fingerprint: TechnologyFingerprint, category: str, default: str) -> str:
    items = fingerprint.bucket(category)
    return items[0].name if items else default


# ---------------------------------------------------------------------------
# Intent


def strip_html(text: str) -> str:
    return _HTML_TAG.sub("", text).strip()


def truncate_at_sentence(text: str, max_len: int) -> str:
    """Cut ``text`` to ``max_len`` at a sentence boundary, else at a word boundary."""
    if len(text) <= max_len:
        return text
    truncated = text[:max_len]
    cut_at = max(truncated.rfind("."), truncated.rfind("\n\n"))
    if cut_at > max_len * 0.4:
        return truncated[: cut_at + 1].strip()
    last_space = truncated.rfind(" ")
    if last_space > 0:
        return truncated[:last_space].strip() + "..."
    return truncated.strip() + "..."


def readme_description(readme: str) -> str:
    lines = []
    for line in strip_html(readme).split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("!["):
            continue
        if stripped.startswith("#") and len(stripped) < 4:
            continue
        lines.append(line)
    return truncate_at_sentence("\n".join(lines), 500)


def readme_features(readme: str) -> List[str]:
    match = _FEATURES_SECTION.search(readme)
    if not match or not match.group(1):
        return []
    features = []
    for line in match.group(1).split("\n"):
        if not _BULLET_PREFIX.match(line):
            continue
        cleaned = _BULLET_SUFFIX.sub("", _BULLET_PREFIX.sub("", line, count=1)).strip("* \t")
        if len(cleaned) > 3:
            features.append(cleaned)
    return features[:12]


def user_flows_from_routes(snapshot: RepositorySnapshot) -> List[str]:
    routes = [
        node.path
        for node in snapshot.file_tree
        if node.type == "blob" and _PAGE_FILE.search(node.path)
    ]
    flows: List[str] = []
    for route in routes:
        for segment, flow in _FLOW_MAP.items():
            if segment in route and flow not in flows:
                flows.append(flow)
    return flows or [_DEFAULT_FLOW]


def data_contracts(snapshot: RepositorySnapshot, architecture: ArchitectureModel) -> List[str]:
    paths = [node.path for node in snapshot.file_tree]
    contracts: List[str] = []
    if any(path.endswith("schema.prisma") for path in paths):
        contracts.append("Data models defined in Prisma schema with typed client generation.")
    if any("trpc" in path or "routers/" in path for path in paths):
        contracts.append("API contracts enforced via tRPC procedures with Zod validation.")
    if any(path.endswith((".graphql", ".gql")) for path in paths):
        contracts.append("API schema defined in GraphQL with typed resolvers.")
    for component in architecture.components:
        if _PERSISTENT_ROLE.search(component.role):
            contracts.append(
                f"{component.name} manages persistent state via {', '.join(component.tech[:2])}."
            )
    return (contracts or [_DEFAULT_CONTRACT])[:6]


def business_rules(snapshot: RepositorySnapshot) -> List[str]:
    rules: List[str] = []
    if any("auth" in node.path or "middleware" in node.path for node in snapshot.file_tree):
        rules.append("Authentication required for protected routes.")
    env_example = next((file for file in snapshot.files if file.path.endswith(".env.example")), None)
    if env_example is not None:
        content = env_example.content
        if re.search(r"SECRET|JWT|SESSION", content, re.IGNORECASE):
            rules.append("Session secrets must be configured for production.")
        if re.search(r"S3|R2|STORAGE|BUCKET", content, re.IGNORECASE):
            rules.append("External storage service required for file uploads.")
        if re.search(r"DATABASE|DB_URL|POSTGRES", content, re.IGNORECASE):
            rules.append("Database connection must be configured.")
    rules.append("User input validated before persistence.")
    return rules[:6]


def _find_readme(snapshot: RepositorySnapshot) -> Optional[str]:
    for file in snapshot.files:
        if "readme" in file.path.lower():
            return file.content
    return None


def build_intent_fallback(
    snapshot: RepositorySnapshot, architecture: ArchitectureModel
) -> IntentSpecification:
    readme = _find_readme(snapshot)
    if readme is not None:
        purpose = readme_description(readme)
    else:
        purpose = snapshot.repo.description or f"{snapshot.repo.name} application."

    features = readme_features(readme) if readme is not None else []
    core_features = features or [
        f"{component.name}: {component.role}" for component in architecture.components[:5]
    ]

    return IntentSpecification(
        system_purpose=purpose,
        core_features=core_features,
        user_flows=user_flows_from_routes(snapshot),
        business_rules=business_rules(snapshot),
        data_contracts=data_contracts(snapshot, architecture),
        invariants=list(_INVARIANTS),
        assumptions=list(_ASSUMPTIONS),
        unknowns=list(_UNKNOWNS),
        confidence_by_section={
            "system_purpose": 0.8 if readme is not None else 0.5,
            "core_features": 0.85 if features else 0.5,
            "user_flows": 0.6,
            "data_contracts": 0.55,
            "invariants": 0.5,
            "assumptions": 0.5,
            "unknowns": 0.4,
        },
    )


def build_swap_intent_fallback(
    previous: IntentSpecification, descriptor: SwapDescriptor
) -> IntentSpecification:
    """Prior intent annotated with the swap, for when the rewrite cannot run live."""
    return previous.model_copy(
        update={
            "assumptions": [
                *previous.assumptions,
                f"Tech swap applied: {descriptor.from_} -> {descriptor.to}.",
            ],
            "unknowns": [
                *previous.unknowns,
                "Post-swap migration complexity may require manual review.",
            ],
        },
        deep=True,
    )


# ---------------------------------------------------------------------------
# Plan


def safe_list(items: Sequence[str]) -> List[str]:
    return list(items) if items else [SAFE_LIST_PLACEHOLDER]


def build_plan_fallback(
    fingerprint: TechnologyFingerprint,
    architecture: ArchitectureModel,
    intent: IntentSpecification,
    snapshot: RepositorySnapshot,
    target_agent: str,
) -> StructuredPlan:
    routes = [route["path"] for route in infer_route_hints(snapshot, intent)]
    return StructuredPlan(
        system_overview=intent.system_purpose,
        architecture_description="\n".join(
            f"{component.name}: {component.role} [{', '.join(component.tech)}]"
            for component in architecture.components
        ),
        module_list=[component.name for component in architecture.components],
        interfaces=[f"{edge.from_} -> {edge.to} ({edge.type})" for edge in architecture.edges],
        data_models=[
            *intent.data_contracts,
            *infer_database_design(fingerprint),
            *(f"Map contract to stored model: {contract}" for contract in intent.data_contracts[:4]),
        ],
        behavior_rules=safe_list([*intent.business_rules, *intent.invariants]),
        build_steps=[
            _BUILD_STEPS[0],
            f"Implement route-level layouts and navigation for: {', '.join(routes)}.",
            *_BUILD_STEPS[1:],
        ],
        test_expectations=list(_TEST_EXPECTATIONS),
        constraints=[
            f"Target agent is {target_agent}; output should be directly executable by that agent.",
            "Do not introduce out-of-scope features or unsupported infrastructure assumptions.",
            "Maintain compatibility with detected stack unless explicitly swapped.",
            "Prefer deterministic implementation details over vague placeholders.",
        ],
        non_goals=list(_NON_GOALS),
    )


__all__ = [
    "SAFE_LIST_PLACEHOLDER",
    "build_architecture_fallback",
    "build_intent_fallback",
    "build_plan_fallback",
    "build_swap_intent_fallback",
    "readme_description",
    "readme_features",
    "safe_list",
    "truncate_at_sentence",
]
