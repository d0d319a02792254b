"""Tests for deterministic fallback producers."""

from __future__ import annotations

from mimickit.analyzers import detect_stack
from mimickit.failsafe import (
    SAFE_LIST_PLACEHOLDER,
    build_architecture_fallback,
    build_intent_fallback,
    build_plan_fallback,
    build_swap_intent_fallback,
    readme_description,
    readme_features,
    truncate_at_sentence,
)
from mimickit.models import RepositorySnapshot, SwapDescriptor, TechnologyFingerprint
from tests._fixtures.snapshots import make_snapshot


def test_architecture_fallback_names_layers_after_detections(
    next_snapshot: RepositorySnapshot,
) -> None:
    architecture = build_architecture_fallback(next_snapshot, detect_stack(next_snapshot))

    names = {component.id: component.name for component in architecture.components}
    assert names == {
        "frontend": "Next.js",
        "backend": "Backend",
        "database": "MongoDB",
        "auth": "NextAuth",
    }
    assert [(edge.from_, edge.to, edge.type) for edge in architecture.edges] == [
        ("frontend", "backend", "request"),
        ("backend", "database", "data"),
        ("frontend", "auth", "request"),
        ("auth", "backend", "event"),
    ]


def test_architecture_fallback_for_empty_fingerprint() -> None:
    architecture = build_architecture_fallback(make_snapshot(), TechnologyFingerprint())

    assert [component.name for component in architecture.components] == [
        "Frontend",
        "Backend",
        "Data Store",
        "Auth Service",
    ]


def test_intent_fallback_reads_readme_and_routes(next_snapshot: RepositorySnapshot) -> None:
    architecture = build_architecture_fallback(next_snapshot, detect_stack(next_snapshot))
    intent = build_intent_fallback(next_snapshot, architecture)

    assert "A collaborative notes app for small teams." in intent.system_purpose
    assert "<p" not in intent.system_purpose
    assert "badge" not in intent.system_purpose
    assert intent.core_features == ["Realtime editing", "Shared workspaces", "Search across notes"]
    assert intent.user_flows == ["User creates new content.", "User manages account settings."]
    assert intent.business_rules == [
        "Authentication required for protected routes.",
        "User input validated before persistence.",
    ]
    assert "MongoDB manages persistent state via MongoDB." in intent.data_contracts
    assert intent.confidence_by_section["core_features"] == 0.85


def test_intent_fallback_without_readme_uses_components() -> None:
    snapshot = make_snapshot(
        {".env.example": "DATABASE_URL=\nJWT_SECRET=\n"},
        tree=["prisma/schema.prisma"],
        description="Invoice tracker.",
    )
    architecture = build_architecture_fallback(snapshot, TechnologyFingerprint())
    intent = build_intent_fallback(snapshot, architecture)

    assert intent.system_purpose == "Invoice tracker."
    assert intent.core_features[0] == "Frontend: Client UI layer"
    assert intent.user_flows == [
        "User navigates the application and interacts with primary features."
    ]
    assert intent.business_rules == [
        "Session secrets must be configured for production.",
        "Database connection must be configured.",
        "User input validated before persistence.",
    ]
    assert intent.data_contracts[0].startswith("Data models defined in Prisma schema")
    assert intent.confidence_by_section["system_purpose"] == 0.5


def test_readme_helpers() -> None:
    assert readme_features("# Title\n\nNo features here.") == []
    assert readme_features("## Key Features\n* **Fast** \u2014 very\n- ok\n") == ["Fast"]
    assert readme_description("<h1>Demo</h1>\n\nDoes things.") == "Demo\nDoes things."


def test_truncate_at_sentence_prefers_sentence_boundary() -> None:
    text = "First sentence is here. Second sentence runs on and on without stopping"

    assert truncate_at_sentence(text, 200) == text
    assert truncate_at_sentence(text, 40) == "First sentence is here."
    assert truncate_at_sentence("word " * 20, 12) == "word word..."


def test_plan_fallback_uses_placeholders_for_empty_lists(
    next_snapshot: RepositorySnapshot,
) -> None:
    fingerprint = detect_stack(next_snapshot)
    architecture = build_architecture_fallback(next_snapshot, fingerprint)
    intent = build_intent_fallback(next_snapshot, architecture).model_copy(
        update={"data_contracts": [], "business_rules": [], "invariants": []}
    )

    plan = build_plan_fallback(fingerprint, architecture, intent, next_snapshot, "codex")

    assert plan.behavior_rules == [SAFE_LIST_PLACEHOLDER]
    assert plan.module_list == ["Next.js", "Backend", "MongoDB", "NextAuth"]
    assert plan.interfaces[0] == "frontend -> backend (request)"
    assert plan.constraints[0].startswith("Target agent is codex;")
    assert len(plan.build_steps) == 7
    assert plan.build_steps[1] == (
        "Implement route-level layouts and navigation for: /compose, /settings."
    )


def test_plan_fallback_folds_database_design_into_data_models(
    next_snapshot: RepositorySnapshot,
) -> None:
    fingerprint = detect_stack(next_snapshot)
    architecture = build_architecture_fallback(next_snapshot, fingerprint)
    intent = build_intent_fallback(next_snapshot, architecture).model_copy(
        update={"data_contracts": ["Note(id, body, workspace_id)"]}
    )

    plan = build_plan_fallback(fingerprint, architecture, intent, next_snapshot, "codex")

    assert plan.data_models[0] == "Note(id, body, workspace_id)"
    assert plan.data_models[1].startswith("MongoDB design: define collections per aggregate")
    assert plan.data_models[-1] == "Map contract to stored model: Note(id, body, workspace_id)"


def test_plan_fallback_without_data_store_gives_generic_guidance() -> None:
    snapshot = make_snapshot({"README.md": "# Tool\n\nA command line tool.\n"})
    fingerprint = TechnologyFingerprint()
    architecture = build_architecture_fallback(snapshot, fingerprint)
    intent = build_intent_fallback(snapshot, architecture).model_copy(update={"data_contracts": []})

    plan = build_plan_fallback(fingerprint, architecture, intent, snapshot, "generic")

    assert plan.data_models[0].startswith("No explicit database detected")
    assert "navigation for: /." in plan.build_steps[1]


def test_swap_intent_fallback_annotates_previous(next_snapshot: RepositorySnapshot) -> None:
    architecture = build_architecture_fallback(next_snapshot, detect_stack(next_snapshot))
    previous = build_intent_fallback(next_snapshot, architecture)
    descriptor = SwapDescriptor(category="data-store", from_="MongoDB", to="PostgreSQL")

    rewritten = build_swap_intent_fallback(previous, descriptor)

    assert rewritten.assumptions[-1] == "Tech swap applied: MongoDB -> PostgreSQL."
    assert rewritten.unknowns[-1] == "Post-swap migration complexity may require manual review."
    assert rewritten.system_purpose == previous.system_purpose
    assert len(previous.assumptions) == len(rewritten.assumptions) - 1
