"""Tests for the architecture, intent and plan stages."""

from __future__ import annotations

import json

from mimickit.analyzers import detect_stack
from mimickit.extraction import ExtractionContract
from mimickit.extractors import ArchitectureExtractor, IntentExtractor, PlanCompiler
from mimickit.failsafe import build_architecture_fallback, build_intent_fallback, build_plan_fallback
from mimickit.models import (
    MODEL_VERSION,
    IntentSpecification,
    RepositorySnapshot,
    SwapDescriptor,
    TechnologyFingerprint,
)
from mimickit.prompting import render_plan
from tests._fixtures.snapshots import ScriptedRunner, make_snapshot

LIVE_ARCHITECTURE = {
    "version": "0.0.1",
    "components": [
        {
            "id": "web",
            "name": "Web",
            "role": "Client UI layer",
            "tech": ["Next.js"],
            "inputs": ["clicks"],
            "outputs": ["requests"],
        }
    ],
    "edges": [],
}

LIVE_INTENT = {
    "system_purpose": "Team notes.",
    "core_features": ["Editing"],
    "user_flows": ["User edits a note."],
    "business_rules": ["Only members can edit."],
    "data_contracts": ["Note has an owner."],
    "invariants": ["Notes always have an owner."],
    "assumptions": [],
    "unknowns": [],
}


def test_architecture_extractor_stamps_version_on_live_output(
    next_snapshot: RepositorySnapshot,
) -> None:
    runner = ScriptedRunner([json.dumps(LIVE_ARCHITECTURE)])
    extractor = ArchitectureExtractor(ExtractionContract(runner))

    outcome = extractor.run(next_snapshot, detect_stack(next_snapshot))

    assert outcome.live
    assert outcome.value.version == MODEL_VERSION
    assert [component.id for component in outcome.value.components] == ["web"]
    assert "Task: extract architecture model" in runner.prompts[0]


def test_intent_extractor_falls_back_when_service_keeps_failing(
    next_snapshot: RepositorySnapshot,
) -> None:
    runner = ScriptedRunner(["not json", RuntimeError("timeout"), "{}"])
    extractor = IntentExtractor(ExtractionContract(runner, max_retries=2))
    architecture = build_architecture_fallback(next_snapshot, detect_stack(next_snapshot))

    outcome = extractor.run(next_snapshot, architecture)

    assert outcome.source == "fallback"
    assert outcome.attempts == 3
    assert outcome.value == build_intent_fallback(next_snapshot, architecture)


def test_rewrite_for_swap_accepts_live_rewrite(next_snapshot: RepositorySnapshot) -> None:
    runner = ScriptedRunner([json.dumps(LIVE_INTENT)])
    extractor = IntentExtractor(ExtractionContract(runner))
    architecture = build_architecture_fallback(next_snapshot, detect_stack(next_snapshot))
    previous = build_intent_fallback(next_snapshot, architecture)
    descriptor = SwapDescriptor(category="data-store", from_="MongoDB", to="PostgreSQL")

    outcome = extractor.rewrite_for_swap(next_snapshot, architecture, previous, descriptor)

    assert outcome.live
    assert outcome.value.system_purpose == "Team notes."
    assert "Task: rewrite intent spec after tech stack swap." in runner.prompts[0]


def test_rewrite_for_swap_without_service_annotates_previous(
    next_snapshot: RepositorySnapshot,
) -> None:
    extractor = IntentExtractor(ExtractionContract(None))
    architecture = build_architecture_fallback(next_snapshot, detect_stack(next_snapshot))
    previous = build_intent_fallback(next_snapshot, architecture)
    descriptor = SwapDescriptor(category="data-store", from_="MongoDB", to="PostgreSQL")

    value = extractor.rewrite_for_swap(next_snapshot, architecture, previous, descriptor).value

    assert value.assumptions[-1] == "Tech swap applied: MongoDB -> PostgreSQL."


def test_plan_compiler_renders_prompt_from_structured_plan(
    next_snapshot: RepositorySnapshot,
) -> None:
    fingerprint = detect_stack(next_snapshot)
    architecture = build_architecture_fallback(next_snapshot, fingerprint)
    intent = build_intent_fallback(next_snapshot, architecture)
    compiler = PlanCompiler(ExtractionContract(None))

    plan = compiler.compile(fingerprint, architecture, intent, next_snapshot, "generic")

    assert plan.target_agent == "generic"
    assert plan.structured == build_plan_fallback(
        fingerprint, architecture, intent, next_snapshot, "generic"
    )
    assert plan.prompt == render_plan(plan.structured, "generic")
    assert plan.prompt.startswith("Target agent: generic\n")


def test_plan_compiler_assemble_skips_the_service() -> None:
    runner = ScriptedRunner([])
    compiler = PlanCompiler(ExtractionContract(runner))
    architecture = build_architecture_fallback(make_snapshot(), TechnologyFingerprint())
    intent = IntentSpecification.model_validate(LIVE_INTENT)

    structured = build_plan_fallback(
        TechnologyFingerprint(), architecture, intent, make_snapshot(), "codex"
    )
    plan = compiler.assemble(structured, "codex")

    assert runner.calls == 0
    assert plan.prompt.startswith("Target agent: codex\n1. System overview\nTeam notes.")


def test_plan_prompt_carries_route_design_and_database_hints(
    next_snapshot: RepositorySnapshot,
) -> None:
    runner = ScriptedRunner(["not json"])
    fingerprint = detect_stack(next_snapshot)
    architecture = build_architecture_fallback(next_snapshot, fingerprint)
    intent = build_intent_fallback(next_snapshot, architecture)

    outcome = PlanCompiler(ExtractionContract(runner, max_retries=0)).run(
        fingerprint, architecture, intent, next_snapshot, "codex"
    )

    artifacts = json.loads(runner.prompts[0].rsplit("\n\n", 1)[-1])
    assert [route["path"] for route in artifacts["routeHints"]] == ["/compose", "/settings"]
    assert artifacts["routeHints"][1]["layout"].startswith("Two-column settings layout")
    assert artifacts["designHints"]["visualDirection"].startswith("Design system for Next.js")
    assert artifacts["databaseHints"][0].startswith("MongoDB design")
    assert outcome.source == "fallback"
    assert any(line.startswith("MongoDB design") for line in outcome.value.data_models)
