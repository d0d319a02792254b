"""Technology compatibility registry consulted by stack swaps."""

from __future__ import annotations

from typing import Optional

from ..models import TechRegistry, TechRegistryEntry

TECH_REGISTRY = TechRegistry(
    version="1.0.0",
    entries=[
        TechRegistryEntry(
            key="next.js",
            category="frontend",
            alternatives=["remix", "nuxt", "sveltekit"],
            compatibility_notes=[
                "App Router route handlers map to Remix loaders/actions.",
                "Server component patterns need replacement when target framework lacks RSC.",
            ],
            transformation_hints=[
                "Rewrite file-system route docs to target framework conventions.",
                "Replace Next-specific runtime APIs with framework equivalents.",
            ],
        ),
        TechRegistryEntry(
            key="react",
            category="frontend",
            alternatives=["vue", "svelte", "solid"],
            compatibility_notes=["Component patterns differ by reactivity model."],
            transformation_hints=["Rewrite component contracts and state rules to target idioms."],
        ),
        TechRegistryEntry(
            key="express",
            category="backend",
            alternatives=["fastify", "fastapi", "nestjs"],
            compatibility_notes=["Middleware pipeline ordering differs between frameworks."],
            transformation_hints=[
                "Map Express middleware and router docs to target routing conventions.",
                "Translate request/response object expectations.",
            ],
        ),
        TechRegistryEntry(
            key="django",
            category="backend",
            alternatives=["fastapi", "flask"],
            compatibility_notes=["ORM and admin assumptions may not transfer 1:1."],
            transformation_hints=[
                "Regenerate module and data access sections around target ORM/runtime."
            ],
        ),
        TechRegistryEntry(
            key="fastapi",
            category="backend",
            alternatives=["express", "django", "flask"],
            compatibility_notes=["Type-driven schema generation may need manual equivalents."],
            transformation_hints=[
                "Convert pydantic/data validation assumptions to target stack patterns."
            ],
        ),
        TechRegistryEntry(
            key="mongodb",
            category="data-store",
            alternatives=["postgresql", "mysql", "dynamodb"],
            compatibility_notes=["Document schema-less to relational mapping explicitly."],
            transformation_hints=[
                "Rewrite data model section with relational tables when switching to SQL.",
                "Add migration and indexing notes for new datastore.",
            ],
        ),
        TechRegistryEntry(
            key="postgresql",
            category="data-store",
            alternatives=["mongodb", "mysql", "cockroachdb"],
            compatibility_notes=[
                "Transactional behavior and query model differ from document stores."
            ],
            transformation_hints=["Adjust data contracts and constraints around SQL semantics."],
        ),
        TechRegistryEntry(
            key="firebase",
            category="auth",
            alternatives=["auth0", "clerk", "supabase-auth"],
            compatibility_notes=["Token claim and provider management models vary."],
            transformation_hints=["Rewrite auth integration interface and user lifecycle rules."],
        ),
        TechRegistryEntry(
            key="aws-lambda",
            category="infrastructure",
            alternatives=["vercel-functions", "cloud-run", "kubernetes"],
            compatibility_notes=["Cold starts and runtime limits differ."],
            transformation_hints=["Update deployment constraints and scaling assumptions in plan."],
        ),
    ],
)


def lookup_technology(
    name: str, registry: TechRegistry = TECH_REGISTRY
) -> Optional[TechRegistryEntry]:
    """Return the first entry whose key or alternatives match ``name`` case-insensitively."""
    lowered = name.strip().lower()
    for entry in registry.entries:
        if entry.key.lower() == lowered:
            return entry
        if lowered in (alternative.lower() for alternative in entry.alternatives):
            return entry
    return None
