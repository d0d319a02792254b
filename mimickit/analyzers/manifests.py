"""Manifest analyzers backed by small data-driven rule tables."""

from __future__ import annotations

import json
import re
from pathlib import PurePosixPath
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from .base import ManifestAnalyzer
from ..models import Finding


class DependencyRule(NamedTuple):
    """Emit a finding when any of ``packages`` is declared."""

    packages: Tuple[str, ...]
    category: str
    names: Tuple[str, ...]
    boost: float
    evidence: str


class ContentRule(NamedTuple):
    """Emit a finding when ``needle`` appears in the lower-cased manifest text."""

    needle: str
    category: str
    name: str
    boost: float
    evidence: str


NODE_RULES: Tuple[DependencyRule, ...] = (
    DependencyRule(("next",), "frontend", ("Next.js",), 0.25, "package.json: dependency next"),
    DependencyRule(("react",), "frontend", ("React",), 0.2, "package.json: dependency react"),
    DependencyRule(("express",), "backend", ("Express",), 0.22, "package.json: dependency express"),
    DependencyRule(("fastify",), "backend", ("Fastify",), 0.18, "package.json: dependency fastify"),
    DependencyRule(("mongoose",), "data-store", ("MongoDB",), 0.24, "package.json: dependency mongoose"),
    DependencyRule(("pg", "postgres"), "data-store", ("PostgreSQL",), 0.2, "package.json: dependency pg/postgres"),
    DependencyRule(("prisma",), "data-store", ("Prisma",), 0.2, "package.json: dependency prisma"),
    DependencyRule(
        ("firebase", "firebase-admin"),
        "auth",
        ("Firebase",),
        0.23,
        "package.json: dependency firebase/firebase-admin",
    ),
    DependencyRule(
        ("next-auth", "@clerk/nextjs", "auth0"),
        "auth",
        ("NextAuth", "Clerk", "Auth0"),
        0.18,
        "package.json: auth dependency",
    ),
)

REQUIREMENTS_RULES: Tuple[ContentRule, ...] = (
    ContentRule("django", "backend", "Django", 0.25, "requirements.txt: django"),
    ContentRule("fastapi", "backend", "FastAPI", 0.25, "requirements.txt: fastapi"),
    ContentRule("flask", "backend", "Flask", 0.22, "requirements.txt: flask"),
    ContentRule("sqlalchemy", "data-store", "SQLAlchemy", 0.18, "requirements.txt: sqlalchemy"),
)

PYPROJECT_RULES: Tuple[ContentRule, ...] = (
    ContentRule("django", "backend", "Django", 0.22, "pyproject.toml contains django"),
    ContentRule("fastapi", "backend", "FastAPI", 0.22, "pyproject.toml contains fastapi"),
)

GO_MOD_RULES: Tuple[ContentRule, ...] = (
    ContentRule("gin-gonic/gin", "backend", "Gin", 0.23, "go.mod contains gin-gonic/gin"),
    ContentRule("gorm.io/gorm", "data-store", "GORM", 0.18, "go.mod contains gorm.io/gorm"),
)

CARGO_RULES: Tuple[ContentRule, ...] = (
    ContentRule("actix-web", "backend", "Actix", 0.21, "Cargo.toml contains actix-web"),
    ContentRule("diesel", "data-store", "Diesel", 0.17, "Cargo.toml contains diesel"),
)

JAVA_RULES: Dict[str, Tuple[ContentRule, ...]] = {
    "pom.xml": (
        ContentRule("spring-boot", "backend", "Spring Boot", 0.25, "pom.xml contains spring-boot"),
    ),
    "build.gradle": (
        ContentRule(
            "org.springframework.boot",
            "backend",
            "Spring Boot",
            0.25,
            "build.gradle contains org.springframework.boot",
        ),
    ),
}

DOCKERFILE_RULES: Tuple[ContentRule, ...] = (
    ContentRule("node:", "infrastructure", "Node Runtime", 0.15, "Dockerfile FROM node"),
    ContentRule("python:", "infrastructure", "Python Runtime", 0.15, "Dockerfile FROM python"),
)


def clean_version(value: object) -> Optional[str]:
    """Strip range operators and prefixes from a declared version."""
    if not isinstance(value, str) or not value:
        return None
    return re.sub(r"^[^0-9]*", "", value) or value


def _match_content(content: str, rules: Iterable[ContentRule]) -> List[Finding]:
    lowered = content.lower()
    return [
        Finding(category=rule.category, name=rule.name, evidence=rule.evidence, boost=rule.boost)
        for rule in rules
        if rule.needle in lowered
    ]


class PackageJsonAnalyzer(ManifestAnalyzer):
    """Reads runtime and dev dependencies declared in package.json."""

    filenames = frozenset({"package.json"})

    def __init__(self, rules: Tuple[DependencyRule, ...] = NODE_RULES) -> None:
        self.rules = rules

    def analyze(self, content: str, path: str) -> Iterable[Finding]:
        deps = self._load_dependencies(content)
        findings: List[Finding] = []
        for rule in self.rules:
            present = [(package, name) for package, name in self._pairs(rule) if package in deps]
            if not present:
                continue
            _, name = present[0]
            version = next((clean_version(deps[package]) for package, _ in present if deps[package]), None)
            findings.append(
                Finding(
                    category=rule.category,
                    name=name,
                    evidence=rule.evidence,
                    boost=rule.boost,
                    version=version,
                )
            )
        return findings

    @staticmethod
    def _pairs(rule: DependencyRule) -> List[Tuple[str, str]]:
        if len(rule.names) == len(rule.packages):
            return list(zip(rule.packages, rule.names))
        return [(package, rule.names[0]) for package in rule.packages]

    @staticmethod
    def _load_dependencies(content: str) -> Dict[str, object]:
        try:
            data = json.loads(content)
        except json.JSONDecodeError:
            return {}
        if not isinstance(data, dict):
            return {}
        merged: Dict[str, object] = {}
        for key in ("dependencies", "devDependencies"):
            section = data.get(key)
            if isinstance(section, dict):
                merged.update(section)
        return merged


class RequirementsAnalyzer(ManifestAnalyzer):
    """Matches requirement lines by package-name prefix."""

    filenames = frozenset({"requirements.txt"})

    def analyze(self, content: str, path: str) -> Iterable[Finding]:
        lines = [line.strip().lower() for line in content.splitlines()]
        lines = [line for line in lines if line]
        return [
            Finding(category=rule.category, name=rule.name, evidence=rule.evidence, boost=rule.boost)
            for rule in REQUIREMENTS_RULES
            if any(line.startswith(rule.needle) for line in lines)
        ]


class ContentAnalyzer(ManifestAnalyzer):
    """Substring rules over a single manifest kind."""

    def __init__(self, filename: str, rules: Tuple[ContentRule, ...]) -> None:
        self.filenames = frozenset({filename})
        self.rules = rules

    def analyze(self, content: str, path: str) -> Iterable[Finding]:
        return _match_content(content, self.rules)


class JavaBuildAnalyzer(ManifestAnalyzer):
    """Detects Spring Boot in Maven or Gradle builds."""

    filenames = frozenset(JAVA_RULES)

    def analyze(self, content: str, path: str) -> Iterable[Finding]:
        return _match_content(content, JAVA_RULES.get(PurePosixPath(path).name, ()))


def builtin_analyzers() -> List[ManifestAnalyzer]:
    return [
        PackageJsonAnalyzer(),
        RequirementsAnalyzer(),
        ContentAnalyzer("pyproject.toml", PYPROJECT_RULES),
        ContentAnalyzer("go.mod", GO_MOD_RULES),
        ContentAnalyzer("Cargo.toml", CARGO_RULES),
        JavaBuildAnalyzer(),
        ContentAnalyzer("Dockerfile", DOCKERFILE_RULES),
    ]


__all__ = [
    "ContentAnalyzer",
    "ContentRule",
    "DependencyRule",
    "JavaBuildAnalyzer",
    "PackageJsonAnalyzer",
    "RequirementsAnalyzer",
    "builtin_analyzers",
    "clean_version",
]
