"""Tests for individual manifest analyzers."""

from __future__ import annotations

from mimickit.analyzers.manifests import (
    JavaBuildAnalyzer,
    PackageJsonAnalyzer,
    RequirementsAnalyzer,
    builtin_analyzers,
    clean_version,
)


def test_clean_version_strips_range_operators() -> None:
    assert clean_version("^14.0.0") == "14.0.0"
    assert clean_version("~8.1.0") == "8.1.0"
    assert clean_version("latest") == "latest"
    assert clean_version("") is None
    assert clean_version(None) is None


def test_package_json_reads_dev_dependencies() -> None:
    content = '{"devDependencies": {"@clerk/nextjs": "^4.29.0", "pg": "8.11.0"}}'
    findings = list(PackageJsonAnalyzer().analyze(content, "package.json"))

    by_name = {finding.name: finding for finding in findings}
    assert by_name["Clerk"].category == "auth"
    assert by_name["Clerk"].version == "4.29.0"
    assert by_name["PostgreSQL"].boost == 0.2


def test_package_json_with_invalid_json_yields_nothing() -> None:
    assert list(PackageJsonAnalyzer().analyze("{not json", "package.json")) == []


def test_requirements_match_line_prefix_only() -> None:
    findings = list(RequirementsAnalyzer().analyze("# flask is great\nFlask==3.0\n", "requirements.txt"))
    assert [finding.name for finding in findings] == ["Flask"]
    assert list(RequirementsAnalyzer().analyze("# uses flask\n", "requirements.txt")) == []


def test_java_build_rules_depend_on_filename() -> None:
    analyzer = JavaBuildAnalyzer()
    gradle = "plugins { id 'org.springframework.boot' version '3.2.0' }"
    assert [f.name for f in analyzer.analyze(gradle, "app/build.gradle")] == ["Spring Boot"]
    assert list(analyzer.analyze(gradle, "pom.xml")) == []


def test_builtin_analyzers_cover_known_manifests() -> None:
    analyzers = builtin_analyzers()
    for path in (
        "package.json",
        "requirements.txt",
        "pyproject.toml",
        "go.mod",
        "Cargo.toml",
        "pom.xml",
        "build.gradle",
        "Dockerfile",
    ):
        assert any(analyzer.supports(f"nested/{path}") for analyzer in analyzers), path
    assert not any(analyzer.supports("README.md") for analyzer in analyzers)
