"""Configuration loading for mimickit (.mimickit.yml plus environment overrides)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

CONFIG_FILENAME = ".mimickit.yml"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class LLMConfig:
    """Generation service settings."""

    provider: Optional[str] = None
    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None
    max_tokens: Optional[int] = None
    temperature: Optional[float] = None
    request_timeout: Optional[float] = None
    max_retries: Optional[int] = None


@dataclass
class LimitsConfig:
    """Size limits applied while building repository snapshots."""

    max_repo_kb: int = 50_000
    max_file_bytes: int = 120_000
    max_snapshot_tokens: int = 90_000
    quick_top_files: int = 10
    deep_top_files: int = 30
    max_tree_items: int = 6_000
    max_contents_files: int = 80


@dataclass
class IngestConfig:
    """Remote fetch and intake settings."""

    clone_depth: int = 1
    cleanup_workspace: bool = False
    github_token: Optional[str] = None
    api_base: str = "https://api.github.com"


@dataclass
class RunsConfig:
    """Where run records and artifacts live."""

    root: Path = field(default_factory=lambda: Path(".runs"))
    store_file: Optional[Path] = None
    max_runs: int = 50

    @property
    def store_path(self) -> Path:
        return self.store_file or self.root / "runs.json"


@dataclass
class MimicKitConfig:
    """Represents the settings defined in .mimickit.yml and the environment."""

    root: Path
    llm: Optional[LLMConfig] = None
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    ingest: IngestConfig = field(default_factory=IngestConfig)
    runs: RunsConfig = field(default_factory=RunsConfig)


def load_config(
    config_path: Path | None = None, *, environ: Mapping[str, str] | None = None
) -> MimicKitConfig:
    """Load configuration from disk and apply environment overrides."""
    env = os.environ if environ is None else environ
    config_file = _resolve_config_path(config_path or Path.cwd())
    root = config_file.parent.resolve()

    data: Dict[str, Any] = {}
    if config_file.exists():
        data = _read_config(config_file)

    llm_data = _as_dict(data.get("llm"))
    llm = None
    if llm_data:
        llm = LLMConfig(
            provider=_as_str(llm_data.get("provider")),
            model=_as_str(llm_data.get("model")),
            base_url=_as_str(llm_data.get("base_url")),
            api_key=_as_str(llm_data.get("api_key")),
            max_tokens=_as_int(llm_data.get("max_tokens")),
            temperature=_as_float(llm_data.get("temperature")),
            request_timeout=_as_float(llm_data.get("request_timeout")),
            max_retries=_as_int(llm_data.get("max_retries")),
        )
        if llm.provider and llm.provider.lower() not in {"anthropic", "openai"}:
            raise ConfigError(f"Unsupported llm.provider '{llm.provider}'")

    limits = LimitsConfig()
    limits_data = _as_dict(data.get("limits"))
    for name in (
        "max_repo_kb",
        "max_file_bytes",
        "max_snapshot_tokens",
        "quick_top_files",
        "deep_top_files",
        "max_tree_items",
        "max_contents_files",
    ):
        value = _as_int(limits_data.get(name))
        if value is not None:
            setattr(limits, name, value)
    limits.max_repo_kb = _env_int(env, "MAX_REPO_KB", limits.max_repo_kb)
    limits.max_file_bytes = _env_int(env, "MAX_FILE_BYTES", limits.max_file_bytes)
    limits.max_file_bytes = _env_int(env, "HARNESS_MAX_FILE_SIZE", limits.max_file_bytes)
    limits.max_snapshot_tokens = _env_int(env, "MAX_SNAPSHOT_TOKENS", limits.max_snapshot_tokens)

    ingest = IngestConfig()
    ingest_data = _as_dict(data.get("ingest"))
    if ingest_data:
        ingest.clone_depth = _as_int(ingest_data.get("clone_depth")) or ingest.clone_depth
        ingest.cleanup_workspace = bool(_as_bool(ingest_data.get("cleanup_workspace")))
        ingest.github_token = _as_str(ingest_data.get("github_token"))
        ingest.api_base = (_as_str(ingest_data.get("api_base")) or ingest.api_base).rstrip("/")
    ingest.clone_depth = _env_int(env, "HARNESS_CLONE_DEPTH", ingest.clone_depth)
    cleanup_env = _as_bool(env.get("HARNESS_CLEANUP_WORKSPACE"))
    if cleanup_env is not None:
        ingest.cleanup_workspace = cleanup_env
    ingest.github_token = env.get("GITHUB_TOKEN") or ingest.github_token

    runs = RunsConfig()
    runs_data = _as_dict(data.get("runs"))
    if runs_data:
        root_str = _as_str(runs_data.get("root"))
        if root_str:
            runs.root = root / root_str
        store_str = _as_str(runs_data.get("store_file"))
        if store_str:
            runs.store_file = root / store_str
        runs.max_runs = _as_int(runs_data.get("max_runs")) or runs.max_runs
    if not runs.root.is_absolute():
        runs.root = root / runs.root

    return MimicKitConfig(root=root, llm=llm, limits=limits, ingest=ingest, runs=runs)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigError(f"{path.name} must contain a mapping at the root")
    return loaded


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    value = _as_int(env.get(key))
    return default if value is None else value


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "IngestConfig",
    "LLMConfig",
    "LimitsConfig",
    "MimicKitConfig",
    "RunsConfig",
    "load_config",
]
