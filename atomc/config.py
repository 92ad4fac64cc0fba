"""Configuration for atomc.

Settings are resolved with this precedence (lowest first):
defaults < ~/.atomc/config.yaml < LOCAL_COMMIT_* environment < CLI overrides.
"""

import os
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from atomc.errors import ConfigError


class Runtime(str, Enum):
    """Supported local LLM runtimes."""

    OLLAMA = "ollama"
    LLAMA_CPP = "llama.cpp"


class DiffMode(str, Enum):
    """Which changes a repository-derived diff contains."""

    WORKTREE = "worktree"
    STAGED = "staged"
    ALL = "all"


class ScopePolicy(str, Enum):
    """How to treat commit units without a scope."""

    REQUIRE = "require"
    ALLOW = "allow"
    WARN = "warn"


# ============================================================
# DEFAULT FALLBACK VALUES
# ============================================================

DEFAULT_MODEL = "deepseek-coder"
DEFAULT_RUNTIME = Runtime.OLLAMA
DEFAULT_OLLAMA_URL = "http://localhost:11434"
DEFAULT_MAX_TOKENS = 2048
DEFAULT_TEMPERATURE = 0.2
DEFAULT_LLM_TIMEOUT_SECS = 60
DEFAULT_MAX_DIFF_BYTES = 2_000_000
DEFAULT_DIFF_MODE = DiffMode.ALL
DEFAULT_INCLUDE_UNTRACKED = True
DEFAULT_LOG_DIFF = False
DEFAULT_SCOPE_POLICY = ScopePolicy.WARN

CONFIG_PATH_ENV_VAR = "LOCAL_COMMIT_AGENT_CONFIG"

_CONFIG_DIR = Path.home() / ".atomc"


# ============================================================
# ENVIRONMENT VARIABLES
# ============================================================

ENV_VARS = {
    "model": "LOCAL_COMMIT_MODEL",
    "runtime": "LOCAL_COMMIT_RUNTIME",
    "ollama_url": "LOCAL_COMMIT_OLLAMA_URL",
    "max_tokens": "LOCAL_COMMIT_MAX_TOKENS",
    "temperature": "LOCAL_COMMIT_TEMPERATURE",
    "llm_timeout_secs": "LOCAL_COMMIT_LLM_TIMEOUT_SECS",
    "max_diff_bytes": "LOCAL_COMMIT_MAX_DIFF_BYTES",
    "diff_mode": "LOCAL_COMMIT_DIFF_MODE",
    "include_untracked": "LOCAL_COMMIT_INCLUDE_UNTRACKED",
    "log_diff": "LOCAL_COMMIT_LOG_DIFF",
    "scope_policy": "LOCAL_COMMIT_SCOPE_POLICY",
}

_TRUE_VALUES = {"true", "1", "yes", "y"}
_FALSE_VALUES = {"false", "0", "no", "n"}

_RUNTIME_ALIASES = {
    "ollama": Runtime.OLLAMA,
    "llama.cpp": Runtime.LLAMA_CPP,
    "llama_cpp": Runtime.LLAMA_CPP,
    "llamacpp": Runtime.LLAMA_CPP,
}


class ResolvedConfig(BaseModel):
    """Fully resolved, immutable settings for one invocation."""

    model_config = ConfigDict(frozen=True, extra="forbid", protected_namespaces=())

    model: str = DEFAULT_MODEL
    runtime: Runtime = DEFAULT_RUNTIME
    ollama_url: str = DEFAULT_OLLAMA_URL
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0)
    temperature: float = Field(default=DEFAULT_TEMPERATURE, ge=0.0)
    llm_timeout_secs: int = Field(default=DEFAULT_LLM_TIMEOUT_SECS, gt=0)
    max_diff_bytes: int = Field(default=DEFAULT_MAX_DIFF_BYTES, ge=0)
    diff_mode: DiffMode = DEFAULT_DIFF_MODE
    include_untracked: bool = DEFAULT_INCLUDE_UNTRACKED
    log_diff: bool = DEFAULT_LOG_DIFF
    scope_policy: ScopePolicy = DEFAULT_SCOPE_POLICY


def get_default_config_path() -> Path:
    """Get the default config file location.

    Returns:
        Path to ~/.atomc/config.yaml
    """
    return _CONFIG_DIR / "config.yaml"


def load_config_file(path: Path, required: bool) -> dict[str, Any]:
    """Load a YAML config file into a dictionary of overrides.

    Args:
        path: Config file path.
        required: Whether a missing file is an error.

    Returns:
        Dictionary of settings found in the file (empty if absent).

    Raises:
        ConfigError: If the file is required but missing, unreadable or malformed.
    """
    if not path.exists():
        if required:
            raise ConfigError(
                f"config file not found: {path}", details={"path": str(path)}
            )
        return {}

    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(
            f"failed to load config from {path}: {e}", details={"path": str(path)}
        )

    if not isinstance(data, dict):
        raise ConfigError(
            f"config file must contain a mapping: {path}", details={"path": str(path)}
        )

    unknown = sorted(set(data) - set(ENV_VARS))
    if unknown:
        raise ConfigError(
            f"unknown config keys in {path}: {', '.join(unknown)}",
            details={"path": str(path), "keys": unknown},
        )
    return data


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigError(f"invalid env var {key}={value}", details={"key": key, "value": value})


def _parse_env_value(field: str, key: str, value: str) -> Any:
    """Convert a raw environment string into a typed setting."""
    if field in ("include_untracked", "log_diff"):
        return _parse_bool(key, value)
    if field == "runtime":
        runtime = _RUNTIME_ALIASES.get(value.strip().lower())
        if runtime is None:
            raise ConfigError(
                f"invalid env var {key}={value}", details={"key": key, "value": value}
            )
        return runtime
    try:
        if field in ("max_tokens", "llm_timeout_secs", "max_diff_bytes"):
            return int(value)
        if field == "temperature":
            return float(value)
        if field == "diff_mode":
            return DiffMode(value.strip().lower())
        if field == "scope_policy":
            return ScopePolicy(value.strip().lower())
    except ValueError:
        raise ConfigError(
            f"invalid env var {key}={value}", details={"key": key, "value": value}
        )
    return value


def load_env_config() -> dict[str, Any]:
    """Read LOCAL_COMMIT_* environment variables.

    Returns:
        Dictionary of typed settings present in the environment.

    Raises:
        ConfigError: If a variable holds an unparseable value.
    """
    config: dict[str, Any] = {}
    for field, key in ENV_VARS.items():
        value = os.getenv(key)
        if value is not None:
            config[field] = _parse_env_value(field, key, value)
    return config


def resolve_config(
    cli_path: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> ResolvedConfig:
    """Resolve the effective configuration.

    Args:
        cli_path: Config file passed with --config (takes precedence over
            LOCAL_COMMIT_AGENT_CONFIG).
        overrides: CLI overrides; None values are ignored.

    Returns:
        The resolved, frozen configuration.

    Raises:
        ConfigError: If any layer contains invalid settings.
    """
    # .env values never override variables already exported in the shell
    load_dotenv(override=False)

    env_path = os.getenv(CONFIG_PATH_ENV_VAR)
    explicit = cli_path or (Path(env_path) if env_path else None)
    path = explicit or get_default_config_path()

    merged: dict[str, Any] = {}
    merged.update(load_config_file(path, required=explicit is not None))
    merged.update(load_env_config())
    merged.update({k: v for k, v in (overrides or {}).items() if v is not None})

    if isinstance(merged.get("runtime"), str):
        runtime = _RUNTIME_ALIASES.get(merged["runtime"].lower())
        if runtime is not None:
            merged["runtime"] = runtime

    try:
        return ResolvedConfig(**merged)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        ]
        raise ConfigError(
            f"invalid configuration: {'; '.join(problems)}",
            details={"errors": problems},
        )
