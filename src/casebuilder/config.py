"""Configuration loading for the casebuilder CLI and services.

Values come from, in increasing precedence: dataclass defaults, a JSON file,
and ``CASEBUILDER_*`` environment variables.
"""

from __future__ import annotations

import dataclasses
import json
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from casebuilder.domain.exceptions import ConfigurationError

ENV_PREFIX = "CASEBUILDER_"
PROVIDERS = ("gemini", "openai", "ollama")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class EditorConfig:
    """Settings for one editing session."""

    base_url: str = "http://localhost:3000"
    database_path: str = "/api/database"
    ai_path: str | None = None
    provider: str = "gemini"
    ollama_base_url: str = "http://localhost:11434/v1"
    ollama_model: str = "gemma3:27b"
    request_timeout: float = 30.0
    stream_timeout: float = 300.0
    max_checkpoints: int = 10
    rollback_on_failure: bool = True
    session_dir: str = ".casebuilder"
    cases_table: str = "Cases"
    fields_table: str = "Fields"
    views_table: str = "Views"

    def __post_init__(self) -> None:
        if self.provider not in PROVIDERS:
            raise ConfigurationError(
                f"Unknown provider '{self.provider}' (expected one of {', '.join(PROVIDERS)})"
            )
        if self.request_timeout <= 0 or self.stream_timeout <= 0:
            raise ConfigurationError("Timeouts must be positive")
        if self.max_checkpoints < 1:
            raise ConfigurationError("max_checkpoints must be at least 1")

    @property
    def resolved_ai_path(self) -> str:
        """The assistant route; defaults from the provider."""
        if self.ai_path:
            return self.ai_path
        return "/api/openai" if self.provider == "openai" else "/api/gemini"


def _coerce(name: str, raw: Any, target: type | str) -> Any:
    """Convert a file or environment value to the field's declared type."""
    kind = target if isinstance(target, str) else target.__name__
    try:
        if kind.startswith("bool"):
            if isinstance(raw, bool):
                return raw
            text = str(raw).strip().lower()
            if text in _TRUE:
                return True
            if text in _FALSE:
                return False
            raise ValueError(raw)
        if kind.startswith("int"):
            if isinstance(raw, bool):
                raise ValueError(raw)
            return int(raw)
        if kind.startswith("float"):
            if isinstance(raw, bool):
                raise ValueError(raw)
            return float(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid value for '{name}': {raw!r}") from e
    if raw is None and "None" in kind:
        return None
    if not isinstance(raw, str):
        raise ConfigurationError(f"Invalid value for '{name}': expected a string, got {raw!r}")
    return raw


def _read_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {path}")
    try:
        with open(path) as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected dict in {path}, got {type(data).__name__}")
    return data


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> EditorConfig:
    """
    Build an EditorConfig from a JSON file and the environment.

    Args:
        path: Optional JSON file whose keys are EditorConfig field names
        env: Environment mapping (defaults to os.environ)

    Returns:
        The merged configuration

    Raises:
        ConfigurationError: Unknown keys, unreadable file or bad values
    """
    env = os.environ if env is None else env
    fields = {f.name: f.type for f in dataclasses.fields(EditorConfig)}
    values: dict[str, Any] = {}

    if path is not None:
        data = _read_file(Path(path))
        unknown = sorted(set(data) - set(fields))
        if unknown:
            raise ConfigurationError(f"Unknown config keys in {path}: {', '.join(unknown)}")
        for name, raw in data.items():
            values[name] = _coerce(name, raw, fields[name])

    for name, declared in fields.items():
        key = ENV_PREFIX + name.upper()
        if key in env:
            values[name] = _coerce(key, env[key], declared)

    return EditorConfig(**values)
