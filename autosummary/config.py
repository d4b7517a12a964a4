"""Configuration loading: dataclass defaults, project YAML file, then overrides."""
from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml

from .summaries.openrouter_client import DEFAULT_BASE_URL, AuthenticationError, OpenRouterClient
from .summaries.types import AnnotatorConfig

CONFIG_RELATIVE_PATH = Path(".autosummary") / "config.yaml"

_BOOL_KEYS = {"force", "fail_fast", "prune"}
_STR_KEYS = {"model", "prompt"}
_OPTIONAL_INT_KEYS = {"max_tokens", "seed"}
_EXTENSION_KEYS = {"extensions", "embed_exclusions"}


class ConfigError(ValueError):
    """Raised when the project configuration file is malformed."""


def get_openrouter_config_path() -> Path:
    return Path("~/.config/openrouter/key").expanduser()


def load_openrouter_api_key() -> Optional[str]:
    env_key = os.getenv("OPENROUTER_API_KEY")
    if env_key and env_key.strip():
        return env_key.strip()

    config_path = get_openrouter_config_path()
    try:
        contents = config_path.read_text(encoding="utf-8").strip()
    except OSError:
        return None
    return contents or None


def build_openrouter_client() -> OpenRouterClient:
    api_key = load_openrouter_api_key()
    if not api_key:
        raise AuthenticationError(
            "OpenRouter API key not found. Set OPENROUTER_API_KEY or place a key in ~/.config/openrouter/key."
        )

    base_url = os.getenv("OPENROUTER_API_BASE", DEFAULT_BASE_URL)
    title = os.getenv("OPENROUTER_TITLE", "autosummary") or None
    return OpenRouterClient(api_key=api_key, base_url=base_url, title=title)


def read_config_file(path: Path) -> Dict[str, Any]:
    """Parse and validate a YAML config file; a missing file yields ``{}``."""
    path = Path(path)
    if not path.is_file():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file '{path}' is not valid YAML: {exc}") from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping")
    return _coerce(data, str(path))


def load_config(
    project_root: Path,
    overrides: Optional[Mapping[str, Any]] = None,
    *,
    config_path: Optional[Path] = None,
) -> AnnotatorConfig:
    """Build the run configuration for ``project_root``.

    ``overrides`` entries whose value is ``None`` are ignored so that unset CLI
    flags fall through to the file or the defaults.
    """
    project_root = Path(project_root).expanduser()
    values: Dict[str, Any] = read_config_file(config_path or project_root / CONFIG_RELATIVE_PATH)
    if overrides:
        values.update(_coerce({k: v for k, v in overrides.items() if v is not None}, "overrides"))
    values["project_root"] = project_root
    return AnnotatorConfig(**values)


def _coerce(data: Mapping[str, Any], source: str) -> Dict[str, Any]:
    known = {f.name for f in dataclasses.fields(AnnotatorConfig)} - {"project_root"}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys in {source}: {', '.join(unknown)}")

    values: Dict[str, Any] = {}
    for key, value in data.items():
        if key in _BOOL_KEYS:
            if not isinstance(value, bool):
                raise ConfigError(f"'{key}' in {source} must be true or false")
        elif key in _STR_KEYS:
            if not isinstance(value, str) or not value:
                raise ConfigError(f"'{key}' in {source} must be a non-empty string")
        elif key in _OPTIONAL_INT_KEYS:
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                raise ConfigError(f"'{key}' in {source} must be an integer")
        elif key == "temperature":
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"'temperature' in {source} must be a number")
            value = float(value)
        elif key in _EXTENSION_KEYS:
            if not isinstance(value, (list, tuple)) or not all(
                isinstance(ext, str) and ext.startswith(".") for ext in value
            ):
                raise ConfigError(f"'{key}' in {source} must be a list of extensions like '.ts'")
            value = tuple(value)
        elif key == "cache_path":
            if not isinstance(value, (str, Path)) or not str(value):
                raise ConfigError(f"'cache_path' in {source} must be a path")
            value = Path(value)
        values[key] = value
    return values
