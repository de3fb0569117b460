"""YAML config loader with environment variable interpolation."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from gatewatch.config.models import GatewatchConfig

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".gatewatch.yaml"
CONFIG_ENV_VAR = "GATEWATCH_CONFIG"

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _interpolate_env(value: str) -> str:
    """Expand ${VAR} and ${VAR:-default}; unknown variables without a default are left as-is."""

    def _replace(match: re.Match[str]) -> str:
        expr = match.group(1)
        name, sep, default = expr.partition(":-")
        if sep:
            return os.environ.get(name.strip(), default)
        return os.environ.get(name.strip(), match.group(0))

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(data: Any) -> Any:
    if isinstance(data, str):
        return _interpolate_env(data)
    if isinstance(data, dict):
        return {key: _interpolate_recursive(val) for key, val in data.items()}
    if isinstance(data, list):
        return [_interpolate_recursive(item) for item in data]
    return data


def find_config_file(start: Path | None = None) -> Path | None:
    """Locate the config file.

    ``$GATEWATCH_CONFIG`` wins when set; otherwise walk up from *start*
    (default cwd) looking for ``.gatewatch.yaml``.
    """
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit)
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config(path: Path | None = None) -> GatewatchConfig:
    """Load and validate the config file, applying env-var interpolation."""
    config_path = path or find_config_file()
    if config_path is None or not config_path.exists():
        raise FileNotFoundError(
            f"Could not find {CONFIG_FILENAME}. Create one or set {CONFIG_ENV_VAR} to its path."
        )
    with config_path.open("r", encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid configuration in {config_path}: top level must be a mapping")
    try:
        return GatewatchConfig(**_interpolate_recursive(raw))
    except ValidationError as exc:
        raise ValueError(f"Invalid configuration in {config_path}: {exc}") from exc


def load_config_or_default(path: Path | None = None) -> GatewatchConfig:
    """Like :func:`load_config`, but fall back to defaults when no file exists."""
    try:
        return load_config(path)
    except FileNotFoundError:
        logger.info("No %s found, using default configuration", CONFIG_FILENAME)
        return GatewatchConfig()
