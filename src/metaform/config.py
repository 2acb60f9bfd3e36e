"""
Engine settings.

Settings are plain data, usually kept in a YAML file next to the host
application:

    async_timeout: 5.0        # seconds before a remote check counts as no result
    async_workers: 4          # threads available for remote checks
    force_lower_case: false   # fold field names to lower case in FormData
    variables:                # values for "%NAME" operands
      CUTOFF: "2020-01-01"

Every key is optional. Unknown keys are reported with a warning and ignored.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

from metaform.remote import DEFAULT_TIMEOUT, DEFAULT_WORKERS


class SettingsError(ValueError):
    """Raised when a settings document cannot be used at all."""
    pass


@dataclass
class EngineSettings:
    async_timeout: float = DEFAULT_TIMEOUT
    async_workers: int = DEFAULT_WORKERS
    force_lower_case: bool = False
    variables: Dict[str, str] = field(default_factory=dict)


_KNOWN_KEYS = {"async_timeout", "async_workers", "force_lower_case", "variables"}


def settings_from_dict(d: Dict[str, Any] | None) -> EngineSettings:
    if d is None:
        return EngineSettings()
    if not isinstance(d, dict):
        raise SettingsError(f"Settings must be a mapping, got {type(d).__name__}")

    for key in sorted(set(d) - _KNOWN_KEYS):
        warnings.warn(f"Unknown setting '{key}' ignored", UserWarning)

    variables = d.get("variables") or {}
    if not isinstance(variables, dict):
        raise SettingsError("'variables' must be a mapping")

    try:
        return EngineSettings(
            async_timeout=float(d.get("async_timeout", DEFAULT_TIMEOUT)),
            async_workers=int(d.get("async_workers", DEFAULT_WORKERS)),
            force_lower_case=bool(d.get("force_lower_case", False)),
            variables={str(k): str(v) for k, v in variables.items()},
        )
    except (TypeError, ValueError) as e:
        raise SettingsError(f"Invalid settings: {e}")


def settings_to_dict(s: EngineSettings) -> Dict[str, Any]:
    return {
        "async_timeout": s.async_timeout,
        "async_workers": s.async_workers,
        "force_lower_case": s.force_lower_case,
        "variables": dict(s.variables),
    }


def settings_from_yaml(text: str) -> EngineSettings:
    try:
        d = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise SettingsError(f"Settings are not valid YAML: {e}")
    return settings_from_dict(d)


def settings_to_yaml(s: EngineSettings) -> str:
    return yaml.safe_dump(settings_to_dict(s))


def load_settings(path: str | Path) -> EngineSettings:
    return settings_from_yaml(Path(path).read_text())
