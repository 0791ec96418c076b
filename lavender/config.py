"""Configuration loading for lavender (.lavender.yml)."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from .errors import ConfigurationError
from .filters import split_patterns
from .fingerprint import DEFAULT_ALGORITHM
from .scm.revision import DEFAULT_TIMEOUT

CONFIG_FILENAME = ".lavender.yml"
DEFAULT_EXCLUDES: Tuple[str, ...] = ("htdocs/**/*",)
DEFAULT_BUILD_DIRECTORY = "target"
DEFAULT_WORKERS = 4


@dataclass(frozen=True)
class LavenderSettings:
    """Effective generation settings for one module."""

    includes: Tuple[str, ...] = ()
    excludes: Tuple[str, ...] = DEFAULT_EXCLUDES
    build_directory: Path = Path(DEFAULT_BUILD_DIRECTORY)
    scm_timeout: float = DEFAULT_TIMEOUT
    workers: int = DEFAULT_WORKERS
    algorithm: str = DEFAULT_ALGORITHM

    def override(self, **values: Any) -> "LavenderSettings":
        """Return a copy with every non-None keyword applied."""
        changes = {key: value for key, value in values.items() if value is not None}
        if "includes" in changes:
            changes["includes"] = split_patterns(changes["includes"])
        if "excludes" in changes:
            changes["excludes"] = split_patterns(changes["excludes"])
        if "build_directory" in changes:
            changes["build_directory"] = Path(changes["build_directory"])
        settings = replace(self, **changes)
        settings.validate()
        return settings

    def validate(self) -> None:
        if self.workers < 1:
            raise ConfigurationError(f"workers must be at least 1, got {self.workers}")
        if self.scm_timeout <= 0:
            raise ConfigurationError(f"scm_timeout must be positive, got {self.scm_timeout}")


def load_settings(project_dir: Path) -> LavenderSettings:
    """Load ``.lavender.yml`` from ``project_dir``; a missing file yields defaults.

    A relative ``build_directory`` is resolved against ``project_dir``.
    """
    project_dir = project_dir.expanduser().resolve()
    defaults = LavenderSettings(build_directory=project_dir / DEFAULT_BUILD_DIRECTORY)
    config_file = project_dir / CONFIG_FILENAME
    if not config_file.exists():
        return defaults

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigurationError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    build_directory = _as_str(data.get("build_directory"))
    return defaults.override(
        includes=_as_patterns(data.get("includes")),
        excludes=_as_patterns(data.get("excludes")),
        build_directory=project_dir / build_directory if build_directory else None,
        scm_timeout=_as_float(data.get("scm_timeout")),
        workers=_as_int(data.get("workers")),
        algorithm=_as_str(data.get("algorithm")),
    )


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded if loaded is not None else {}


def _as_patterns(value: Any) -> Optional[Tuple[str, ...]]:
    if value is None:
        return None
    if isinstance(value, str):
        return split_patterns(value)
    if isinstance(value, list):
        return split_patterns(str(item) for item in value if item is not None)
    raise ConfigurationError(f"expected a pattern list, got {type(value).__name__}")


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
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
            return int(value)
        except ValueError:
            return None
    return None


__all__ = ["CONFIG_FILENAME", "DEFAULT_EXCLUDES", "LavenderSettings", "load_settings"]
