"""Configuration loading for modsort (.modsort.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

CONFIG_FILENAME = ".modsort.yml"
DEFAULT_EXTRACT_THRESHOLD = 100


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass(frozen=True)
class ExtractConfig:
    """Inline module extraction settings."""

    enabled: bool = True
    threshold: int = DEFAULT_EXTRACT_THRESHOLD


@dataclass
class ModSortConfig:
    """Represents the settings defined in .modsort.yml."""

    root: Path
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    jobs: Optional[int] = None
    exclude_paths: List[str] = field(default_factory=list)

    @property
    def worker_count(self) -> int:
        return self.jobs or os.cpu_count() or 1


def load_config(config_path: Path) -> ModSortConfig:
    """Load configuration from disk."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return ModSortConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    extract = ExtractConfig()
    extract_data = _as_dict(data.get("extract"))
    if extract_data:
        enabled = _as_bool(extract_data.get("enabled"))
        threshold = _as_int(extract_data.get("threshold"))
        if threshold is not None and threshold < 0:
            raise ConfigError("extract.threshold must not be negative")
        extract = ExtractConfig(
            enabled=extract.enabled if enabled is None else enabled,
            threshold=extract.threshold if threshold is None else threshold,
        )

    jobs = _as_int(data.get("jobs"))
    if jobs is not None and jobs < 1:
        raise ConfigError("jobs must be at least 1")

    return ModSortConfig(
        root=root,
        extract=extract,
        jobs=jobs,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
    )


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
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


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


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "DEFAULT_EXTRACT_THRESHOLD",
    "ExtractConfig",
    "ModSortConfig",
    "load_config",
]
