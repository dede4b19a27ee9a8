"""Cargo package layout: which files are crate roots and which directories are reserved."""

from __future__ import annotations

import threading
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Set

from .logging import get_logger
from .models import FileRole

MANIFEST_NAME = "Cargo.toml"
AUTO_DISCOVERY_DIRS = ("tests", "examples", "benches")
ROOT_FILENAMES = ("lib.rs", "main.rs")

logger = get_logger("layout")


class LayoutError(RuntimeError):
    """Raised when a package manifest cannot be read."""


@dataclass(frozen=True)
class Placement:
    """Layout facts for one file; ``warning`` is set when the role was guessed."""

    role: FileRole
    auto_discovery: bool = False
    package_dir: Optional[Path] = None
    warning: Optional[str] = None


class PackageLayout:
    """Resolves file roles, caching crate roots per manifest."""

    def __init__(self) -> None:
        self._roots: Dict[Path, FrozenSet[Path]] = {}
        self._lock = threading.Lock()

    def resolve(self, path: Path) -> Placement:
        path = path.resolve()
        manifest = find_manifest(path)
        if manifest is None:
            return _fallback(
                path, None, "No Cargo.toml found, using filename heuristics for module placement"
            )
        package_dir = manifest.parent
        try:
            roots = self._crate_roots(manifest)
        except LayoutError as exc:
            return _fallback(
                path, package_dir, f"{exc}; using filename heuristics for module placement"
            )
        role = FileRole.PACKAGE_ROOT if path in roots else FileRole.ORDINARY_MODULE
        return Placement(
            role=role,
            auto_discovery=is_auto_discovery_path(path, package_dir),
            package_dir=package_dir,
        )

    def _crate_roots(self, manifest: Path) -> FrozenSet[Path]:
        with self._lock:
            cached = self._roots.get(manifest)
        if cached is not None:
            return cached
        roots = parse_crate_roots(manifest)
        with self._lock:
            self._roots[manifest] = roots
        return roots


def find_manifest(source_path: Path) -> Optional[Path]:
    """Walk up from ``source_path`` to the nearest Cargo.toml.

    The walk stops at the first directory without any ``.rs`` file, since that
    means we have left the package.
    """
    current = source_path.parent
    while True:
        candidate = current / MANIFEST_NAME
        if candidate.is_file():
            return candidate
        if not any(entry.suffix == ".rs" for entry in _safe_iterdir(current)):
            return None
        if current.parent == current:
            return None
        current = current.parent


def parse_crate_roots(manifest: Path) -> FrozenSet[Path]:
    """Return absolute paths of every crate root file declared or discovered."""
    package_dir = manifest.parent
    try:
        data = tomllib.loads(manifest.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError) as exc:
        raise LayoutError(f"Failed to parse {manifest}: {exc}") from exc

    roots: Set[Path] = set()
    src = package_dir / "src"

    lib = data.get("lib")
    lib_path = lib.get("path") if isinstance(lib, dict) else None
    _insert_if_exists(roots, package_dir / lib_path if isinstance(lib_path, str) else src / "lib.rs")
    _insert_if_exists(roots, src / "main.rs")

    for target in _targets(data, "bin"):
        path = target.get("path")
        name = target.get("name")
        if isinstance(path, str):
            _insert_if_exists(roots, package_dir / path)
        elif isinstance(name, str):
            _insert_if_exists(roots, src / "bin" / f"{name}.rs")
            _insert_if_exists(roots, src / "bin" / name / "main.rs")
    _collect_directory_roots(roots, src / "bin")

    for section, directory in (("test", "tests"), ("example", "examples"), ("bench", "benches")):
        for target in _targets(data, section):
            path = target.get("path")
            if isinstance(path, str):
                _insert_if_exists(roots, package_dir / path)
        _collect_directory_roots(roots, package_dir / directory)

    return frozenset(roots)


def is_auto_discovery_path(path: Path, package_dir: Optional[Path]) -> bool:
    """True when ``path`` sits under one of the package's reserved directories."""
    if package_dir is None:
        return False
    return any(is_within(path.parent, package_dir / name) for name in AUTO_DISCOVERY_DIRS)


def is_within(path: Path, parent: Path) -> bool:
    return path == parent or parent in path.parents


def _fallback(path: Path, package_dir: Optional[Path], warning: str) -> Placement:
    role = FileRole.PACKAGE_ROOT if path.name in ROOT_FILENAMES else FileRole.ORDINARY_MODULE
    logger.debug("Ambiguous placement for %s: %s", path, warning)
    return Placement(
        role=role,
        auto_discovery=is_auto_discovery_path(path, package_dir),
        package_dir=package_dir,
        warning=warning,
    )


def _targets(data: Dict[str, Any], section: str) -> list[Dict[str, Any]]:
    value = data.get(section)
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


def _collect_directory_roots(roots: Set[Path], directory: Path) -> None:
    for entry in _safe_iterdir(directory):
        if entry.suffix == ".rs":
            _insert_if_exists(roots, entry)
        elif entry.is_dir():
            _insert_if_exists(roots, entry / "main.rs")


def _insert_if_exists(roots: Set[Path], path: Path) -> None:
    if path.is_file():
        roots.add(path.resolve())


def _safe_iterdir(directory: Path) -> list[Path]:
    try:
        return list(directory.iterdir())
    except OSError:
        return []


__all__ = [
    "AUTO_DISCOVERY_DIRS",
    "LayoutError",
    "PackageLayout",
    "Placement",
    "find_manifest",
    "is_auto_discovery_path",
    "is_within",
    "parse_crate_roots",
]
