"""Planning helpers for moving oversized inline modules into their own files."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import AbstractSet, Callable, Mapping, Optional

from .config import ExtractConfig
from .layout import AUTO_DISCOVERY_DIRS, is_within
from .models import Category, ExtractionPlan, FileRole, SourceFile, TopLevelItem
from .scanner import SOURCE_SUFFIX

INDEX_FILE = "mod.rs"

ExistingLookup = Callable[[Path], Optional[str]]


def should_extract(item: TopLevelItem, settings: ExtractConfig) -> bool:
    """True when ``item`` is an inline module longer than the threshold.

    A body of exactly ``threshold`` lines stays inline.
    """
    if not settings.enabled or item.module is None:
        return False
    return item.module.line_count > settings.threshold


def destination_for(source: SourceFile, module_name: str) -> Path:
    """Compute where ``mod module_name`` goes when pulled out of ``source``.

    Package roots and index files (``mod.rs``) own their directory, so the new
    file is a sibling. Any other module gets a subdirectory named after its
    stem. Under ``tests/``, ``examples/`` or ``benches/`` the directory form
    (``name/mod.rs``) is used so the build tool does not pick the new file up
    as a separate target.
    """
    directory = source.path.parent
    if source.role is FileRole.PACKAGE_ROOT or source.path.name == INDEX_FILE:
        base = directory
    else:
        base = directory / source.path.stem
    if source.auto_discovery:
        return base / module_name / INDEX_FILE
    return base / f"{module_name}{SOURCE_SUFFIX}"


def plan_extraction(
    source: SourceFile,
    item: TopLevelItem,
    content: str,
    existing: ExistingLookup | None = None,
    blocked: AbstractSet[Path] = frozenset(),
) -> ExtractionPlan:
    """Build the plan for ``item`` and flag a conflict for ``content``."""
    name = item.name or item.declared_name or ""
    destination = destination_for(source, name)
    conflict = destination in blocked
    if not conflict and existing is not None:
        current = existing(destination)
        conflict = current is not None and current != content
    return ExtractionPlan(module_name=name, destination=destination, conflict=conflict)


def crosses_into_auto_discovery(source: SourceFile, destination: Path) -> bool:
    """True when ``destination`` lands in a reserved directory ``source`` is not in."""
    if source.package_dir is None:
        return False
    for name in AUTO_DISCOVERY_DIRS:
        reserved = source.package_dir / name
        if is_within(destination.parent, reserved) and not is_within(source.path.parent, reserved):
            return True
    return False


def module_body_text(item: TopLevelItem) -> str:
    """Return the text between the module braces, dedented and trimmed."""
    assert item.module is not None
    lines = item.module.raw.splitlines(keepends=True)
    # Whatever follows `{` on its own line does not share the body's indent.
    opening = lines.pop(0).strip() if lines else ""
    lines = textwrap.dedent("".join(lines)).splitlines(keepends=True)
    if opening:
        lines.insert(0, opening + "\n")
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    body = "".join(lines)
    if body and not body.endswith("\n"):
        body += "\n"
    return body


def module_declaration(item: TopLevelItem) -> TopLevelItem:
    """Replace an inline module by ``mod name;`` keeping trivia and attributes."""
    assert item.module is not None
    text = f"{item.module.head.rstrip()};{item.module.tail}"
    return TopLevelItem(
        node_type="mod_item",
        trivia=item.trivia,
        text=text,
        span=item.span,
        declared_name=item.declared_name,
        blank_after=item.blank_after,
        category=Category.MODULE_DECLARATION,
        name=item.name,
    )


def mapping_lookup(files: Mapping[Path, str]) -> ExistingLookup:
    """Adapt an in-memory ``path -> content`` mapping to an existing-file lookup."""

    def _lookup(path: Path) -> Optional[str]:
        return files.get(path)

    return _lookup


__all__ = [
    "ExistingLookup",
    "INDEX_FILE",
    "crosses_into_auto_discovery",
    "destination_for",
    "mapping_lookup",
    "module_body_text",
    "module_declaration",
    "plan_extraction",
    "should_extract",
]
