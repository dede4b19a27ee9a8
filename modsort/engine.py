"""Per-file reorganization pipeline.

parse -> classify -> extract -> sort -> format. The engine never touches the
filesystem: existing destinations are consulted through an injected lookup
and everything the caller may write is returned in a ``FileOutcome``.
"""

from __future__ import annotations

from pathlib import Path
from typing import AbstractSet, List, Optional

from .classify import classify_items
from .config import ExtractConfig
from .extract import (
    ExistingLookup,
    crosses_into_auto_discovery,
    destination_for,
    module_body_text,
    module_declaration,
    plan_extraction,
    should_extract,
)
from .formatter import render
from .layout import is_auto_discovery_path
from .logging import get_logger
from .models import (
    ExtractedFile,
    ExtractionConflict,
    FileOutcome,
    FileRole,
    ParsedSource,
    SourceFile,
    TopLevelItem,
)
from .parser import ParseError, parse_source
from .sort import sort_items

logger = get_logger("engine")

CLAIMED_REASON = "destination is claimed by another file in this run"


def reorganize(
    source: SourceFile,
    settings: Optional[ExtractConfig] = None,
    existing: Optional[ExistingLookup] = None,
    blocked: AbstractSet[Path] = frozenset(),
) -> FileOutcome:
    """Return the reorganized text for ``source`` plus any extracted files.

    ``existing`` answers "what is on disk at this path" for extraction
    destinations; ``blocked`` lists destinations the caller has already ruled
    out (for example because another file in the batch claims them).
    """
    settings = settings or ExtractConfig()
    outcome = FileOutcome(path=source.path, original=source.text, proposed=source.text)

    try:
        parsed = parse_source(source.text)
    except ParseError as exc:
        outcome.error = str(exc)
        return outcome

    if not parsed.items:
        return outcome

    classify_items(parsed.items)
    items = _resolve_extractions(source, parsed, settings, existing, blocked, outcome)
    outcome.proposed = render(parsed, sort_items(items))
    logger.debug(
        "%s: %d item(s), %d extracted, %d conflict(s)",
        source.path,
        len(items),
        len(outcome.extracted),
        len(outcome.conflicts),
    )
    return outcome


def _resolve_extractions(
    source: SourceFile,
    parsed: ParsedSource,
    settings: ExtractConfig,
    existing: Optional[ExistingLookup],
    blocked: AbstractSet[Path],
    outcome: FileOutcome,
) -> List[TopLevelItem]:
    resolved: List[TopLevelItem] = []
    for item in parsed.items:
        if not should_extract(item, settings):
            resolved.append(item)
            continue

        destination = destination_for(source, item.name or "")
        if parsed.shebang:
            outcome.warnings.append(
                f"Skipping extraction of `mod {item.name}`: script files cannot have out-of-line modules"
            )
            resolved.append(item)
            continue
        if crosses_into_auto_discovery(source, destination):
            outcome.warnings.append(
                f"Skipping extraction of `mod {item.name}`: would create {destination} "
                "in a package auto-discovery directory"
            )
            resolved.append(item)
            continue

        child = SourceFile(
            path=destination,
            text=module_body_text(item),
            role=FileRole.ORDINARY_MODULE,
            auto_discovery=source.auto_discovery
            or is_auto_discovery_path(destination, source.package_dir),
            package_dir=source.package_dir,
        )
        child_outcome = reorganize(child, settings, existing, blocked)
        if child_outcome.error is not None:
            outcome.warnings.append(
                f"Extracted `mod {item.name}` left unsorted: {child_outcome.error}"
            )

        plan = plan_extraction(source, item, child_outcome.proposed, existing, blocked)
        if plan.conflict:
            if plan.destination in blocked:
                conflict = ExtractionConflict(plan.module_name, plan.destination, CLAIMED_REASON)
            else:
                conflict = ExtractionConflict(plan.module_name, plan.destination)
            outcome.conflicts.append(conflict)
            resolved.append(item)
            continue

        outcome.extracted.append(ExtractedFile(plan.destination, child_outcome.proposed))
        outcome.extracted.extend(child_outcome.extracted)
        outcome.conflicts.extend(child_outcome.conflicts)
        outcome.warnings.extend(child_outcome.warnings)
        resolved.append(module_declaration(item))
    return resolved


__all__ = ["CLAIMED_REASON", "reorganize"]
