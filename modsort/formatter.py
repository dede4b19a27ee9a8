"""Re-serializes a sorted item sequence with normalized group spacing."""

from __future__ import annotations

from typing import List, Sequence

from .models import ParsedSource, TopLevelItem

_BLANK = "\n"


def render(parsed: ParsedSource, items: Sequence[TopLevelItem] | None = None) -> str:
    """Emit ``parsed`` with ``items`` (defaults to ``parsed.items``) in order.

    Spacing rules:

    * one blank line between items of different categories;
    * between items of the same category, one blank line only if the first
      of the pair was followed by a blank line in its source;
    * header and footer keep a single separating blank line when they had one.
    """
    ordered = list(parsed.items if items is None else items)
    chunks: List[str] = []

    header = _strip_blank_edges(parsed.header)
    if header:
        chunks.append(header)
        if ordered and parsed.header_blank_after:
            chunks.append(_BLANK)

    previous: TopLevelItem | None = None
    for item in ordered:
        if previous is not None and needs_blank_line(previous, item):
            chunks.append(_BLANK)
        chunks.append(item.render())
        previous = item

    footer = _strip_blank_edges(parsed.footer)
    if footer:
        if ordered and parsed.footer_blank_before:
            chunks.append(_BLANK)
        chunks.append(footer)

    return "".join(chunks)


def needs_blank_line(previous: TopLevelItem, current: TopLevelItem) -> bool:
    if previous.category != current.category:
        return True
    return previous.blank_after


def _strip_blank_edges(text: str) -> str:
    lines = text.splitlines(keepends=True)
    while lines and not lines[0].strip():
        lines.pop(0)
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        return ""
    joined = "".join(lines)
    return joined if joined.endswith("\n") else joined + "\n"


__all__ = ["needs_blank_line", "render"]
