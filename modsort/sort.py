"""Stable ordering of classified items."""

from __future__ import annotations

from typing import List, Sequence

from .classify import classify
from .models import SortKey, TopLevelItem


def sort_key(item: TopLevelItem) -> SortKey:
    if item.category is None or item.name is None:
        category, name = classify(item)
    else:
        category, name = item.category, item.name
    return SortKey(int(category), name)


def sort_items(items: Sequence[TopLevelItem]) -> List[TopLevelItem]:
    """Order items by ``(rank, name)``; equal keys keep their input order."""
    # str comparison is by code point, which matches byte order for UTF-8.
    return sorted(items, key=sort_key)


__all__ = ["sort_items", "sort_key"]
