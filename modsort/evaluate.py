"""Decides what to do with a proposed rewrite for each run mode."""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class Mode(str, Enum):
    WRITE = "write"
    CHECK = "check"
    DIFF = "diff"
    DRY_RUN = "dry-run"


@dataclass(frozen=True)
class Evaluation:
    """What a mode makes of one original/proposed pair."""

    mode: Mode
    changes_needed: bool
    diff: Optional[str] = None

    @property
    def should_write(self) -> bool:
        return self.mode is Mode.WRITE and self.changes_needed


def evaluate(
    original: str,
    proposed: str,
    mode: Mode,
    *,
    label: str = "file",
    extra_changes: bool = False,
) -> Evaluation:
    """Compare ``original`` with ``proposed`` under ``mode``.

    ``extra_changes`` marks changes the texts alone do not show, such as
    planned module extractions.
    """
    changes_needed = extra_changes or original != proposed
    diff = None
    if mode is Mode.DIFF and original != proposed:
        diff = render_diff(original, proposed, label=label)
    return Evaluation(mode=mode, changes_needed=changes_needed, diff=diff)


def render_diff(original: str, updated: str, *, label: str = "file") -> str:
    diff = difflib.unified_diff(
        original.splitlines(keepends=True),
        updated.splitlines(keepends=True),
        fromfile=f"{label} (original)",
        tofile=f"{label} (sorted)",
    )
    return "".join(diff)


__all__ = ["Evaluation", "Mode", "evaluate", "render_diff"]
