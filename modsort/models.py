"""Core data models shared across modsort components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import List, NamedTuple, Optional


class Category(IntEnum):
    """Item categories; the integer value is the sort rank."""

    IMPORT_ALIAS = 0
    MODULE_DECLARATION = 1
    USE_IMPORT = 2
    CONSTANT = 3
    STATIC = 4
    TYPE_ALIAS = 5
    MACRO_DEFINITION = 6
    MACRO_INVOCATION = 7
    TRAIT = 8
    STRUCT = 9
    ENUM = 10
    UNION = 11
    FUNCTION = 12
    IMPL_BLOCK = 13
    INLINE_MODULE = 14


class FileRole(str, Enum):
    """Role of a file inside its package, supplied by the layout collaborator."""

    PACKAGE_ROOT = "package_root"
    ORDINARY_MODULE = "ordinary_module"


class SortKey(NamedTuple):
    rank: int
    name: str


@dataclass
class TopLevelItem:
    """A declaration directly inside a file or module body.

    ``trivia`` holds the verbatim comment/attribute lines attached above the
    item and ``text`` the item itself up to the end of its last line.
    ``category`` and ``name`` stay empty until the classifier runs.
    """

    node_type: str
    trivia: str
    text: str
    span: tuple[int, int]
    declared_name: Optional[str] = None
    impl_type: Optional[str] = None
    impl_trait: Optional[str] = None
    blank_after: bool = False
    category: Optional[Category] = None
    name: Optional[str] = None
    module: Optional["InlineModuleBody"] = None

    @property
    def is_inline_module(self) -> bool:
        return self.module is not None

    def render(self) -> str:
        text = self.trivia + self.text
        return text if text.endswith("\n") else text + "\n"


@dataclass
class InlineModuleBody:
    """Body of an inline ``mod name { ... }`` item.

    ``head`` is the item text before the opening brace and ``tail`` whatever
    follows the closing brace on its line (usually a newline or a comment).
    """

    raw: str
    line_count: int
    head: str
    tail: str
    items: List[TopLevelItem] = field(default_factory=list)


@dataclass
class ParsedSource:
    """Lossless split of a file (or module body) into header, items and footer."""

    header: str
    items: List[TopLevelItem]
    footer: str = ""
    header_blank_after: bool = False
    footer_blank_before: bool = False
    shebang: bool = False


@dataclass
class SourceFile:
    """One file handed to the engine along with its package-layout facts."""

    path: Path
    text: str
    role: FileRole = FileRole.ORDINARY_MODULE
    auto_discovery: bool = False
    package_dir: Optional[Path] = None


@dataclass(frozen=True)
class ExtractionPlan:
    """Where an oversized inline module goes and whether that collides."""

    module_name: str
    destination: Path
    conflict: bool = False


@dataclass(frozen=True)
class ExtractedFile:
    path: Path
    content: str


@dataclass(frozen=True)
class ExtractionConflict:
    module_name: str
    destination: Path
    reason: str = "destination exists with different content"


class OutcomeKind(str, Enum):
    UNCHANGED = "unchanged"
    REWRITTEN = "rewritten"
    EXTRACTION_PERFORMED = "extraction_performed"
    CONFLICT = "conflict"
    PARSE_FAILURE = "parse_failure"


@dataclass
class FileOutcome:
    """Result of reorganizing one file; carries everything the caller may write."""

    path: Path
    original: str
    proposed: str
    extracted: List[ExtractedFile] = field(default_factory=list)
    conflicts: List[ExtractionConflict] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.error is None and (self.proposed != self.original or bool(self.extracted))

    @property
    def kind(self) -> OutcomeKind:
        if self.error is not None:
            return OutcomeKind.PARSE_FAILURE
        if self.conflicts:
            return OutcomeKind.CONFLICT
        if self.extracted:
            return OutcomeKind.EXTRACTION_PERFORMED
        if self.proposed != self.original:
            return OutcomeKind.REWRITTEN
        return OutcomeKind.UNCHANGED


__all__ = [
    "Category",
    "ExtractedFile",
    "ExtractionConflict",
    "ExtractionPlan",
    "FileOutcome",
    "FileRole",
    "InlineModuleBody",
    "OutcomeKind",
    "ParsedSource",
    "SortKey",
    "SourceFile",
    "TopLevelItem",
]
