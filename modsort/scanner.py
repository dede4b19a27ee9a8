"""Source file discovery for directory arguments."""

from __future__ import annotations

import os
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

SOURCE_SUFFIX = ".rs"
GITIGNORE = ".gitignore"

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    ".direnv",
    "target",
    "node_modules",
}


@dataclass(frozen=True)
class ExcludePattern:
    """One gitignore-style pattern, scoped to the directory that declared it.

    ``base`` is the declaring directory relative to the walk root (``""`` for
    the root itself). A pattern containing a slash is matched against the
    whole path below ``base``; otherwise only the last path component has to
    match.
    """

    glob: str
    base: str = ""
    directory_only: bool = False
    rooted: bool = False
    negated: bool = False

    @classmethod
    def parse(cls, line: str, base: str = "") -> Optional["ExcludePattern"]:
        text = line.strip()
        if not text or text.startswith("#"):
            return None
        negated = text.startswith("!")
        if negated:
            text = text[1:]
        directory_only = text.endswith("/")
        text = text.rstrip("/")
        rooted = "/" in text
        text = text.lstrip("/")
        if not text:
            return None
        return cls(text, base, directory_only, rooted, negated)

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if self.directory_only and not is_dir:
            return False
        if self.base:
            if not rel_path.startswith(f"{self.base}/"):
                return False
            rel_path = rel_path[len(self.base) + 1 :]
        if self.rooted:
            return fnmatchcase(rel_path, self.glob)
        return fnmatchcase(rel_path.rsplit("/", 1)[-1], self.glob)


def parse_patterns(lines: Sequence[str], base: str = "") -> List[ExcludePattern]:
    patterns = []
    for line in lines:
        pattern = ExcludePattern.parse(line, base)
        if pattern is not None:
            patterns.append(pattern)
    return patterns


def _load_gitignore(directory: Path, base: str) -> List[ExcludePattern]:
    path = directory / GITIGNORE
    if not path.is_file():
        return []
    return parse_patterns(path.read_text(encoding="utf-8").splitlines(), base)


def _is_excluded(rel_path: str, is_dir: bool, patterns: Sequence[ExcludePattern]) -> bool:
    # Last matching pattern wins, so a later `!pattern` re-includes.
    excluded = False
    for pattern in patterns:
        if pattern.matches(rel_path, is_dir):
            excluded = not pattern.negated
    return excluded


def iter_source_files(root: Path, exclude_paths: Sequence[str] = ()) -> Iterator[Path]:
    """Yield ``.rs`` files below ``root`` in a stable order.

    VCS and build output directories are skipped, as is anything matched by a
    ``.gitignore`` at or below ``root``. ``exclude_paths`` are gitignore-style
    patterns relative to ``root``; a ``.gitignore`` negation cannot re-include
    a path they exclude.
    """
    root = root.resolve()
    if not root.is_dir():
        raise NotADirectoryError(f"Not a directory: {root}")

    excludes = parse_patterns(exclude_paths)
    ignored: List[ExcludePattern] = []

    def skip(rel_path: str, is_dir: bool) -> bool:
        return _is_excluded(rel_path, is_dir, ignored) or _is_excluded(rel_path, is_dir, excludes)

    for dirpath, dirnames, filenames in os.walk(root):
        current_dir = Path(dirpath)
        rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""
        ignored.extend(_load_gitignore(current_dir, rel_dir))

        kept = []
        for name in sorted(dirnames):
            rel_path = f"{rel_dir}/{name}" if rel_dir else name
            if name in _EXCLUDED_DIRS or skip(rel_path, True):
                continue
            kept.append(name)
        dirnames[:] = kept

        for filename in sorted(filenames):
            if not filename.endswith(SOURCE_SUFFIX):
                continue
            rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
            if not skip(rel_path, False):
                yield current_dir / filename


__all__ = ["ExcludePattern", "SOURCE_SUFFIX", "iter_source_files", "parse_patterns"]
