"""Helper utilities for constructing temporary Cargo packages in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping

_MANIFEST = """\
[package]
name = "demo"
version = "0.1.0"
edition = "2021"
"""


class CrateBuilder:
    """Utility for writing files into a throwaway Cargo package."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "crate"
        self.root.mkdir()

    def manifest(self, extra: str = "") -> Path:
        """Write ``Cargo.toml``, appending ``extra`` TOML sections."""
        path = self.root / "Cargo.toml"
        path.write_text(_MANIFEST + textwrap.dedent(extra), encoding="utf-8")
        return path

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the package."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def write_raw(self, relative: str, content: str) -> Path:
        """Write ``content`` as-is, for generated sources dedent would mangle."""
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    def read(self, relative: str) -> str:
        return (self.root / relative).read_text(encoding="utf-8")

    def path(self, relative: str = "") -> Path:
        """Return the package root, or a path inside it."""
        return self.root / relative if relative else self.root


def inline_module(name: str, lines: int, *, indent: str = "    ", prefix: str = "f") -> str:
    """Return ``mod name { ... }`` whose body has exactly ``lines`` lines."""
    body = "".join(f"{indent}fn {prefix}_{index:03d}() {{}}\n" for index in range(lines))
    return f"mod {name} {{\n{body}}}\n"


def module_body(lines: int, *, prefix: str = "f") -> str:
    """Return the extracted form of ``inline_module(..., lines)``."""
    return "".join(f"fn {prefix}_{index:03d}() {{}}\n" for index in range(lines))


__all__ = ["CrateBuilder", "inline_module", "module_body"]
