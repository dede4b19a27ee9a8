"""Tree-sitter powered parser producing the lossless item model."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import tree_sitter_rust
from tree_sitter import Language, Node, Parser

from .models import InlineModuleBody, ParsedSource, TopLevelItem

_LANGUAGE = Language(tree_sitter_rust.language())

_COMMENT_TYPES = {"line_comment", "block_comment"}
_STRAY_TYPES = {"empty_statement", ";"}

_ITEM_TYPES = {
    "extern_crate_declaration",
    "foreign_mod_item",
    "mod_item",
    "use_declaration",
    "const_item",
    "static_item",
    "type_item",
    "macro_definition",
    "macro_invocation",
    "trait_item",
    "struct_item",
    "enum_item",
    "union_item",
    "function_item",
    "function_signature_item",
    "impl_item",
}

_HEADER = "header"
_TRIVIA = "trivia"
_ITEM = "item"


class ParseError(ValueError):
    """Raised when a file cannot be split into top-level items."""


@dataclass
class _Entry:
    kind: str
    start: int
    end: int
    node: Optional[Node] = None
    binds_next: bool = False


def parse_source(text: str) -> ParsedSource:
    """Split ``text`` into header, classified-ready items and footer.

    Raises ``ParseError`` when tree-sitter reports a syntax error or the file
    holds top-level syntax that is not an item.
    """
    source = text.encode("utf-8")
    prefix: List[_Entry] = []
    parse_bytes = source
    shebang_end = _shebang_end(source)
    if shebang_end:
        # Tree-sitter only needs to see whitespace where the interpreter line was.
        parse_bytes = b" " * shebang_end + source[shebang_end:]
        prefix.append(_Entry(_HEADER, 0, shebang_end))

    tree = Parser(_LANGUAGE).parse(parse_bytes)
    root = tree.root_node
    if root.has_error:
        raise ParseError(_describe_error(root))

    parsed = _split(source, root.children, 0, len(source), prefix)
    parsed.shebang = bool(shebang_end)
    return parsed


def _shebang_end(source: bytes) -> int:
    if not source.startswith(b"#!"):
        return 0
    if source[2:].lstrip(b" \t").startswith(b"["):
        return 0
    newline = source.find(b"\n")
    end = len(source) if newline == -1 else newline
    return end - 1 if end and source[end - 1 : end] == b"\r" else end


def _describe_error(root: Node) -> str:
    stack = [root]
    while stack:
        current = stack.pop()
        if current.type == "ERROR" or current.is_missing:
            row, column = current.start_point[0], current.start_point[1]
            return f"syntax error at line {row + 1}, column {column + 1}"
        if current.has_error:
            stack.extend(reversed(current.children))
    return "syntax error"


def _split(
    source: bytes,
    nodes: Sequence[Node],
    lo: int,
    hi: int,
    prefix: Sequence[_Entry] = (),
) -> ParsedSource:
    entries = list(prefix) + _collect_entries(source, nodes)
    item_indexes = [index for index, entry in enumerate(entries) if entry.kind == _ITEM]
    if not item_indexes:
        return ParsedSource(header=_decode(source, lo, hi), items=[])

    first = item_indexes[0]
    for entry in entries[first:]:
        if entry.kind == _HEADER:
            raise ParseError(
                f"inner attribute or doc comment after items at line {_line_no(source, entry.start)}"
            )

    # Outer attributes and doc comments bind to the next item across blank
    # lines. Of the plain comments, only those touching the item belong to it;
    # anything above a blank line stays with the file header.
    run_start = first
    while run_start > 0 and entries[run_start - 1].kind == _TRIVIA:
        run_start -= 1
    attach_from = next(
        (index for index in range(run_start, first) if entries[index].binds_next), first
    )
    while attach_from > 0:
        candidate = entries[attach_from - 1]
        if candidate.kind != _TRIVIA:
            break
        if _has_blank_line(source, candidate.end, entries[attach_from].start):
            break
        attach_from -= 1

    header_group = entries[:attach_from]
    groups: List[List[_Entry]] = []
    current: List[_Entry] = []
    for entry in entries[attach_from:]:
        current.append(entry)
        if entry.kind == _ITEM:
            groups.append(current)
            current = []
    footer_group = current

    ordered: List[List[_Entry]] = []
    if header_group:
        ordered.append(header_group)
    ordered.extend(groups)
    if footer_group:
        ordered.append(footer_group)

    bounds: List[tuple[int, int]] = []
    prev_end = lo
    for index, group in enumerate(ordered):
        first_byte, last_byte = group[0].start, group[-1].end
        start = _line_start(source, first_byte, lo)
        if start < prev_end:
            start = first_byte
        following = ordered[index + 1][0].start if index + 1 < len(ordered) else None
        if following is not None and _same_line(source, last_byte, following):
            end = last_byte
        else:
            end = _line_end(source, last_byte, hi)
        bounds.append((start, end))
        prev_end = end

    def blank_after(index: int) -> bool:
        if index + 1 >= len(ordered):
            return False
        return _has_blank_line(source, ordered[index][-1].end, ordered[index + 1][0].start)

    parsed = ParsedSource(header="", items=[])
    offset = 0
    if header_group:
        start, end = bounds[0]
        parsed.header = _decode(source, start, end)
        parsed.header_blank_after = blank_after(0)
        offset = 1

    for index, group in enumerate(groups, start=offset):
        start, end = bounds[index]
        parsed.items.append(_build_item(source, group[-1], start, end, lo, blank_after(index)))

    if footer_group:
        start, end = bounds[-1]
        parsed.footer = _decode(source, start, end)
        parsed.footer_blank_before = blank_after(len(ordered) - 2)
    return parsed


def _collect_entries(source: bytes, nodes: Iterable[Node]) -> List[_Entry]:
    entries: List[_Entry] = []
    for node in nodes:
        node_type = node.type
        start, end = node.start_byte, _trim_end(source, node.start_byte, node.end_byte)
        last = entries[-1] if entries else None

        if node_type in _COMMENT_TYPES:
            if last is not None and _same_line(source, last.end, start):
                last.end = end
                continue
            kind = _HEADER if _is_inner_doc(source, start) else _TRIVIA
            entries.append(_Entry(kind, start, end, binds_next=_is_outer_doc(source, start)))
        elif node_type == "attribute_item":
            entries.append(_Entry(_TRIVIA, start, end, binds_next=True))
        elif node_type in ("inner_attribute_item", "shebang"):
            entries.append(_Entry(_HEADER, start, end))
        elif node_type in _STRAY_TYPES:
            if last is not None and last.kind == _ITEM:
                last.end = end
            else:
                entries.append(_Entry(_TRIVIA, start, end))
        else:
            item_node = _item_node(node)
            if item_node is None:
                raise ParseError(
                    f"unsupported top-level `{node_type}` at line {node.start_point[0] + 1}"
                )
            entries.append(_Entry(_ITEM, start, end, item_node))
    return entries


def _item_node(node: Node) -> Optional[Node]:
    if node.type in _ITEM_TYPES:
        return node
    if node.type == "expression_statement":
        for child in node.named_children:
            if child.type in _COMMENT_TYPES:
                continue
            return child if child.type == "macro_invocation" else None
    return None


def _build_item(
    source: bytes, entry: _Entry, start: int, end: int, lo: int, blank_after: bool
) -> TopLevelItem:
    node = entry.node
    assert node is not None
    body_start = max(start, _line_start(source, entry.start, lo))
    item = TopLevelItem(
        node_type=node.type,
        trivia=_decode(source, start, body_start),
        text=_decode(source, body_start, end),
        span=(start, end),
        blank_after=blank_after,
    )

    if node.type == "macro_invocation":
        item.declared_name = _field_text(source, node, "macro")
    elif node.type == "use_declaration":
        item.declared_name = _field_text(source, node, "argument")
    elif node.type == "impl_item":
        item.impl_type = _field_text(source, node, "type")
        item.impl_trait = _field_text(source, node, "trait")
    elif node.type != "foreign_mod_item":
        item.declared_name = _field_text(source, node, "name")

    if node.type == "mod_item":
        body = node.child_by_field_name("body")
        if body is not None:
            item.module = _module_body(source, body, body_start, end)
    return item


def _module_body(source: bytes, body: Node, item_start: int, item_end: int) -> InlineModuleBody:
    children = body.children
    open_brace, close_brace = children[0], children[-1]
    nested = _split(source, children[1:-1], open_brace.end_byte, close_brace.start_byte)
    return InlineModuleBody(
        raw=_decode(source, open_brace.end_byte, close_brace.start_byte),
        line_count=max(0, close_brace.start_point[0] - open_brace.start_point[0] - 1),
        head=_decode(source, item_start, open_brace.start_byte),
        tail=_decode(source, close_brace.end_byte, item_end),
        items=nested.items,
    )


def _field_text(source: bytes, node: Node, field_name: str) -> Optional[str]:
    child = node.child_by_field_name(field_name)
    if child is None:
        return None
    return _decode(source, child.start_byte, child.end_byte)


def _is_inner_doc(source: bytes, start: int) -> bool:
    return source[start : start + 3] in (b"//!", b"/*!")


def _is_outer_doc(source: bytes, start: int) -> bool:
    # `////` and `/***` are plain comments, as is the empty `/**/`.
    marker = source[start : start + 4]
    if marker.startswith(b"///"):
        return marker != b"////"
    if marker.startswith(b"/**"):
        return marker not in (b"/***", b"/**/")
    return False


def _trim_end(source: bytes, start: int, end: int) -> int:
    while end > start and source[end - 1 : end] in (b"\n", b"\r"):
        end -= 1
    return end


def _line_start(source: bytes, pos: int, lo: int) -> int:
    return max(lo, source.rfind(b"\n", 0, pos) + 1)


def _line_end(source: bytes, pos: int, hi: int) -> int:
    newline = source.find(b"\n", pos, hi)
    return hi if newline == -1 else newline + 1


def _same_line(source: bytes, a: int, b: int) -> bool:
    return source.find(b"\n", a, b) == -1


def _has_blank_line(source: bytes, a: int, b: int) -> bool:
    return source.count(b"\n", a, b) >= 2


def _line_no(source: bytes, pos: int) -> int:
    return source.count(b"\n", 0, pos) + 1


def _decode(source: bytes, start: int, end: int) -> str:
    return source[start:end].decode("utf-8")


__all__ = ["ParseError", "parse_source"]
