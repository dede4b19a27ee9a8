"""Assigns each top-level item its category and sort name."""

from __future__ import annotations

from typing import Iterable, Optional, Tuple

from .models import Category, TopLevelItem

_CATEGORY_BY_NODE = {
    "extern_crate_declaration": Category.IMPORT_ALIAS,
    "foreign_mod_item": Category.IMPORT_ALIAS,
    "use_declaration": Category.USE_IMPORT,
    "const_item": Category.CONSTANT,
    "static_item": Category.STATIC,
    "type_item": Category.TYPE_ALIAS,
    "macro_definition": Category.MACRO_DEFINITION,
    "macro_invocation": Category.MACRO_INVOCATION,
    "trait_item": Category.TRAIT,
    "struct_item": Category.STRUCT,
    "enum_item": Category.ENUM,
    "union_item": Category.UNION,
    "function_item": Category.FUNCTION,
    "function_signature_item": Category.FUNCTION,
    "impl_item": Category.IMPL_BLOCK,
}

_EXTERN_BLOCK_NAME = "extern"


def classify(item: TopLevelItem) -> Tuple[Category, str]:
    """Return ``(category, sort name)`` for ``item`` from its syntactic shape."""
    if item.node_type == "mod_item":
        category = Category.INLINE_MODULE if item.is_inline_module else Category.MODULE_DECLARATION
        return category, item.declared_name or ""

    category = _CATEGORY_BY_NODE.get(item.node_type)
    if category is None:
        raise ValueError(f"Cannot classify item of type '{item.node_type}'")

    if item.node_type == "foreign_mod_item":
        return category, _EXTERN_BLOCK_NAME
    if category is Category.IMPL_BLOCK:
        return category, impl_sort_name(item.impl_type, item.impl_trait)
    return category, item.declared_name or ""


def impl_sort_name(impl_type: Optional[str], impl_trait: Optional[str]) -> str:
    """Derive a name for an impl block: ``Type`` or ``Type for Trait``.

    Generic arguments are dropped from both sides so that every impl of a type
    clusters under the same prefix; impls that still compare equal keep their
    file order.
    """
    type_name = _strip_generics(impl_type or "")
    if not impl_trait:
        return type_name
    return f"{type_name} for {_strip_generics(impl_trait)}"


def classify_items(items: Iterable[TopLevelItem]) -> None:
    """Attach category and name to every item in place."""
    for item in items:
        item.category, item.name = classify(item)


def _strip_generics(text: str) -> str:
    return text.split("<", 1)[0].strip()


__all__ = ["classify", "classify_items", "impl_sort_name"]
