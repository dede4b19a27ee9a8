"""Tests for modsort.extract."""

from __future__ import annotations

from pathlib import Path

import pytest

from modsort.classify import classify_items
from modsort.config import ExtractConfig
from modsort.extract import (
    crosses_into_auto_discovery,
    destination_for,
    mapping_lookup,
    module_body_text,
    module_declaration,
    plan_extraction,
    should_extract,
)
from modsort.models import Category, FileRole, SourceFile, TopLevelItem
from modsort.parser import parse_source
from tests._fixtures.crate_builder import inline_module

CRATE = Path("/work/crate")


def _item(source: str) -> TopLevelItem:
    items = parse_source(source).items
    classify_items(items)
    return items[0]


def _source(relative: str, **kwargs) -> SourceFile:
    return SourceFile(path=CRATE / relative, text="", package_dir=CRATE, **kwargs)


def test_should_extract_threshold_is_exclusive() -> None:
    settings = ExtractConfig(threshold=100)

    assert should_extract(_item(inline_module("m", 100)), settings) is False
    assert should_extract(_item(inline_module("m", 101)), settings) is True


def test_should_extract_respects_disabled_setting() -> None:
    assert should_extract(_item(inline_module("m", 500)), ExtractConfig(enabled=False)) is False


def test_should_extract_ignores_non_modules() -> None:
    assert should_extract(_item("mod m;\n"), ExtractConfig(threshold=0)) is False
    assert should_extract(_item("fn a() {}\n"), ExtractConfig(threshold=0)) is False


@pytest.mark.parametrize(
    ("relative", "kwargs", "expected"),
    [
        ("src/lib.rs", {"role": FileRole.PACKAGE_ROOT}, "src/gadgets.rs"),
        ("src/main.rs", {"role": FileRole.PACKAGE_ROOT}, "src/gadgets.rs"),
        ("src/widgets.rs", {}, "src/widgets/gadgets.rs"),
        ("src/widgets/mod.rs", {}, "src/widgets/gadgets.rs"),
        ("tests/widgets.rs", {"auto_discovery": True}, "tests/widgets/gadgets/mod.rs"),
        (
            "tests/it.rs",
            {"role": FileRole.PACKAGE_ROOT, "auto_discovery": True},
            "tests/gadgets/mod.rs",
        ),
    ],
)
def test_destination_for_layout_rules(relative: str, kwargs: dict, expected: str) -> None:
    assert destination_for(_source(relative, **kwargs), "gadgets") == CRATE / expected


def test_plan_extraction_flags_differing_existing_file() -> None:
    source = _source("src/widgets.rs")
    item = _item(inline_module("gadgets", 3))
    destination = CRATE / "src/widgets/gadgets.rs"

    plan = plan_extraction(source, item, "fn a() {}\n", mapping_lookup({destination: "// other\n"}))

    assert plan.module_name == "gadgets"
    assert plan.destination == destination
    assert plan.conflict is True


def test_plan_extraction_accepts_identical_existing_file() -> None:
    source = _source("src/widgets.rs")
    item = _item(inline_module("gadgets", 3))
    destination = CRATE / "src/widgets/gadgets.rs"

    plan = plan_extraction(source, item, "fn a() {}\n", mapping_lookup({destination: "fn a() {}\n"}))

    assert plan.conflict is False


def test_plan_extraction_honours_blocked_destinations() -> None:
    source = _source("src/widgets.rs")
    item = _item(inline_module("gadgets", 3))

    plan = plan_extraction(
        source, item, "fn a() {}\n", blocked=frozenset({CRATE / "src/widgets/gadgets.rs"})
    )

    assert plan.conflict is True


def test_crosses_into_auto_discovery() -> None:
    assert crosses_into_auto_discovery(_source("src/lib.rs"), CRATE / "tests/gadgets.rs") is True
    assert (
        crosses_into_auto_discovery(_source("tests/it.rs"), CRATE / "tests/it/gadgets/mod.rs")
        is False
    )
    assert crosses_into_auto_discovery(_source("src/lib.rs"), CRATE / "src/gadgets.rs") is False

    loose = SourceFile(path=Path("/tmp/lib.rs"), text="")
    assert crosses_into_auto_discovery(loose, Path("/tmp/tests/x.rs")) is False


def test_module_body_text_dedents_and_trims() -> None:
    item = _item("mod m {\n\n    fn a() {}\n\n    fn b() {\n        todo!()\n    }\n\n}\n")

    assert module_body_text(item) == "fn a() {}\n\nfn b() {\n    todo!()\n}\n"


def test_module_body_text_keeps_inner_comments() -> None:
    item = _item("mod m { // trailing\n    // inner\n    fn a() {}\n}\n")

    assert module_body_text(item) == "// trailing\n// inner\nfn a() {}\n"


def test_module_declaration_keeps_trivia_visibility_and_tail() -> None:
    item = _item("/// Helpers.\n#[cfg(test)]\npub(crate) mod tests {\n    fn a() {}\n} // end\n")

    declaration = module_declaration(item)

    assert declaration.category is Category.MODULE_DECLARATION
    assert declaration.name == "tests"
    assert declaration.module is None
    assert declaration.trivia == "/// Helpers.\n#[cfg(test)]\n"
    assert declaration.text == "pub(crate) mod tests; // end\n"
