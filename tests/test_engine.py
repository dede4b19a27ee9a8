"""Tests for modsort.engine."""

from __future__ import annotations

from pathlib import Path

from modsort.config import ExtractConfig
from modsort.engine import CLAIMED_REASON, reorganize
from modsort.extract import mapping_lookup
from modsort.models import ExtractedFile, FileRole, OutcomeKind, SourceFile
from tests._fixtures.crate_builder import inline_module, module_body

CRATE = Path("/work/crate")


def _widgets(text: str, relative: str = "src/widgets.rs", **kwargs) -> SourceFile:
    return SourceFile(path=CRATE / relative, text=text, package_dir=CRATE, **kwargs)


def test_package_root_is_sorted_without_extraction() -> None:
    source = SourceFile(
        path=CRATE / "src/lib.rs",
        text="fn b(){}\nstruct A{}\nuse x;\n",
        role=FileRole.PACKAGE_ROOT,
    )

    outcome = reorganize(source, ExtractConfig(enabled=False))

    assert outcome.proposed == "use x;\n\nstruct A{}\n\nfn b(){}\n"
    assert outcome.extracted == []
    assert outcome.kind is OutcomeKind.REWRITTEN


def test_detached_attribute_and_doc_comment_stay_with_their_item() -> None:
    for outer in ("#[cfg(test)]", "/// Docs for b."):
        text = f"{outer}\n\nfn b() {{}}\nuse x;\n"

        outcome = reorganize(_widgets(text), ExtractConfig(enabled=False))

        assert outcome.proposed == f"use x;\n\n{outer}\n\nfn b() {{}}\n"
        again = reorganize(_widgets(outcome.proposed), ExtractConfig(enabled=False))
        assert again.proposed == outcome.proposed


def test_sorted_file_is_unchanged() -> None:
    text = "use x;\n\nstruct A;\n\nfn b() {}\n"

    outcome = reorganize(_widgets(text))

    assert outcome.proposed == text
    assert outcome.kind is OutcomeKind.UNCHANGED
    assert outcome.changed is False


def test_oversized_module_is_extracted_next_to_ordinary_module() -> None:
    text = "use std::fmt;\n\n" + inline_module("gadgets", 150)

    outcome = reorganize(_widgets(text), ExtractConfig(threshold=100))

    assert outcome.kind is OutcomeKind.EXTRACTION_PERFORMED
    assert outcome.extracted == [
        ExtractedFile(CRATE / "src/widgets/gadgets.rs", module_body(150)),
    ]
    assert outcome.proposed == "mod gadgets;\n\nuse std::fmt;\n"
    assert outcome.conflicts == []


def test_extraction_under_tests_uses_index_file() -> None:
    text = "use std::fmt;\n\n" + inline_module("gadgets", 150)
    source = _widgets(text, "tests/widgets.rs", auto_discovery=True)

    outcome = reorganize(source, ExtractConfig(threshold=100))

    assert [extracted.path for extracted in outcome.extracted] == [
        CRATE / "tests/widgets/gadgets/mod.rs"
    ]
    assert outcome.proposed == "mod gadgets;\n\nuse std::fmt;\n"


def test_extraction_from_package_root_writes_sibling() -> None:
    source = SourceFile(
        path=CRATE / "src/lib.rs",
        text=inline_module("gadgets", 120) + "\nfn run() {}\n",
        role=FileRole.PACKAGE_ROOT,
        package_dir=CRATE,
    )

    outcome = reorganize(source)

    assert [extracted.path for extracted in outcome.extracted] == [CRATE / "src/gadgets.rs"]
    assert outcome.proposed == "mod gadgets;\n\nfn run() {}\n"


def test_threshold_boundary() -> None:
    settings = ExtractConfig(threshold=100)

    at_threshold = reorganize(_widgets(inline_module("gadgets", 100)), settings)
    above_threshold = reorganize(_widgets(inline_module("gadgets", 101)), settings)

    assert at_threshold.extracted == []
    assert at_threshold.proposed.startswith("mod gadgets {\n")
    assert len(above_threshold.extracted) == 1
    assert above_threshold.proposed == "mod gadgets;\n"


def test_conflicting_destination_is_never_replaced() -> None:
    text = "fn zed() {}\n\n" + inline_module("gadgets", 150) + "\nstruct A;\n"
    destination = CRATE / "src/widgets/gadgets.rs"
    existing = mapping_lookup({destination: "// written by hand\n"})

    outcome = reorganize(_widgets(text), ExtractConfig(threshold=100), existing)

    assert outcome.kind is OutcomeKind.CONFLICT
    assert outcome.extracted == []
    assert [(c.module_name, c.destination) for c in outcome.conflicts] == [("gadgets", destination)]
    assert outcome.proposed == "struct A;\n\nfn zed() {}\n\n" + inline_module("gadgets", 150)


def test_identical_destination_is_not_a_conflict() -> None:
    destination = CRATE / "src/widgets/gadgets.rs"
    existing = mapping_lookup({destination: module_body(150)})

    outcome = reorganize(_widgets(inline_module("gadgets", 150)), existing=existing)

    assert outcome.conflicts == []
    assert outcome.extracted == [ExtractedFile(destination, module_body(150))]


def test_blocked_destination_reports_claim_conflict() -> None:
    destination = CRATE / "src/widgets/gadgets.rs"

    outcome = reorganize(
        _widgets(inline_module("gadgets", 150)), blocked=frozenset({destination})
    )

    assert outcome.extracted == []
    assert [conflict.reason for conflict in outcome.conflicts] == [CLAIMED_REASON]


def test_nested_modules_extract_recursively() -> None:
    inner = "".join(f"        fn g_{index:03d}() {{}}\n" for index in range(120))
    text = "mod outer {\n    mod inner {\n" + inner + "    }\n    fn h() {}\n}\n"
    source = SourceFile(
        path=CRATE / "src/lib.rs", text=text, role=FileRole.PACKAGE_ROOT, package_dir=CRATE
    )

    outcome = reorganize(source, ExtractConfig(threshold=100))

    assert outcome.proposed == "mod outer;\n"
    assert outcome.extracted == [
        ExtractedFile(CRATE / "src/outer.rs", "mod inner;\n\nfn h() {}\n"),
        ExtractedFile(CRATE / "src/outer/inner.rs", module_body(120, prefix="g")),
    ]


def test_shebang_file_keeps_modules_inline() -> None:
    text = "#!/usr/bin/env run-cargo-script\n\n" + inline_module("big", 150) + "\nfn main() {}\n"

    outcome = reorganize(_widgets(text, "scripts/tool.rs"), ExtractConfig(threshold=100))

    assert outcome.extracted == []
    assert outcome.warnings and "script" in outcome.warnings[0]
    assert outcome.proposed.startswith("#!/usr/bin/env run-cargo-script\n\nfn main() {}\n\nmod big {\n")


def test_extraction_into_auto_discovery_directory_is_skipped() -> None:
    # An ordinary module named `tests.rs` at the package root would extract into tests/.
    source = SourceFile(path=CRATE / "tests.rs", text=inline_module("gadgets", 150), package_dir=CRATE)

    outcome = reorganize(source, ExtractConfig(threshold=100))

    assert outcome.extracted == []
    assert outcome.warnings and "auto-discovery" in outcome.warnings[0]


def test_parse_failure_leaves_text_untouched() -> None:
    text = "fn broken( {\n"

    outcome = reorganize(_widgets(text))

    assert outcome.kind is OutcomeKind.PARSE_FAILURE
    assert outcome.error is not None
    assert outcome.proposed == text
    assert outcome.changed is False


def test_file_without_items_is_returned_unchanged() -> None:
    text = "// nothing here\n\n\n"

    outcome = reorganize(_widgets(text))

    assert outcome.proposed == text
    assert outcome.kind is OutcomeKind.UNCHANGED


def test_reorganize_is_idempotent_after_extraction() -> None:
    text = "fn b() {}\n" + inline_module("gadgets", 150) + "use std::fmt;\n"
    first = reorganize(_widgets(text), ExtractConfig(threshold=100))

    second = reorganize(_widgets(first.proposed), ExtractConfig(threshold=100))
    body = reorganize(
        SourceFile(path=first.extracted[0].path, text=first.extracted[0].content),
        ExtractConfig(threshold=100),
    )

    assert second.proposed == first.proposed
    assert second.extracted == []
    assert body.proposed == first.extracted[0].content
