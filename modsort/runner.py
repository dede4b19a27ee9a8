"""Batch driver: discovers files, runs the engine concurrently, applies results."""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path
from typing import AbstractSet, Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .config import ExtractConfig
from .engine import reorganize
from .evaluate import Evaluation, Mode, evaluate
from .layout import PackageLayout
from .logging import get_logger
from .models import ExtractionConflict, FileOutcome, SourceFile
from .scanner import SOURCE_SUFFIX, iter_source_files


@dataclass
class RunSettings:
    """Options for one batch run, merged from config file and CLI flags."""

    mode: Mode = Mode.WRITE
    extract: ExtractConfig = field(default_factory=ExtractConfig)
    jobs: int = 1
    recursive: bool = False
    exclude_paths: Sequence[str] = ()


@dataclass
class FileReport:
    """Outcome of one file plus what the run did with it."""

    outcome: FileOutcome
    evaluation: Optional[Evaluation] = None
    written: bool = False
    placement_warning: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.outcome.error is not None

    @property
    def changes_needed(self) -> bool:
        return self.evaluation is not None and self.evaluation.changes_needed


@dataclass
class RunSummary:
    mode: Mode
    reports: List[FileReport] = field(default_factory=list)

    @property
    def files_processed(self) -> int:
        return len(self.reports)

    @property
    def changed(self) -> List[FileReport]:
        return [report for report in self.reports if report.changes_needed]

    @property
    def failures(self) -> List[FileReport]:
        return [report for report in self.reports if report.failed]

    @property
    def conflicts(self) -> List[ExtractionConflict]:
        return [conflict for report in self.reports for conflict in report.outcome.conflicts]

    @property
    def exit_code(self) -> int:
        if not self.reports or self.failures or self.conflicts:
            return 1
        if self.mode is Mode.CHECK and self.changed:
            return 1
        return 0


class Runner:
    """Processes a set of paths with one ``RunSettings``."""

    def __init__(self, settings: RunSettings, layout: Optional[PackageLayout] = None) -> None:
        self.settings = settings
        self.layout = layout or PackageLayout()
        self.logger = get_logger("runner")
        self._warned: Set[Tuple[Optional[str], str]] = set()

    def collect(self, paths: Iterable[Path]) -> List[Path]:
        """Expand ``paths`` into the ordered, de-duplicated list of source files."""
        collected: List[Path] = []
        seen: Set[Path] = set()
        for path in paths:
            if path.is_dir():
                if not self.settings.recursive:
                    self.logger.warning(
                        "Skipping directory %s (use --recursive to process directories)", path
                    )
                    continue
                candidates: Iterable[Path] = iter_source_files(path, self.settings.exclude_paths)
            elif path.is_file():
                candidates = [path]
            else:
                self.logger.warning("Path does not exist: %s", path)
                continue
            for candidate in candidates:
                resolved = candidate.resolve()
                if resolved not in seen:
                    seen.add(resolved)
                    collected.append(resolved)
        return collected

    def run(self, paths: Iterable[Path]) -> RunSummary:
        files = self.collect(paths)
        summary = RunSummary(mode=self.settings.mode)
        if not files:
            self.logger.error("No %s files found to process", SOURCE_SUFFIX)
            return summary

        self.logger.debug("Processing %d file(s) with %d worker(s)", len(files), self.settings.jobs)
        reports = self._process_all(files)
        for report in reports:
            self._finish(report)
            summary.reports.append(report)

        if self.settings.mode is Mode.CHECK and summary.changed:
            self.logger.info("%d file(s) need sorting", len(summary.changed))
        return summary

    # ------------------------------------------------------------------
    # Internals

    def _process_all(self, files: Sequence[Path]) -> List[FileReport]:
        with ThreadPoolExecutor(max_workers=max(1, self.settings.jobs)) as pool:
            reports = list(pool.map(self._process, files))

            contested = _contested_destinations(reports)
            if contested:
                affected = [
                    index
                    for index, report in enumerate(reports)
                    if any(extracted.path in contested for extracted in report.outcome.extracted)
                ]
                for path in sorted(contested):
                    self.logger.debug("Destination %s is claimed by more than one file", path)
                rerun = list(
                    pool.map(lambda index: self._process(files[index], contested), affected)
                )
                for index, report in zip(affected, rerun):
                    reports[index] = report
        return reports

    def _process(self, path: Path, blocked: AbstractSet[Path] = frozenset()) -> FileReport:
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            outcome = FileOutcome(path=path, original="", proposed="", error=f"Failed to read: {exc}")
            return FileReport(outcome=outcome)

        placement = self.layout.resolve(path)
        source = SourceFile(
            path=path,
            text=text,
            role=placement.role,
            auto_discovery=placement.auto_discovery,
            package_dir=placement.package_dir,
        )
        started = time.perf_counter()
        try:
            outcome = reorganize(source, self.settings.extract, read_existing, blocked)
        except OSError as exc:
            outcome = FileOutcome(path=path, original=text, proposed=text, error=str(exc))
        self.logger.debug(
            "%s in %.1f ms",
            outcome.kind.value,
            (time.perf_counter() - started) * 1000,
            extra={"path": relativize(path)},
        )
        return FileReport(outcome=outcome, placement_warning=placement.warning)

    def _finish(self, report: FileReport) -> None:
        outcome = report.outcome
        label = relativize(outcome.path)

        if outcome.error is not None:
            self.logger.error("%s", outcome.error, extra={"path": label})
            return

        if report.placement_warning and (outcome.extracted or outcome.conflicts):
            self._warn_once(report.placement_warning)
        for warning in outcome.warnings:
            self._warn_once(warning, label)
        for conflict in outcome.conflicts:
            self.logger.warning(
                "cannot extract `mod %s` to %s: %s",
                conflict.module_name,
                relativize(conflict.destination),
                conflict.reason,
                extra={"path": label},
            )

        report.evaluation = evaluate(
            outcome.original,
            outcome.proposed,
            self.settings.mode,
            label=label,
            extra_changes=bool(outcome.extracted),
        )
        if not report.evaluation.changes_needed:
            return

        if self.settings.mode is Mode.DRY_RUN:
            self.logger.info("Would modify: %s", label)
            for extracted in outcome.extracted:
                self.logger.info("Would create: %s", relativize(extracted.path))
        if report.evaluation.should_write:
            try:
                report.written = self._apply(outcome, label)
            except OSError as exc:
                outcome.error = f"Failed to write: {exc}"
                self.logger.error("%s", outcome.error, extra={"path": label})

    def _apply(self, outcome: FileOutcome, label: str) -> bool:
        pending = []
        for extracted in outcome.extracted:
            current = read_existing(extracted.path)
            if current == extracted.content:
                continue
            if current is not None:
                # Appeared since planning; never overwrite it.
                outcome.conflicts.append(
                    ExtractionConflict(
                        extracted.path.stem, extracted.path, "destination changed during the run"
                    )
                )
                self.logger.warning(
                    "%s changed during the run; file left untouched",
                    relativize(extracted.path),
                    extra={"path": label},
                )
                return False
            pending.append(extracted)

        for extracted in pending:
            atomic_write(extracted.path, extracted.content)
            self.logger.info("Extracted: %s", relativize(extracted.path))
        if outcome.proposed != outcome.original:
            atomic_write(outcome.path, outcome.proposed)
            self.logger.info("Sorted: %s", label)
        return True

    def _warn_once(self, message: str, label: Optional[str] = None) -> None:
        if (label, message) in self._warned:
            return
        self._warned.add((label, message))
        self.logger.warning("%s", message, extra={"path": label})


def read_existing(path: Path) -> Optional[str]:
    """Return the current content at ``path`` or ``None`` when nothing is there."""
    if not path.exists():
        return None
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        return path.read_bytes().decode("utf-8", errors="replace")


def atomic_write(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` so readers see the old or the new file only."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(FileNotFoundError):
            os.unlink(tmp_name)
        raise


def _contested_destinations(reports: Sequence[FileReport]) -> Set[Path]:
    owners: Dict[Path, Set[Path]] = defaultdict(set)
    for report in reports:
        for extracted in report.outcome.extracted:
            owners[extracted.path].add(report.outcome.path)
    return {path for path, claimants in owners.items() if len(claimants) > 1}


def relativize(path: Path) -> str:
    """Render ``path`` relative to the working directory when it lies below it."""
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


__all__ = [
    "FileReport",
    "RunSettings",
    "RunSummary",
    "Runner",
    "atomic_write",
    "read_existing",
    "relativize",
]
