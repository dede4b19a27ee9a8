"""CLI entrypoint for modsort."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .config import CONFIG_FILENAME, ConfigError, ExtractConfig, load_config
from .evaluate import Mode
from .logging import configure_logging
from .runner import RunSettings, RunSummary, Runner, relativize


def _positive_int(value: str) -> int:
    number = _non_negative_int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer: {value!r}") from exc
    if number < 0:
        raise argparse.ArgumentTypeError("must not be negative")
    return number


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="modsort",
        description=(
            "Reorder top-level Rust items by kind and name, and move oversized "
            "inline modules into their own files."
        ),
    )
    modes = parser.add_mutually_exclusive_group()
    modes.add_argument(
        "-c",
        "--check",
        dest="mode",
        action="store_const",
        const=Mode.CHECK,
        help="Exit with status 1 when any file would change; write nothing.",
    )
    modes.add_argument(
        "--diff",
        dest="mode",
        action="store_const",
        const=Mode.DIFF,
        help="Print unified diffs of the proposed changes; write nothing.",
    )
    modes.add_argument(
        "-n",
        "--dry-run",
        dest="mode",
        action="store_const",
        const=Mode.DRY_RUN,
        help="Report which files would change; write nothing.",
    )
    parser.set_defaults(mode=Mode.WRITE)
    parser.add_argument(
        "-r",
        "--recursive",
        action="store_true",
        help="Process directories recursively.",
    )
    parser.add_argument(
        "--no-extract",
        action="store_true",
        help="Never move inline modules into separate files.",
    )
    parser.add_argument(
        "--extract-threshold",
        type=_non_negative_int,
        default=None,
        metavar="N",
        help="Extract inline modules with more than N body lines (default: 100).",
    )
    parser.add_argument(
        "-j",
        "--jobs",
        type=_positive_int,
        default=None,
        metavar="N",
        help="Number of worker threads (default: CPU count).",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        metavar="PATH",
        help=f"Configuration file (defaults to ./{CONFIG_FILENAME} when present).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Increase log verbosity for troubleshooting.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        metavar="PATH",
        help="Also write logs to PATH.",
    )
    parser.add_argument(
        "paths",
        nargs="*",
        type=Path,
        default=[Path(".")],
        help="Files or directories to process (defaults to current directory).",
    )
    return parser


def _settings_from_args(args: argparse.Namespace) -> RunSettings:
    if args.config is not None and not args.config.exists():
        raise ConfigError(f"Config file not found: {args.config}")
    config = load_config(args.config if args.config is not None else Path.cwd())

    extract = config.extract
    if args.no_extract or args.extract_threshold is not None:
        extract = ExtractConfig(
            enabled=extract.enabled and not args.no_extract,
            threshold=(
                extract.threshold if args.extract_threshold is None else args.extract_threshold
            ),
        )
    return RunSettings(
        mode=args.mode,
        extract=extract,
        jobs=args.jobs or config.worker_count,
        recursive=bool(args.recursive),
        exclude_paths=tuple(config.exclude_paths),
    )


def _print_diffs(summary: RunSummary) -> None:
    for report in summary.reports:
        if report.evaluation is None or not report.evaluation.changes_needed:
            continue
        if report.evaluation.diff:
            sys.stdout.write(report.evaluation.diff)
        for extracted in report.outcome.extracted:
            print(f"Would create: {relativize(extracted.path)}")


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for modsort."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    try:
        settings = _settings_from_args(args)
    except ConfigError as exc:
        parser.exit(1, f"modsort: {exc}\n")

    summary = Runner(settings).run(args.paths)

    if settings.mode is Mode.DIFF:
        _print_diffs(summary)

    exit_code = summary.exit_code
    if exit_code:
        parser.exit(exit_code)


if __name__ == "__main__":
    main(sys.argv[1:])
