"""Headless command-line interface over the acquisition pipeline.

All I/O (settings, logging, cache, network, stdout) lives here; the core
modules only receive records and return derived values.

Example::

    >>> from attendance_app.infra import cli
    >>> cli.main(["lookup", "--year", "1", "--module", "Genetics",
    ...           "--student-id", "1001"])  # doctest: +SKIP
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Callable, Sequence

import pandas as pd
import requests

from attendance_app import __version__
from attendance_app.core.common.errors import ValidationError
from attendance_app.core.common.types import DatasetKey, StudentReport
from attendance_app.core.extractor import build_report
from attendance_app.core.report_frames import sessions_frame, status_distribution, subjects_frame
from attendance_app.core.settings_loader import DEFAULT_SETTINGS_PATH, load_settings
from attendance_app.infra.errors import InfraError
from attendance_app.infra.logging import DEFAULT_LOGGING_CONFIG, PACKAGE_LOGGER, configure_logging, install_crash_reporter
from attendance_app.infra.pipeline import AcquisitionPipeline, build_pipeline
from attendance_app.utils.path_utils import get_log_directory

logger = logging.getLogger(PACKAGE_LOGGER)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_FAILURE = 2

Runner = Callable[[argparse.Namespace, AcquisitionPipeline], int]


def _key_from_args(args: argparse.Namespace) -> DatasetKey:
    return DatasetKey(args.year, args.module)


def _print_report(report: StudentReport, *, show_sessions: bool) -> None:
    stats = report.stats
    print(f"{report.name} ({report.student_id}) group {report.group or '-'}")
    print(
        f"attendance {stats.attendance_percentage}% "
        f"({stats.total_attended}/{stats.total_required}) status {stats.status.value}"
    )
    print(stats.status_message)
    if not report.subjects:
        return
    with pd.option_context("display.width", 120):
        print()
        print(subjects_frame(report.subjects).to_string(index=False))
        if show_sessions:
            for subject in report.subjects:
                if not subject.sessions:
                    continue
                print()
                print(subject.name)
                print(sessions_frame(subject).to_string(index=False))


def _run_modules(args: argparse.Namespace, pipeline: AcquisitionPipeline) -> int:
    modules = pipeline.available_modules(args.year)
    if not modules:
        print(f"no modules configured for year {args.year}")
        return EXIT_OK
    for module in modules:
        print(f"{module.id}\t{module.name}")
    return EXIT_OK


def _run_lookup(args: argparse.Namespace, pipeline: AcquisitionPipeline) -> int:
    key = _key_from_args(args)
    records = pipeline.get_dataset(key, force_refresh=args.refresh)
    report = build_report(records, args.student_id)
    if report is None:
        print(f"❌ student {args.student_id.strip()} not found in {key.stem}", file=sys.stderr)
        return EXIT_NOT_FOUND
    if args.json:
        payload = asdict(report)
        payload.pop("record", None)
        print(json.dumps(payload, ensure_ascii=False, indent=2))
    else:
        _print_report(report, show_sessions=args.sessions)
    return EXIT_OK


def _run_overview(args: argparse.Namespace, pipeline: AcquisitionPipeline) -> int:
    key = _key_from_args(args)
    records = pipeline.get_dataset(key, force_refresh=args.refresh)
    frame = status_distribution(records)
    print(f"{key.stem}: {len(records)} students")
    if not frame.empty:
        print(frame.to_string(index=False))
    return EXIT_OK


def _run_clear_cache(args: argparse.Namespace, pipeline: AcquisitionPipeline) -> int:
    removed = pipeline.clear_cache()
    print(f"removed {removed} cached dataset(s)")
    return EXIT_OK


_RUNNERS: dict[str, Runner] = {
    "modules": _run_modules,
    "lookup": _run_lookup,
    "overview": _run_overview,
    "clear-cache": _run_clear_cache,
}


def _add_dataset_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--year", required=True, help="academic year, e.g. 1")
    parser.add_argument("--module", required=True, help="module id, e.g. Genetics")
    parser.add_argument("--refresh", action="store_true", help="ignore the local cache")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="attendance", description="Attendance dashboard CLI")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    # relative defaults: config/ ships with the repository, not inside the wheel
    parser.add_argument(
        "--settings",
        default=str(DEFAULT_SETTINGS_PATH),
        help="settings JSON path (default: %(default)s, relative to the working directory)",
    )
    parser.add_argument(
        "--log-config",
        default=str(DEFAULT_LOGGING_CONFIG),
        help="logging YAML path (default: %(default)s, relative to the working directory; "
        "logging stays unconfigured when the file is missing)",
    )
    parser.add_argument("--log-dir", default=None, help="folder for log files (default ~/AttendanceDashboard/logs)")
    parser.add_argument("--cache-dir", default=None, help="override the cache folder")
    sub = parser.add_subparsers(dest="command", required=True)

    modules_cmd = sub.add_parser("modules", help="list the modules of an academic year")
    modules_cmd.add_argument("--year", required=True, help="academic year, e.g. 1")

    lookup_cmd = sub.add_parser("lookup", help="show one student's attendance")
    _add_dataset_args(lookup_cmd)
    lookup_cmd.add_argument("--student-id", required=True, help="student id")
    lookup_cmd.add_argument("--sessions", action="store_true", help="print per-session tables")
    lookup_cmd.add_argument("--json", action="store_true", help="print the report as JSON")

    overview_cmd = sub.add_parser("overview", help="status distribution of a whole module")
    _add_dataset_args(overview_cmd)

    sub.add_parser("clear-cache", help="delete every cached dataset")
    return parser


def main(
    argv: Sequence[str] | None = None,
    *,
    session: requests.Session | None = None,
) -> int:
    """CLI entry point; returns the process exit code."""

    parser = _build_parser()
    args = parser.parse_args(argv)

    restore_hook: Callable[[], None] | None = None
    if Path(args.log_config).is_file():
        run = configure_logging(
            args.log_config,
            log_dir=args.log_dir or get_log_directory(),
            version=__version__,
        )
        restore_hook = install_crash_reporter(logger, run)

    try:
        try:
            settings = load_settings(args.settings)
        except (FileNotFoundError, ValueError) as exc:
            print(f"❌ {exc}", file=sys.stderr)
            return EXIT_FAILURE
        logger.debug("loaded settings %r", settings)

        pipeline = build_pipeline(
            settings,
            session=session,
            cache_dir=Path(args.cache_dir) if args.cache_dir else None,
        )
        runner = _RUNNERS.get(args.command)
        if runner is None:
            raise RuntimeError(f"Unsupported command: {args.command}")
        try:
            return runner(args, pipeline)
        except ValidationError as exc:
            print(f"❌ {exc}", file=sys.stderr)
            return EXIT_FAILURE
        except InfraError as exc:
            logger.error("data acquisition failed: %s", exc)
            print(f"❌ {exc}", file=sys.stderr)
            return EXIT_FAILURE
    finally:
        if restore_hook is not None:
            restore_hook()


if __name__ == "__main__":
    raise SystemExit(main())
