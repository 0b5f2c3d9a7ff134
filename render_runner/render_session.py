"""
Session-level entry point for the render runner.

Usage:
    python -m render_runner.render_session scene1 -n 5 -t
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import List, NoReturn, Optional

from . import __version__
from .config_schema import HarnessConfig, UsageError, resolve_config
from .output_paths import ensure_output_dir, plan_jobs, session_timestamp
from .process_runner import (
    ProcessRunner,
    RenderProcessError,
    RunResult,
    SubprocessRunner,
    build_render_command,
    execute_job,
)
from .timing import (
    TOTAL_LABEL,
    Clock,
    format_elapsed,
    iteration_label,
    start_timer,
    stop_timer,
)

LOG = logging.getLogger("render_runner.session")


class _ArgumentParser(argparse.ArgumentParser):
    """Argument parser that reports problems as `UsageError` instead of exiting."""

    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="render-runner",
        description="Build and run a renderer example repeatedly, saving each image.",
        add_help=False,
    )
    parser.add_argument(
        "examples",
        nargs="*",
        metavar="example",
        help="Name of the cargo example to render.",
    )
    parser.add_argument(
        "-n",
        "--count",
        default="1",
        metavar="<n>",
        help="Number of times to run the example.",
    )
    parser.add_argument(
        "-t",
        "--timestamp",
        action="store_true",
        help="Include a timestamp in the output file name.",
    )
    parser.add_argument(
        "-h",
        "--help",
        action="store_true",
        help="Print this help message.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file with runner defaults (output_root, cargo, cargo_args).",
    )
    parser.add_argument(
        "--output-root",
        type=Path,
        dest="output_root",
        default=None,
        help="Directory under which per-example output folders are created (default: out).",
    )
    parser.add_argument(
        "--cargo",
        type=str,
        default=None,
        help="Path to the cargo executable.",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Print planned runs without creating files or invoking the renderer.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging.",
    )
    return parser


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    logging.getLogger("render_runner").setLevel(level)


def _log_run(result: RunResult) -> None:
    LOG.debug(
        "Run finished | index=%s succeeded=%s renderer_ms=%.3f bytes=%d",
        result.iteration_index if result.iteration_index is not None else 1,
        result.succeeded,
        result.duration_millis,
        result.bytes_written,
    )


def run_session(
    config: HarnessConfig,
    runner: ProcessRunner,
    timestamp: str,
    *,
    clock: Clock = time.perf_counter,
) -> float:
    """
    Run the renderer `config.count` times in sequence.

    Batch sessions print a progress line and the elapsed time of every
    iteration. The total session time is always printed, also when an
    iteration fails; the failure then propagates and no further iterations
    run. Returns the total elapsed milliseconds.
    """
    total = start_timer(TOTAL_LABEL, clock)
    try:
        for job in plan_jobs(config, timestamp):
            if job.iteration_index is None:
                _log_run(execute_job(job, config, runner))
                continue

            print(f"Rendering {job.iteration_index}/{config.count}", flush=True)
            stopwatch = start_timer(iteration_label(job.iteration_index), clock)
            result = execute_job(job, config, runner)
            print(format_elapsed(stopwatch.label, stop_timer(stopwatch, clock)))
            print("", flush=True)
            _log_run(result)
    finally:
        total_ms = stop_timer(total, clock)
        print(format_elapsed(total.label, total_ms), flush=True)
    return total_ms


def describe_session(config: HarnessConfig, timestamp: str) -> None:
    command = " ".join(build_render_command(config))
    LOG.info("Dry run enabled; no renders will be executed.")
    for job in plan_jobs(config, timestamp):
        LOG.info(
            "Run plan | index=%s command=%s output=%s",
            job.iteration_index if job.iteration_index is not None else 1,
            command,
            job.output_path,
        )


def _usage_failure(parser: argparse.ArgumentParser, exc: UsageError) -> int:
    print(f"error: {exc}", file=sys.stderr)
    parser.print_help()
    return 1


def main(
    argv: Optional[List[str]] = None,
    *,
    runner: Optional[ProcessRunner] = None,
    now: Optional[datetime] = None,
) -> int:
    """Resolve arguments, run the session, and return the process exit code."""
    started_at = now if now is not None else datetime.now()
    parser = build_arg_parser()
    try:
        args = parser.parse_intermixed_args(argv)
    except UsageError as exc:
        return _usage_failure(parser, exc)

    if args.help:
        parser.print_help()
        return 0

    try:
        config = resolve_config(args)
    except UsageError as exc:
        return _usage_failure(parser, exc)

    _setup_logging(config.verbose)
    timestamp = session_timestamp(started_at)
    LOG.debug("render-runner %s | %s", __version__, config.describe())

    if config.dry_run:
        describe_session(config, timestamp)
        return 0

    try:
        ensure_output_dir(config)
        run_session(config, runner or SubprocessRunner(), timestamp)
    except RenderProcessError as exc:
        if exc.result is not None:
            _log_run(exc.result)
        LOG.error("Render session aborted: %s", exc)
        if exc.exit_code is not None and exc.exit_code > 0:
            return exc.exit_code
        return 1
    except OSError as exc:
        LOG.error("Render session aborted by filesystem error: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
