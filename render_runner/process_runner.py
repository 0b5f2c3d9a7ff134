"""
Execution of the external renderer.

The renderer is built and run through cargo in release mode. Its standard
output is streamed verbatim into the job's output file; standard error is
inherited so build and render diagnostics stay visible.
"""

from __future__ import annotations

import hashlib
import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path
from typing import IO, List, Optional, Protocol, Sequence

from .config_schema import HarnessConfig
from .output_paths import RenderJob

LOG = logging.getLogger("render_runner.process")


class RenderProcessError(RuntimeError):
    """Raised when the renderer cannot be launched or exits with a non-zero status."""

    def __init__(
        self,
        message: str,
        *,
        exit_code: Optional[int] = None,
        result: Optional[RunResult] = None,
    ) -> None:
        super().__init__(message)
        self.exit_code = exit_code
        self.result = result


@dataclass(frozen=True, slots=True)
class ProcessResult:
    exit_code: int
    duration: float


@dataclass(frozen=True, slots=True)
class RunResult:
    iteration_index: Optional[int]
    duration_millis: float
    succeeded: bool
    bytes_written: int = 0


class ProcessRunner(Protocol):
    def run(self, command: Sequence[str], *, stdout: IO[bytes]) -> ProcessResult:
        ...


class SubprocessRunner:
    """Blocking runner backed by `subprocess.run`."""

    def run(self, command: Sequence[str], *, stdout: IO[bytes]) -> ProcessResult:
        LOG.debug("Renderer command: %s", " ".join(command))
        start = time.perf_counter()
        try:
            completed = subprocess.run(list(command), stdout=stdout, check=False)
        except FileNotFoundError as exc:
            raise RenderProcessError(f"{command[0]} not found: {exc}") from exc
        return ProcessResult(
            exit_code=completed.returncode,
            duration=time.perf_counter() - start,
        )


def build_render_command(config: HarnessConfig) -> List[str]:
    return [
        config.cargo_path,
        "run",
        "--release",
        *config.cargo_args,
        "--example",
        config.example_name,
    ]


def compute_sha256(path: Path) -> str:
    digest = hashlib.sha256()
    with path.open("rb") as handle:
        for chunk in iter(lambda: handle.read(1 << 20), b""):
            digest.update(chunk)
    return digest.hexdigest()


def execute_job(
    job: RenderJob,
    config: HarnessConfig,
    runner: ProcessRunner,
) -> RunResult:
    """
    Run the renderer once for `job`, writing its stdout to `job.output_path`.

    The output file is truncated first and closed when the process exits,
    whether or not it succeeded. A failed run leaves any partial output in
    place and raises `RenderProcessError`.
    """
    command = build_render_command(config)
    with job.output_path.open("wb") as handle:
        result = runner.run(command, stdout=handle)

    if result.exit_code != 0:
        failed = RunResult(
            iteration_index=job.iteration_index,
            duration_millis=result.duration * 1000.0,
            succeeded=False,
            bytes_written=job.output_path.stat().st_size,
        )
        LOG.error(
            "Renderer exited with status %s | example=%s output=%s",
            result.exit_code,
            job.example_name,
            job.output_path,
        )
        raise RenderProcessError(
            f"Renderer exited with status {result.exit_code}",
            exit_code=result.exit_code,
            result=failed,
        )

    size = job.output_path.stat().st_size
    if LOG.isEnabledFor(logging.DEBUG):
        LOG.debug(
            "Wrote %d bytes to %s (sha256=%s)",
            size,
            job.output_path,
            compute_sha256(job.output_path),
        )
    return RunResult(
        iteration_index=job.iteration_index,
        duration_millis=result.duration * 1000.0,
        succeeded=True,
        bytes_written=size,
    )


__all__ = [
    "ProcessResult",
    "ProcessRunner",
    "RenderProcessError",
    "RunResult",
    "SubprocessRunner",
    "build_render_command",
    "compute_sha256",
    "execute_job",
]
