"""
Output path planning for render sessions.

Every iteration writes to its own `.ppm` file under
`<output_root>/<example_name>/`. Batch sessions number their files, and an
optional timestamp prefix groups all files of a session together.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

from .config_schema import HarnessConfig

LOG = logging.getLogger("render_runner.paths")

OUTPUT_SUFFIX = ".ppm"
SINGLE_OUTPUT_STEM = "output"
INDEX_WIDTH = 3


@dataclass(frozen=True, slots=True)
class RenderJob:
    example_name: str
    iteration_index: Optional[int]
    output_path: Path


def session_timestamp(now: Optional[datetime] = None) -> str:
    """
    Format the session start time for use in file names.

    Local time, ISO-8601 truncated to whole seconds, with colons replaced by
    hyphens, e.g. `2024-05-01T13-45-09`.
    """
    moment = now if now is not None else datetime.now()
    return moment.replace(microsecond=0, tzinfo=None).isoformat().replace(":", "-")


def output_file_name(index: Optional[int], timestamp: Optional[str] = None) -> str:
    """Return the file name for one iteration (`index` is None for single runs)."""
    if index is None:
        stem = timestamp if timestamp else SINGLE_OUTPUT_STEM
    else:
        padded = str(index).zfill(INDEX_WIDTH)
        stem = f"{timestamp}-{padded}" if timestamp else padded
    return f"{stem}{OUTPUT_SUFFIX}"


def ensure_output_dir(config: HarnessConfig) -> Path:
    """Create `<output_root>/<example_name>` (and parents) if missing."""
    target = config.example_dir
    target.mkdir(parents=True, exist_ok=True)
    LOG.debug("Output directory ready: %s", target)
    return target


def plan_jobs(config: HarnessConfig, timestamp: str) -> Iterator[RenderJob]:
    """
    Yield one `RenderJob` per iteration.

    `timestamp` is computed once per session; it is only used in file names
    when the config requests it.
    """
    prefix = timestamp if config.include_timestamp else None
    indices = range(1, config.count + 1) if config.is_batch else [None]
    for index in indices:
        yield RenderJob(
            example_name=config.example_name,
            iteration_index=index,
            output_path=config.example_dir / output_file_name(index, prefix),
        )


__all__ = [
    "RenderJob",
    "session_timestamp",
    "output_file_name",
    "ensure_output_dir",
    "plan_jobs",
]
