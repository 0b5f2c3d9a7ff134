"""
Configuration schema and resolution for the render runner.

Command-line arguments are resolved into an immutable `HarnessConfig`. Tool
defaults (output root, cargo executable, extra cargo arguments) may also be
read from an optional YAML settings file; explicit flags win over file values.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence

import argparse

import yaml


DEFAULT_OUTPUT_ROOT = Path("out")
DEFAULT_CARGO = "cargo"

_SETTINGS_KEYS = {"output_root", "cargo", "cargo_args"}


class UsageError(ValueError):
    """Raised when arguments cannot be resolved into a valid configuration."""


# ---------------------------------------------------------------------------
# Dataclasses
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RunnerSettings:
    """Tool defaults that rarely change between sessions."""

    output_root: Path = DEFAULT_OUTPUT_ROOT
    cargo: str = DEFAULT_CARGO
    cargo_args: tuple[str, ...] = ()

    def validate(self) -> None:
        if not str(self.output_root):
            raise UsageError("output_root cannot be empty.")
        if not self.cargo:
            raise UsageError("cargo executable cannot be empty.")
        for arg in self.cargo_args:
            if not isinstance(arg, str):
                raise UsageError("cargo_args must be a list of strings.")


@dataclass(frozen=True, slots=True)
class HarnessConfig:
    example_name: str
    count: int = 1
    include_timestamp: bool = False
    output_root: Path = DEFAULT_OUTPUT_ROOT
    cargo_path: str = DEFAULT_CARGO
    cargo_args: tuple[str, ...] = field(default_factory=tuple)
    dry_run: bool = False
    verbose: bool = False

    def validate(self) -> None:
        if not self.example_name:
            raise UsageError("Expected exactly one example name argument")
        if isinstance(self.count, bool) or not isinstance(self.count, int) or self.count <= 0:
            raise UsageError("Count must be a positive integer")

    @property
    def is_batch(self) -> bool:
        return self.count > 1

    @property
    def example_dir(self) -> Path:
        return self.output_root / self.example_name

    def describe(self) -> Dict[str, Any]:
        """Return a JSON-serializable summary (useful for logging)."""
        return {
            "example": self.example_name,
            "count": self.count,
            "timestamp": self.include_timestamp,
            "output_dir": str(self.example_dir),
            "cargo": self.cargo_path,
            "cargo_args": list(self.cargo_args),
            "dry_run": self.dry_run,
        }


# ---------------------------------------------------------------------------
# Resolution utilities
# ---------------------------------------------------------------------------


def parse_count(raw: str) -> int:
    """Parse the `--count` value; only strictly positive integers are accepted."""
    text = str(raw).strip()
    # Plain ASCII decimal only; int() would also take "1_0" or other scripts.
    if not (text.isascii() and text.isdigit()):
        raise UsageError("Count must be a positive integer")
    count = int(text)
    if count <= 0:
        raise UsageError("Count must be a positive integer")
    return count


def _load_yaml_file(path: Path) -> Mapping[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise UsageError(f"Settings file '{path}' cannot be read: {exc}") from exc
    except yaml.YAMLError as exc:
        raise UsageError(f"Settings file '{path}' is not valid YAML: {exc}") from exc
    if raw is None:
        raise UsageError(f"Settings file '{path}' is empty.")
    if not isinstance(raw, Mapping):
        raise UsageError(f"Settings file '{path}' must be a mapping at top level.")
    return raw


def load_runner_settings(path: Path) -> RunnerSettings:
    """
    Load runner defaults from a YAML file.

    Relative `output_root` values are resolved against the settings file's
    directory. Unknown keys are rejected so typos do not go unnoticed.
    """
    path = Path(path)
    if not path.is_file():
        raise UsageError(f"Settings file '{path}' does not exist.")

    mapping = _load_yaml_file(path)
    unknown = sorted(set(mapping) - _SETTINGS_KEYS)
    if unknown:
        raise UsageError(
            f"Unknown settings in '{path}': {', '.join(unknown)}. "
            f"Supported keys: {', '.join(sorted(_SETTINGS_KEYS))}"
        )

    raw_root = mapping.get("output_root")
    if raw_root is not None and not isinstance(raw_root, str):
        raise UsageError("output_root must be a string path.")
    raw_cargo = mapping.get("cargo")
    if raw_cargo is not None and not isinstance(raw_cargo, str):
        raise UsageError("cargo must be a string.")

    output_root = Path(raw_root or DEFAULT_OUTPUT_ROOT)
    if "output_root" in mapping and not output_root.is_absolute():
        output_root = (path.parent / output_root).resolve()

    cargo_args = mapping.get("cargo_args") or []
    if isinstance(cargo_args, str) or not isinstance(cargo_args, Sequence):
        raise UsageError("cargo_args must be a list of strings.")

    settings = RunnerSettings(
        output_root=output_root,
        cargo=raw_cargo or DEFAULT_CARGO,
        cargo_args=tuple(cargo_args),
    )
    settings.validate()
    return settings


def resolve_config(args: argparse.Namespace) -> HarnessConfig:
    """
    Turn parsed command-line arguments into a validated `HarnessConfig`.

    Raises `UsageError` for a missing or repeated example name, an invalid
    count, or an unusable settings file. Nothing is written to disk here.
    """
    examples: Sequence[str] = args.examples or []
    if len(examples) != 1:
        raise UsageError("Expected exactly one example name argument")

    count = parse_count(args.count)

    config_path: Optional[Path] = getattr(args, "config", None)
    settings = load_runner_settings(config_path) if config_path else RunnerSettings()

    output_root = getattr(args, "output_root", None) or settings.output_root
    cargo_path = getattr(args, "cargo", None) or settings.cargo

    config = HarnessConfig(
        example_name=examples[0],
        count=count,
        include_timestamp=bool(args.timestamp),
        output_root=Path(output_root),
        cargo_path=cargo_path,
        cargo_args=settings.cargo_args,
        dry_run=bool(getattr(args, "dry_run", False)),
        verbose=bool(getattr(args, "verbose", False)),
    )
    config.validate()
    return config
