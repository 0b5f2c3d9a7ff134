from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from types import SimpleNamespace
from typing import IO, Sequence

import pytest

from render_runner import process_runner
from render_runner.config_schema import HarnessConfig
from render_runner.output_paths import RenderJob
from render_runner.process_runner import ProcessResult, RenderProcessError

PPM = b"P3\n1 1\n255\n255 0 0\n"


class RecordingRunner:
    def __init__(self, *, payload: bytes = PPM, exit_code: int = 0) -> None:
        self.payload = payload
        self.exit_code = exit_code
        self.commands: list[list[str]] = []

    def run(self, command: Sequence[str], *, stdout: IO[bytes]) -> ProcessResult:
        self.commands.append(list(command))
        stdout.write(self.payload)
        return ProcessResult(exit_code=self.exit_code, duration=0.25)


def _job(tmp_path: Path, name: str = "output.ppm") -> RenderJob:
    target = tmp_path / "scene1"
    target.mkdir(parents=True, exist_ok=True)
    return RenderJob(example_name="scene1", iteration_index=None, output_path=target / name)


def test_build_render_command_uses_release_mode() -> None:
    config = HarnessConfig(example_name="scene2", cargo_args=("--features", "fast"))
    assert process_runner.build_render_command(config) == [
        "cargo",
        "run",
        "--release",
        "--features",
        "fast",
        "--example",
        "scene2",
    ]


def test_execute_job_writes_stdout_to_output(tmp_path: Path) -> None:
    config = HarnessConfig(example_name="scene1", output_root=tmp_path)
    runner = RecordingRunner()
    job = _job(tmp_path)

    result = process_runner.execute_job(job, config, runner)

    assert job.output_path.read_bytes() == PPM
    assert result.succeeded is True
    assert result.iteration_index is None
    assert result.bytes_written == len(PPM)
    assert result.duration_millis == pytest.approx(250.0)
    assert runner.commands == [["cargo", "run", "--release", "--example", "scene1"]]


def test_execute_job_truncates_existing_file(tmp_path: Path) -> None:
    config = HarnessConfig(example_name="scene1", output_root=tmp_path)
    job = _job(tmp_path)
    job.output_path.write_bytes(b"x" * 1024)

    process_runner.execute_job(job, config, RecordingRunner())

    assert job.output_path.read_bytes() == PPM


def test_execute_job_failure_keeps_partial_output(tmp_path: Path) -> None:
    config = HarnessConfig(example_name="scene1", output_root=tmp_path)
    job = _job(tmp_path)

    with pytest.raises(RenderProcessError) as excinfo:
        process_runner.execute_job(job, config, RecordingRunner(payload=b"P3\n", exit_code=101))

    assert excinfo.value.exit_code == 101
    assert excinfo.value.result is not None
    assert excinfo.value.result.succeeded is False
    assert excinfo.value.result.bytes_written == 3
    assert job.output_path.read_bytes() == b"P3\n"


def test_execute_job_logs_checksum_when_verbose(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    config = HarnessConfig(example_name="scene1", output_root=tmp_path)
    job = _job(tmp_path)

    with caplog.at_level(logging.DEBUG, logger="render_runner.process"):
        process_runner.execute_job(job, config, RecordingRunner())

    assert hashlib.sha256(PPM).hexdigest() in caplog.text


def test_subprocess_runner_redirects_stdout(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    calls: list[tuple[list[str], object, bool]] = []

    def fake_run(cmd, stdout, check):
        calls.append((cmd, stdout, check))
        return SimpleNamespace(returncode=3)

    monkeypatch.setattr("render_runner.process_runner.subprocess.run", fake_run)

    with (tmp_path / "out.ppm").open("wb") as handle:
        result = process_runner.SubprocessRunner().run(["cargo", "run"], stdout=handle)

    assert result.exit_code == 3
    assert result.duration >= 0.0
    assert calls[0][0] == ["cargo", "run"]
    assert calls[0][1] is handle
    assert calls[0][2] is False


def test_subprocess_runner_missing_executable(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_run(cmd, stdout, check):
        raise FileNotFoundError(2, "No such file or directory", cmd[0])

    monkeypatch.setattr("render_runner.process_runner.subprocess.run", fake_run)

    with (tmp_path / "out.ppm").open("wb") as handle:
        with pytest.raises(RenderProcessError, match="not found"):
            process_runner.SubprocessRunner().run(["no-such-cargo", "run"], stdout=handle)


def test_compute_sha256(tmp_path: Path) -> None:
    path = tmp_path / "blob.ppm"
    path.write_bytes(PPM)
    assert process_runner.compute_sha256(path) == hashlib.sha256(PPM).hexdigest()
