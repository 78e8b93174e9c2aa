# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Dumpvault Pipeline - Two-stage external process pipelines.

Runs ``producer | consumer`` as two concurrent OS processes joined by an
os.pipe(), the same shape as a shell pipeline but with explicit failure
propagation instead of relying on ``set -o pipefail``:

- the producer reads from ``source`` (a file) or /dev/null
- the consumer writes to ``sink`` (a file) or back to us for diagnostics
- both processes are always joined; the pipeline status is the rightmost
  non-zero stage status, so a failed producer fails the pipeline even when
  the consumer exits zero on truncated input

Data never passes through this process, so dumps of any size stream in
constant memory.
"""

import asyncio
import os
import shlex
from contextlib import ExitStack
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Tuple

import structlog

from dumpvault.exceptions import EXIT_TIMEOUT, StageFailure

logger = structlog.get_logger()

# Shell conventions for exec failures
COMMAND_NOT_EXECUTABLE = 126
COMMAND_NOT_FOUND = 127


@dataclass(frozen=True)
class StageCommand:
    """One external process in a pipeline."""

    name: str
    argv: List[str]
    # Full child environment; None inherits ours. May hold secrets.
    env: Dict[str, str] | None = field(default=None, repr=False)

    def display(self) -> str:
        """Shell-quoted command line, safe to log."""
        return shlex.join(self.argv)


@dataclass
class StageResult:
    """Exit status and captured diagnostics of one stage."""

    name: str
    argv: List[str]
    returncode: int
    output: bytes = b""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def output_lines(self) -> List[str]:
        text = self.output.decode(errors="replace")
        return [line for line in text.splitlines() if line.strip()]


@dataclass
class PipelineResult:
    """Outcome of running a pipeline to completion."""

    stages: List[StageResult] = field(default_factory=list)
    bytes_written: int | None = None
    timed_out: bool = False

    @property
    def returncode(self) -> int:
        if self.timed_out:
            return EXIT_TIMEOUT
        failed = self.failed_stage
        return failed.returncode if failed else 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def failed_stage(self) -> StageResult | None:
        for stage in reversed(self.stages):
            if not stage.ok:
                return stage
        return None


def _exit_status(returncode: int | None) -> int:
    """Map a Popen return code to a shell-style exit status."""
    if returncode is None:
        return EXIT_TIMEOUT
    if returncode < 0:
        return 128 - returncode
    return returncode


async def _spawn(command: StageCommand, stdin: Any, stdout: Any) -> asyncio.subprocess.Process:
    # Last stage without a sink: fold stderr into stdout for one diagnostic stream
    if stdout == asyncio.subprocess.PIPE:
        stderr = asyncio.subprocess.STDOUT
    else:
        stderr = asyncio.subprocess.PIPE

    try:
        process = await asyncio.create_subprocess_exec(
            *command.argv,
            stdin=stdin,
            stdout=stdout,
            stderr=stderr,
            env=command.env,
        )
    except FileNotFoundError as exc:
        raise StageFailure(
            f"{command.name}: command not found: {command.argv[0]}",
            COMMAND_NOT_FOUND,
            details={"stage": command.name},
        ) from exc
    except PermissionError as exc:
        raise StageFailure(
            f"{command.name}: permission denied: {command.argv[0]}",
            COMMAND_NOT_EXECUTABLE,
            details={"stage": command.name},
        ) from exc

    logger.debug("stage_started", stage=command.name, pid=process.pid)
    return process


async def _terminate(processes: List[asyncio.subprocess.Process]) -> None:
    """Kill every still-running stage and reap it."""
    for process in processes:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                # Exited between the check and the kill
                continue
    for process in processes:
        await process.wait()


async def _spawn_all(
    commands: List[StageCommand],
    stdin: Any,
    stdout: Any,
) -> List[asyncio.subprocess.Process]:
    if len(commands) == 1:
        return [await _spawn(commands[0], stdin, stdout)]

    read_fd, write_fd = os.pipe()
    try:
        try:
            producer = await _spawn(commands[0], stdin, write_fd)
        finally:
            # Our copy must go, or the consumer never sees EOF
            os.close(write_fd)
        try:
            consumer = await _spawn(commands[1], read_fd, stdout)
        except BaseException:
            await _terminate([producer])
            raise
    finally:
        os.close(read_fd)

    return [producer, consumer]


async def _join(
    commands: List[StageCommand],
    processes: List[asyncio.subprocess.Process],
    timeout: float | None,
) -> Tuple[List[StageResult], bool]:
    async def collect(process: asyncio.subprocess.Process) -> bytes:
        out, err = await process.communicate()
        return (out or b"") + (err or b"")

    timed_out = False
    try:
        outputs = await asyncio.wait_for(
            asyncio.gather(*(collect(p) for p in processes)),
            timeout,
        )
    except asyncio.TimeoutError:
        logger.error("pipeline_timeout", timeout=timeout, stages=[c.name for c in commands])
        await _terminate(processes)
        outputs = [b""] * len(processes)
        timed_out = True
    except asyncio.CancelledError:
        await _terminate(processes)
        raise

    stages = [
        StageResult(
            name=command.name,
            argv=list(command.argv),
            returncode=_exit_status(process.returncode),
            output=output,
        )
        for command, process, output in zip(commands, processes, outputs)
    ]
    return stages, timed_out


async def run_pipeline(
    producer: StageCommand,
    consumer: StageCommand | None = None,
    *,
    source: Path | None = None,
    sink: Path | None = None,
    timeout: float | None = None,
) -> PipelineResult:
    """
    Run ``producer [| consumer]`` and wait for every stage to finish.

    Args:
        producer: First stage; reads ``source`` (or /dev/null)
        consumer: Optional second stage fed by the producer's stdout
        source: File connected to the producer's stdin
        sink: File truncated and connected to the last stage's stdout;
              when None the last stage's output is captured for diagnostics
        timeout: Seconds before all stages are killed

    Returns:
        PipelineResult with every stage's status

    Raises:
        StageFailure: If a stage binary cannot be executed (127 / 126)
        OSError: If ``source`` cannot be read or ``sink`` cannot be created
    """
    commands = [producer] if consumer is None else [producer, consumer]

    with ExitStack() as stack:
        stdin: Any = asyncio.subprocess.DEVNULL
        stdout: Any = asyncio.subprocess.PIPE
        if source is not None:
            stdin = stack.enter_context(open(source, "rb"))
        if sink is not None:
            stdout = stack.enter_context(open(sink, "wb"))

        processes = await _spawn_all(commands, stdin, stdout)
        stages, timed_out = await _join(commands, processes, timeout)

    result = PipelineResult(stages=stages, timed_out=timed_out)
    if sink is not None and sink.exists():
        result.bytes_written = sink.stat().st_size

    for stage in stages:
        logger.debug("stage_finished", stage=stage.name, returncode=stage.returncode)

    return result
