"""Runs the command inside one entry and classifies how it went."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from typing import Protocol, runtime_checkable

from subdo.durations import format_duration
from subdo.outcome import CommandSpec, Entry, ErrorKind, InvocationResult, ProcessError

logger = logging.getLogger(__name__)


@runtime_checkable
class CommandRunner(Protocol):
    """Anything that can run a command for an entry."""

    async def run(
        self, command: CommandSpec, entry: Entry, timeout: float | None = None
    ) -> InvocationResult: ...

    async def aclose(self) -> None: ...


class ProcessRunner:
    """Runs commands as local subprocesses, no shell involved.

    A process that outlives its timeout is sent SIGTERM to its whole process
    group, then SIGKILL once ``kill_grace`` seconds have passed. The timeout
    result is returned straight away; the kill happens in a background reaper
    that ``aclose`` waits for.
    """

    def __init__(self, kill_grace: float = 2.0) -> None:
        self.kill_grace = kill_grace
        self._reapers: set[asyncio.Task[None]] = set()

    async def run(
        self, command: CommandSpec, entry: Entry, timeout: float | None = None
    ) -> InvocationResult:
        result = InvocationResult(process=command.program, entry=entry.path, key=entry.canonical)

        try:
            proc = await asyncio.create_subprocess_exec(
                *command.argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=entry.path,
                start_new_session=True,
            )
        except OSError as e:
            logger.debug("Spawning %s in %s failed: %s", command.program, entry.path, e)
            result.error = ProcessError.from_os_error(ErrorKind.SPAWN, command.program, entry.path, e)
            return result

        logger.debug("Started %s (pid %d) in %s", command.program, proc.pid, entry.path)
        try:
            if timeout is None:
                stdout, stderr = await proc.communicate()
            else:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.debug("%s in %s timed out after %ss", command.program, entry.path, timeout)
            self._terminate(proc)
            result.error = ProcessError(
                kind=ErrorKind.TIMEOUT,
                process=command.program,
                entry=entry.path,
                duration=format_duration(timeout),
            )
            return result
        except OSError as e:
            result.error = ProcessError.from_os_error(ErrorKind.OUTPUT, command.program, entry.path, e)
            return result

        result.stdout = stdout
        result.stderr = stderr
        result.exit_code = proc.returncode
        logger.debug("%s in %s exited with %s", command.program, entry.path, proc.returncode)
        return result

    def _terminate(self, proc: asyncio.subprocess.Process) -> None:
        _signal_group(proc, signal.SIGTERM)
        task = asyncio.create_task(self._reap(proc))
        self._reapers.add(task)
        task.add_done_callback(self._reapers.discard)

    async def _reap(self, proc: asyncio.subprocess.Process) -> None:
        try:
            await asyncio.wait_for(proc.communicate(), timeout=self.kill_grace)
        except asyncio.TimeoutError:
            logger.debug("pid %d ignored SIGTERM, killing", proc.pid)
            _signal_group(proc, signal.SIGKILL)
            await proc.wait()

    async def aclose(self) -> None:
        """Wait for every timed-out process to be reaped."""
        if not self._reapers:
            return
        outcomes = await asyncio.gather(*self._reapers, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                logger.warning("Reaping a timed-out process failed: %s", outcome)


def _signal_group(proc: asyncio.subprocess.Process, sig: int) -> None:
    # start_new_session makes the child a group leader, so pgid == pid.
    try:
        os.killpg(proc.pid, sig)
    except (ProcessLookupError, PermissionError):
        pass
