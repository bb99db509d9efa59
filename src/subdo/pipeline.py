"""Bounded concurrent dispatch of the command over a directory listing."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import AsyncIterator, Iterable
from dataclasses import dataclass, field

from subdo.outcome import CommandSpec, InvocationResult, ProcessError
from subdo.paths import ReadAnomaly, filter_entry
from subdo.report import OutputMode, Reporter
from subdo.runner import CommandRunner, ProcessRunner

logger = logging.getLogger(__name__)


def default_jobs() -> int:
    return os.cpu_count() or 1


@dataclass
class RunConfig:
    command: CommandSpec
    parent: str
    ignored: frozenset[str] = field(default_factory=frozenset)
    jobs: int = field(default_factory=default_jobs)
    timeout: float | None = None
    mode: OutputMode = OutputMode.STANDARD

    def __post_init__(self) -> None:
        if self.jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {self.jobs}")


class Pipeline:
    """Feeds directory entries through the ignore filter and the runner.

    ``jobs`` workers share one lazy listing, so no more than ``jobs`` entries
    (and therefore processes) are in flight at once. Results come out in
    completion order.
    """

    def __init__(self, config: RunConfig, runner: CommandRunner | None = None) -> None:
        self.config = config
        self.runner = runner or ProcessRunner()

    async def process_entry(self, raw: str | ReadAnomaly) -> InvocationResult | None:
        entry = await filter_entry(raw, self.config.ignored)
        if entry is None:
            return None
        if isinstance(entry, ReadAnomaly):
            return InvocationResult(error=ProcessError.modified_entry(str(entry.error)))
        logger.debug("Dispatching %s", entry.path)
        return await self.runner.run(self.config.command, entry, self.config.timeout)

    async def stream(self, entries: Iterable[str | ReadAnomaly]) -> AsyncIterator[InvocationResult]:
        queue: asyncio.Queue[InvocationResult | None] = asyncio.Queue()
        listing = iter(entries)
        # Reads run off the loop; one at a time since the listing is a generator.
        reading = asyncio.Lock()

        async def next_entry() -> str | ReadAnomaly | None:
            async with reading:
                return await asyncio.to_thread(next, listing, None)

        async def worker() -> None:
            while True:
                raw = await next_entry()
                if raw is None:
                    return
                result = await self.process_entry(raw)
                if result is not None:
                    queue.put_nowait(result)

        async def drive() -> None:
            try:
                await asyncio.gather(*(worker() for _ in range(self.config.jobs)))
            finally:
                queue.put_nowait(None)

        driver = asyncio.create_task(drive())
        try:
            while True:
                result = await queue.get()
                if result is None:
                    break
                yield result
            await driver
        finally:
            if not driver.done():
                driver.cancel()
                await asyncio.gather(driver, return_exceptions=True)


async def apply(
    config: RunConfig,
    entries: Iterable[str | ReadAnomaly],
    reporter: Reporter,
    runner: CommandRunner | None = None,
) -> None:
    """Run the command over *entries* and hand every result to *reporter*."""
    pipeline = Pipeline(config, runner)
    try:
        async for result in pipeline.stream(entries):
            reporter.add(result)
    finally:
        try:
            await pipeline.runner.aclose()
        finally:
            reporter.finish()
