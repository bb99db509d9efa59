"""Parent directory resolution, child enumeration and the ignore filter."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from subdo.errors import CurrentDirectoryError, IgnoredDirectoryError, ParentDirectoryError
from subdo.outcome import Entry

logger = logging.getLogger(__name__)


class ReadAnomaly:
    """Placeholder for a directory entry the OS failed to deliver."""

    def __init__(self, error: OSError) -> None:
        self.error = error

    def __repr__(self) -> str:
        return f"ReadAnomaly({self.error!r})"


def resolve_parent(path: str | os.PathLike[str] | None = None) -> str:
    """Return the absolute parent directory, defaulting to the cwd."""
    try:
        if path is not None:
            # abspath consults the cwd for relative paths.
            return os.path.abspath(path)
        return os.getcwd()
    except OSError as e:
        raise CurrentDirectoryError(e) from e


def canonicalize(path: str) -> str:
    """Absolute, symlink-free path; raises OSError if it does not exist."""
    return str(Path(path).resolve(strict=True))


async def resolve_ignored(raw_paths: Iterable[str | os.PathLike[str]], parent: str) -> frozenset[str]:
    """Canonicalize every ignore path, relative ones against *parent*.

    All paths are resolved concurrently; the first failure aborts the run.
    """

    async def resolve_one(raw: str | os.PathLike[str]) -> str:
        path = os.path.join(parent, raw)  # no-op for absolute paths
        try:
            return await asyncio.to_thread(canonicalize, path)
        except OSError as e:
            raise IgnoredDirectoryError(path, e) from e

    resolved = await asyncio.gather(*(resolve_one(raw) for raw in raw_paths))
    logger.debug("Ignoring %d path(s): %s", len(resolved), sorted(resolved))
    return frozenset(resolved)


@contextmanager
def open_entries(parent: str) -> Iterator[Iterator[str | ReadAnomaly]]:
    """Open *parent* for a lazy listing of its immediate children.

    Failing to open the directory is fatal. A failure while reading is yielded
    once as a ReadAnomaly and ends the listing.
    """
    try:
        scanner = os.scandir(parent)
    except OSError as e:
        raise ParentDirectoryError(parent, e) from e

    def entries() -> Iterator[str | ReadAnomaly]:
        while True:
            try:
                entry = next(scanner)
            except StopIteration:
                return
            except OSError as e:
                logger.debug("Reading %s failed: %s", parent, e)
                yield ReadAnomaly(e)
                return
            yield entry.path

    with scanner:
        yield entries()


async def filter_entry(raw: str | ReadAnomaly, ignored: frozenset[str]) -> Entry | ReadAnomaly | None:
    """Decide whether a raw child gets dispatched.

    Returns an Entry to dispatch, None to skip silently, or a ReadAnomaly when
    the child vanished or could not be canonicalized.
    """
    if isinstance(raw, ReadAnomaly):
        return raw
    try:
        canonical = await asyncio.to_thread(canonicalize, raw)
    except OSError as e:
        logger.debug("Entry %s changed while listing: %s", raw, e)
        return ReadAnomaly(e)

    if not await asyncio.to_thread(os.path.isdir, raw):
        return None
    if canonical in ignored:
        logger.debug("Skipping ignored directory %s", raw)
        return None
    return Entry(path=raw, canonical=canonical)
