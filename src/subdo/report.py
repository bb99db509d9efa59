"""Result aggregation: streaming text or a single JSON report."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, BinaryIO, Protocol

from subdo.outcome import InvocationResult, lossy


class OutputMode(Enum):
    STANDARD = "standard"
    JSON = "json"
    JSON_PRETTY = "json-pretty"


class Reporter(Protocol):
    def add(self, result: InvocationResult) -> None: ...

    def finish(self) -> None: ...


class TextReporter:
    """Writes each result as soon as it arrives.

    Every result is written with a single ``write`` per channel so output from
    different entries never interleaves. Channels are flushed only by
    ``finish``.
    """

    def __init__(self, out: BinaryIO, err: BinaryIO) -> None:
        self.out = out
        self.err = err
        self._successes = 0
        self._open_line = False

    def add(self, result: InvocationResult) -> None:
        error = result.error
        if error is not None:
            self.err.write(_encode(f"error: {error}\n"))
            return

        chunk = result.stdout
        if self._successes:
            # Blank line between outputs, closing an unterminated last line first.
            chunk = (b"\n\n" if self._open_line else b"\n") + chunk
        if chunk:
            self._open_line = not chunk.endswith(b"\n")
        self._successes += 1
        self.out.write(chunk)

        if result.stderr:
            header = _encode(f"warning: process {result.process} for {result.entry} wrote to stderr:\n")
            trailer = b"" if result.stderr.endswith(b"\n") else b"\n"
            self.err.write(header + result.stderr + trailer)

    def finish(self) -> None:
        self.out.flush()
        self.err.flush()


@dataclass
class Report:
    """All outcomes of one run keyed by canonical entry path."""

    unknown: int = 0
    processed: dict[str, InvocationResult] = field(default_factory=dict)

    def insert(self, result: InvocationResult) -> None:
        if result.is_modified_entry:
            self.unknown += 1
            return
        # Two entries canonicalizing to one path: the later one wins.
        self.processed[result.key] = result

    def to_dict(self) -> dict[str, Any]:
        return {
            "unknown": self.unknown,
            "processed": {lossy(key): result.to_dict() for key, result in self.processed.items()},
        }

    def dumps(self, pretty: bool = False) -> str:
        if pretty:
            return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)
        return json.dumps(self.to_dict(), separators=(",", ":"), ensure_ascii=False)


class JsonReporter:
    """Collects every result, then writes the report in one go."""

    def __init__(self, out: BinaryIO, pretty: bool = False) -> None:
        self.out = out
        self.pretty = pretty
        self.report = Report()

    def add(self, result: InvocationResult) -> None:
        self.report.insert(result)

    def finish(self) -> None:
        self.out.write((self.report.dumps(self.pretty) + "\n").encode())
        self.out.flush()


def _encode(text: str) -> bytes:
    # Paths from the OS may carry surrogate escapes; write their original bytes.
    return text.encode("utf-8", "surrogateescape")


def make_reporter(mode: OutputMode, out: BinaryIO, err: BinaryIO) -> Reporter:
    if mode == OutputMode.STANDARD:
        return TextReporter(out, err)
    return JsonReporter(out, pretty=mode == OutputMode.JSON_PRETTY)
