"""Per-entry outcomes of running a command."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def lossy(text: str) -> str:
    """Replace undecodable filename bytes (surrogate escapes) with U+FFFD."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "replace")


@dataclass(frozen=True)
class CommandSpec:
    program: str
    args: tuple[str, ...] = ()

    @property
    def argv(self) -> list[str]:
        return [self.program, *self.args]


@dataclass(frozen=True)
class Entry:
    """An immediate child directory that passed the ignore filter."""

    path: str
    canonical: str


class ErrorKind(Enum):
    MODIFIED_ENTRY = "ModifiedEntry"
    SPAWN = "Spawn"
    OUTPUT = "Output"
    TIMEOUT = "Timeout"


@dataclass
class ProcessError:
    kind: ErrorKind
    process: str = ""
    entry: str = ""
    code: int | None = None
    description: str = ""
    duration: str = ""

    @classmethod
    def modified_entry(cls, description: str = "") -> ProcessError:
        return cls(kind=ErrorKind.MODIFIED_ENTRY, description=description)

    @classmethod
    def from_os_error(
        cls, kind: ErrorKind, process: str, entry: str, error: OSError
    ) -> ProcessError:
        return cls(
            kind=kind,
            process=process,
            entry=entry,
            code=error.errno,
            description=error.strerror or str(error),
        )

    def __str__(self) -> str:
        if self.kind == ErrorKind.SPAWN:
            return f"process {self.process} for {self.entry} made unavailable as: {self._origin()}"
        if self.kind == ErrorKind.OUTPUT:
            return f"process {self.process} for {self.entry} has unavailable output as: {self._origin()}"
        if self.kind == ErrorKind.TIMEOUT:
            return f"process {self.process} for {self.entry} could not complete in {self.duration}"
        return "invalid directory entry from likely modification"

    def _origin(self) -> str:
        if self.code is None:
            return self.description
        return f"{self.description} (os error {self.code})"

    def to_dict(self) -> dict[str, Any]:
        if self.kind == ErrorKind.TIMEOUT:
            return {"type": self.kind.value, "process": lossy(self.process), "duration": self.duration}
        return {
            "type": self.kind.value,
            "process": lossy(self.process),
            "code": self.code,
            "description": self.description,
        }


@dataclass
class InvocationResult:
    """Outcome of one dispatched entry: captured output, or a classified error."""

    process: str = ""
    entry: str = ""
    key: str = ""
    stdout: bytes = b""
    stderr: bytes = b""
    exit_code: int | None = None
    error: ProcessError | None = field(default=None)

    @property
    def is_ok(self) -> bool:
        return self.error is None

    @property
    def is_modified_entry(self) -> bool:
        return self.error is not None and self.error.kind == ErrorKind.MODIFIED_ENTRY

    def to_dict(self) -> dict[str, Any]:
        if self.error is not None:
            return {"status": "Error", **self.error.to_dict()}
        return {
            "status": "Ok",
            "stdout": self.stdout.decode("utf-8", errors="replace"),
            "stderr": self.stderr.decode("utf-8", errors="replace"),
        }
