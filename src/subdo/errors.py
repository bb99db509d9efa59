"""Fatal errors that abort a run before any command is dispatched."""

from __future__ import annotations


class SubdoError(Exception):
    """Base error for all fatal startup failures."""

    def __init__(self, message: str, *, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause


class CommandError(SubdoError):
    def __init__(self) -> None:
        super().__init__("vacant specified command")


class CurrentDirectoryError(SubdoError):
    def __init__(self, cause: OSError):
        super().__init__(f"current directory is unavailable as: {cause}", cause=cause)


class ParentDirectoryError(SubdoError):
    def __init__(self, path: str, cause: OSError):
        super().__init__(f"subdirectories are unavailable as: {cause}", cause=cause)
        self.path = path


class IgnoredDirectoryError(SubdoError):
    def __init__(self, path: str, cause: OSError):
        super().__init__(
            f"an ignored directory ({path}) is invalid as: {cause}", cause=cause
        )
        self.path = path
