"""Apply a command to every subdirectory of a directory."""

__version__ = "0.1.0"

from subdo.durations import format_duration, parse_duration
from subdo.errors import (
    CommandError,
    CurrentDirectoryError,
    IgnoredDirectoryError,
    ParentDirectoryError,
    SubdoError,
)
from subdo.outcome import CommandSpec, Entry, ErrorKind, InvocationResult, ProcessError
from subdo.pipeline import Pipeline, RunConfig, apply
from subdo.report import JsonReporter, OutputMode, Report, TextReporter
from subdo.runner import CommandRunner, ProcessRunner

__all__ = [
    "CommandError",
    "CommandRunner",
    "CommandSpec",
    "CurrentDirectoryError",
    "Entry",
    "ErrorKind",
    "IgnoredDirectoryError",
    "InvocationResult",
    "JsonReporter",
    "OutputMode",
    "ParentDirectoryError",
    "Pipeline",
    "ProcessError",
    "ProcessRunner",
    "Report",
    "RunConfig",
    "SubdoError",
    "TextReporter",
    "apply",
    "format_duration",
    "parse_duration",
]
