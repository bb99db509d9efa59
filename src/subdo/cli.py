"""CLI entry point for subdo."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from subdo import __version__
from subdo.durations import parse_duration
from subdo.errors import CommandError, SubdoError
from subdo.outcome import CommandSpec
from subdo.paths import open_entries, resolve_ignored, resolve_parent
from subdo.pipeline import RunConfig, apply, default_jobs
from subdo.report import OutputMode, make_reporter

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class DurationType(click.ParamType):
    """Click parameter accepting '30s', '1m 30s', '500ms' and the like."""

    name = "duration"

    def convert(self, value, param, ctx):
        if isinstance(value, (int, float)):
            return float(value)
        try:
            return parse_duration(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationType()


def _split_ignore(ctx, param, value):
    """Each -i value may hold several space-separated paths, e.g. -i "a b"."""
    return tuple(path for item in value for path in item.split(" ") if path)


def _configure_logging(verbose: bool) -> None:
    logger = logging.getLogger("subdo")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


async def _run(
    command: CommandSpec,
    parent: str,
    ignore: tuple[str, ...],
    jobs: int,
    timeout: float | None,
    mode: OutputMode,
) -> None:
    with open_entries(parent) as entries:
        ignored = await resolve_ignored(ignore, parent)
        config = RunConfig(
            command=command,
            parent=parent,
            ignored=ignored,
            jobs=jobs,
            timeout=timeout,
            mode=mode,
        )
        reporter = make_reporter(
            config.mode,
            sys.stdout.buffer,
            sys.stderr.buffer,
        )
        await apply(config, entries, reporter)


@click.command(
    context_settings={"allow_interspersed_args": False, "auto_envvar_prefix": "SUBDO"}
)
@click.version_option(__version__, prog_name="subdo")
@click.option("--path", type=click.Path(path_type=str), default=None,
              help="Parent directory (default: current directory)")
@click.option("-i", "--ignore", multiple=True, type=click.Path(path_type=str), metavar="PATH",
              callback=_split_ignore,
              help="Child directories to skip, repeatable or space separated; "
                   "relative paths are taken from the parent")
@click.option("-j", "--jobs", type=click.IntRange(min=1), default=default_jobs,
              show_default="CPU count", help="Max number of concurrent processes")
@click.option("-t", "--timeout", type=DURATION, default=None,
              help="Max duration for any given process, e.g. 30s or 1m 30s")
@click.option("-m", "--mode", type=click.Choice([m.value for m in OutputMode]),
              default=OutputMode.STANDARD.value, show_default=True, help="Output format")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr")
@click.argument("command", nargs=-1, type=click.UNPROCESSED)
def main(path, ignore, jobs, timeout, mode, verbose, command):
    """Apply COMMAND to every directory within a directory.

    COMMAND runs once per immediate subdirectory, with that subdirectory as
    its working directory. Put -- before COMMAND if it starts with a dash.
    """
    _configure_logging(verbose)

    try:
        if not command:
            raise CommandError()
        spec = CommandSpec(program=command[0], args=tuple(command[1:]))
        parent = resolve_parent(path)
        asyncio.run(_run(spec, parent, ignore, jobs, timeout, OutputMode(mode)))
    except SubdoError as e:
        click.echo(str(e), err=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
