"""Console script for console_enhancer."""

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from console_enhancer.appenders import FileAppendError
from console_enhancer.config import EMITTING_LEVELS, EnhancerConfig
from console_enhancer.logger import install
from console_enhancer.styles import LEVEL_PROFILES


app = typer.Typer(name="console-enhancer", no_args_is_help=True)


def _sample_error() -> RuntimeError:
    try:
        raise RuntimeError("some error")
    except RuntimeError as exc:
        return exc


def plain_surface(console: Console) -> SimpleNamespace:
    """A bare console-like object whose functions just print their arguments."""

    def printer(*args: object) -> None:
        console.print(*args, markup=False, highlight=False, emoji=False)

    return SimpleNamespace(error=printer, warn=printer, info=printer, log=printer)


def write_logs(surface: SimpleNamespace, custom_methods: bool) -> None:
    """Log one line per level through *surface*.

    :param custom_methods: Also call ``debug`` and ``verbose``, which a plain
        surface does not have.
    """
    surface.error("Testing ERROR LEVEL without actual error")
    surface.error(_sample_error())
    surface.error("Testing ERROR LEVEL with an error", _sample_error())
    surface.warn("Testing WARN LEVEL")
    surface.info("Testing INFO LEVEL")
    surface.log("Testing LOG LEVEL")
    if custom_methods:
        surface.debug("Testing DEBUG (AKA LOG) LEVEL")
        surface.verbose("Testing TRACE LEVEL")


@app.command()
def demo(
    level: Annotated[
        str,
        typer.Argument(
            help="Threshold: ERROR, WARN, INFO, DEBUG, TRACE, VERBOSE or ALL.",
            envvar="CONSOLE_ENHANCER_LEVEL",
            metavar="LOG_LEVEL",
        ),
    ] = "ALL",
    file: Annotated[
        Path | None,
        typer.Option(
            "--file",
            "-f",
            help="Also append plain lines to this file.",
            envvar="CONSOLE_ENHANCER_FILEPATH",
            rich_help_panel="Output Options",
        ),
    ] = None,
    include_date: Annotated[
        bool,
        typer.Option(
            "--date/--no-date",
            "-d/-D",
            help="Prefix each line with a timestamp.",
            envvar="CONSOLE_ENHANCER_INCLUDE_DATE",
            rich_help_panel="Output Options",
        ),
    ] = False,
    path_replace: Annotated[
        str | None,
        typer.Option(
            "--path-replace",
            "-r",
            help="Text removed from the source file names shown in each line.",
            envvar="CONSOLE_ENHANCER_PATH_REPLACE",
            rich_help_panel="Output Options",
        ),
    ] = None,
) -> None:
    """Show the same log calls through a plain console and an enhanced one."""
    terminal = Console(stderr=True)
    surface = plain_surface(terminal)

    terminal.rule("Regular console")
    write_logs(surface, custom_methods=False)

    config = EnhancerConfig(
        level=level, include_date=include_date, path_replace=path_replace
    )
    if file is not None:
        config["file"] = True
        config["filepath"] = file
    enhancer = install(config, surface=surface, console=terminal)

    terminal.rule(f"Enhanced console with log level {enhancer.level.name}")
    write_logs(surface, custom_methods=True)

    try:
        enhancer.flush()
    except FileAppendError as exc:
        raise typer.Exit(code=1) from exc
    finally:
        enhancer.close()


@app.command()
def levels() -> None:
    """List the log levels and how each is styled."""
    table = Table(title="Log levels")
    table.add_column("Level")
    table.add_column("Value", justify="right")
    table.add_column("Style")
    for log_level in EMITTING_LEVELS:
        attributes = LEVEL_PROFILES[log_level].attributes
        table.add_row(
            Text(log_level.name, style=" ".join(map(str, attributes))),
            str(int(log_level)),
            ", ".join(map(str, attributes)),
        )
    Console().print(table)


if __name__ == "__main__":
    app()
