"""
promwindow CLI.

Commands:
- promwindow render RECORDS -c module:Class: replay JSONL observation records
  through collectors and print Prometheus text
- promwindow definitions module:Class: show the metrics a collector defines
"""

from __future__ import annotations

import importlib
import json
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .collector import Collector
from .config import get_settings
from .exposition import render
from .hub import CollectorHub
from .logging import setup_logging

app = typer.Typer(
    help="Windowed Prometheus metric aggregation tools",
    no_args_is_help=True,
)

console = Console(stderr=True)


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"promwindow {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """Windowed Prometheus metric aggregation tools."""


def load_collector_class(path: str) -> type[Collector]:
    """Import a collector class given as 'package.module:ClassName'."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise typer.BadParameter(f"Expected 'module:Class', got '{path}'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise typer.BadParameter(f"Cannot import module '{module_name}': {e}") from e

    obj = getattr(module, attr, None)
    if not (isinstance(obj, type) and issubclass(obj, Collector)):
        raise typer.BadParameter(f"'{path}' is not a Collector subclass")
    return obj


def read_records(source: str) -> Iterator[dict[str, Any]]:
    """Yield JSON objects from a JSONL file, or stdin when source is '-'."""
    if source == "-":
        lines: Any = sys.stdin
    else:
        lines = Path(source).read_text(encoding="utf-8").splitlines()

    for lineno, line in enumerate(lines, start=1):
        line = line.strip()
        if not line:
            continue
        try:
            record = json.loads(line)
        except json.JSONDecodeError as e:
            raise ValueError(f"line {lineno}: invalid JSON ({e.msg})") from e
        if not isinstance(record, dict):
            raise ValueError(f"line {lineno}: expected a JSON object")
        yield record


@app.command(name="render")
def render_command(
    records: str = typer.Argument(
        ...,
        help="JSONL file of observation records, '-' for stdin",
    ),
    collectors: list[str] = typer.Option(
        ...,
        "--collector",
        "-c",
        help="Collector class as 'module:Class' (repeatable)",
    ),
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        help="Log level (default: PROMWINDOW_LOG_LEVEL or INFO)",
    ),
) -> None:
    """Replay observation records and print Prometheus exposition text."""
    setup_logging(log_level.upper() if log_level else get_settings().log_level)

    hub = CollectorHub()
    for path in collectors:
        hub.register(load_collector_class(path)())

    try:
        accepted = sum(1 for record in read_records(records) if hub.process(record))
    except (OSError, ValueError) as e:
        console.print(f"[red]Failed to read records: {e}[/red]")
        raise typer.Exit(1)

    typer.echo(render(hub), nl=False)
    console.print(f"[green]Rendered {accepted} records[/green]")


@app.command(name="definitions")
def definitions_command(
    collector: str = typer.Argument(..., help="Collector class as 'module:Class'"),
) -> None:
    """Show the metric definitions of a collector class."""
    cls = load_collector_class(collector)

    table = Table(title=f"{cls.__name__} (type: {cls.collector_type})")
    table.add_column("Series")
    table.add_column("Kind")
    table.add_column("Options")
    table.add_column("Description")

    for definition in cls.definitions():
        options = ""
        if definition.buckets is not None:
            options = f"buckets={list(definition.buckets)}"
        elif definition.quantiles is not None:
            options = f"quantiles={list(definition.quantiles)}"
        table.add_row(definition.metric_name, str(definition.kind), options, definition.description)

    Console().print(table)
    console.print(f"max age: {cls.metric_max_age}")


def main() -> None:
    app()
