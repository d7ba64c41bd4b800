#!/usr/bin/env python3
"""jstack-report - analyze JVM thread dumps produced by jstack.

- Parses jstack output with a line based state machine
- Derives held locks and awaited monitors for every thread
- Renders the transitive lock graph: who is blocked behind whom
- Reports request threads by age, busy clients and URLs, long traces
- Prints the raw stack of selected threads
"""

from __future__ import annotations

import cProfile
import logging
import pstats
import sys
from io import StringIO
from pathlib import Path
from typing import Annotated

import typer
from rich.logging import RichHandler
from rich.text import Text

from jstack_report import __version__
from jstack_report.config import RenderOptions, ReportSettings
from jstack_report.dump import LineSource, load_dump, parse_jstack_lines, read_lines
from jstack_report.report import make_console, render_report

logger = logging.getLogger(__name__)

console = make_console()

# ============================================================
# TYPER CLI INTERFACE
# ============================================================

app = typer.Typer(
    name="jstack-report",
    help="Analyze jstack thread dumps: lock chains, request threads and long traces",
    add_completion=False,
    rich_markup_mode="rich",
)

DumpFileArgument = Annotated[
    Path | None,
    typer.Argument(
        help="Thread dump file as produced by jstack (reads standard input when omitted)",
        exists=True,
        file_okay=True,
        dir_okay=False,
        readable=True,
    ),
]


def configure_logging(verbose: bool) -> None:
    """Send library logging through rich on stderr; debug level with --verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=make_console(stderr=True), show_path=False)],
        force=True,
    )


def resolve_source(dump_file: Path | None) -> LineSource | None:
    """The dump file if given, otherwise standard input when something is piped in."""
    if dump_file is not None:
        return dump_file
    if sys.stdin is None or sys.stdin.isatty():
        return None
    return sys.stdin


@app.command()
def report(
    dump_file: DumpFileArgument = None,
    no_color: Annotated[
        bool,
        typer.Option("--no-color", "-n", help="Disable ansi coloring of output"),
    ] = False,
    trace_limit: Annotated[
        int,
        typer.Option(
            "--trace-limit",
            help="Call out threads with more trace lines than this (default: 250)",
            min=0,
        ),
    ] = 250,
    top: Annotated[
        int,
        typer.Option(
            "--top",
            help="Number of threads listed in the oldest/youngest/longest sections (default: 10)",
            min=0,
        ),
    ] = 10,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with detailed parsing information",
        ),
    ] = False,
    profile: Annotated[
        bool,
        typer.Option(
            "--profile",
            help="Enable performance profiling and display timing statistics",
        ),
    ] = False,
) -> None:
    """Print a thread dump report.

    Usage: [bold]jstack-report report dump.txt[/bold] or [bold]jstack <pid> | jstack-report report[/bold]
    """
    configure_logging(verbose)
    options = RenderOptions(color=not no_color)
    out = make_console(options)

    source = resolve_source(dump_file)
    if source is None:
        out.print("[info]no thread dump provided - doing nothing! (--help for usage)[/info]")
        return

    profiler = None
    if profile:
        profiler = cProfile.Profile()
        profiler.enable()

    try:
        settings = ReportSettings(
            trace_report_limit=trace_limit,
            oldest_threads=top,
            youngest_threads=top,
            longest_traces=top,
            top_urls=top,
        )
        logger.debug("Reading thread dump from %s", dump_file or "standard input")
        dump = load_dump(source, settings)

        if verbose:
            out.print(f"[info]Parsed {len(dump.threads)} threads[/info]")

        if not dump.threads:
            out.print("[warning]No threads found - skipping report[/warning]")
            return

        render_report(dump, out, settings, options)

        if profiler:
            profiler.disable()
            out.print("\n[bold cyan] Performance Profile (Top 20 Functions) [/bold cyan]\n")
            stats_stream = StringIO()
            stats = pstats.Stats(profiler, stream=stats_stream)
            stats.strip_dirs()
            stats.sort_stats("cumulative")
            stats.print_stats(20)
            out.print(stats_stream.getvalue(), markup=False)

    except ValueError as e:
        out.print(Text(f"ERROR: {e}", style="critical"), soft_wrap=True)
        sys.exit(1)
    except Exception as e:
        out.print(Text(f"ERROR: {e}", style="critical"), soft_wrap=True)
        if verbose:
            out.print_exception()
        sys.exit(1)
    finally:
        if profiler:
            profiler.disable()


@app.command()
def stack(
    tids: Annotated[
        str,
        typer.Argument(
            help="Comma separated tids, the 0x00002b7ae4090000 part of tid=0x00002b7ae4090000"
        ),
    ],
    dump_file: DumpFileArgument = None,
) -> None:
    """Print the raw stack trace of the threads with the given tids.

    Typically run as [bold]watch -n 1 "jstack <pid> | jstack-report stack <tid>"[/bold]
    """
    source = resolve_source(dump_file)
    if source is None:
        console.print("[info]no thread dump provided - doing nothing! (--help for usage)[/info]")
        return

    wanted = {tid.strip() for tid in tids.split(",") if tid.strip()}
    try:
        dump = parse_jstack_lines(read_lines(source))
    except ValueError as e:
        console.print(Text(f"ERROR: {e}", style="critical"), soft_wrap=True)
        sys.exit(1)

    hits = [thread for thread in dump.threads if thread.tid in wanted]
    if not hits:
        console.print(f"[warning]No threads found with tid {', '.join(sorted(wanted))}[/warning]")
        sys.exit(1)

    for thread in hits:
        for line in thread.lines:
            typer.echo(line)


@app.command()
def version() -> None:
    """Display version."""
    console.print(f"jstack-report {__version__}")


if __name__ == "__main__":
    app()
