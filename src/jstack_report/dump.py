"""Assemble a ``Dump`` from jstack output.

``load_dump`` is the main entry point: it reads lines from a path, an open
text stream or any iterable of strings, runs the classifier and block parser
over them, then reconciles locks and decorates request threads.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Iterator
from datetime import datetime
from pathlib import Path
from typing import TextIO

from jstack_report.blocks import parse_block_first_line, parse_block_line
from jstack_report.config import ReportSettings
from jstack_report.fsm import ParserState, classify
from jstack_report.locks import reconcile_locks
from jstack_report.models import Dump
from jstack_report.request_threads import decorate_request_threads

logger = logging.getLogger(__name__)

DUMP_DATE_PATTERN: re.Pattern[str] = re.compile(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}")
DUMP_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

LineSource = str | Path | TextIO | Iterable[str]


def parse_dump_date(line: str) -> datetime | None:
    """The dump timestamp jstack prints as its very first line, if present."""
    if not DUMP_DATE_PATTERN.fullmatch(line):
        return None
    try:
        return datetime.strptime(line, DUMP_DATE_FORMAT)
    except ValueError:
        return None


def apply_line(dump: Dump, state: ParserState, line: str) -> None:
    """Route a classified line to the dump buffers or the current thread."""
    if state is ParserState.PRELUDE:
        if not dump.prelude:
            dump.date = parse_dump_date(line)
        dump.prelude.append(line)
    elif state is ParserState.EPILOGUE:
        dump.epilogue.append(line)
    elif state is ParserState.BLOCK_START:
        dump.threads.append(parse_block_first_line(line))
    else:
        parse_block_line(dump.threads[-1], state, line)


def parse_jstack_lines(lines: Iterable[str]) -> Dump:
    """Run the line classifier over ``lines`` and build the raw dump structure.

    Raises:
        ParseError: a line has no transition from the current state.
    """
    dump = Dump()
    state = ParserState.START
    line_number = 0

    for line_number, raw_line in enumerate(lines, start=1):
        line = raw_line.rstrip("\r\n")
        state = classify(state, line, line_number)
        if state is ParserState.END:
            break
        apply_line(dump, state, line)

    logger.debug(
        "Parsed %d lines into %d threads (final state %s)",
        line_number,
        len(dump.threads),
        state.value,
    )
    return dump


def read_lines(source: LineSource) -> Iterator[str]:
    """Yield lines from a path, a text stream or an iterable of strings."""
    if isinstance(source, (str, Path)):
        with Path(source).open(encoding="utf-8", errors="replace") as handle:
            yield from handle
    elif isinstance(source, Iterable):
        yield from source
    else:
        raise TypeError(f"unknown line source: {source!r}")


def build_dump(lines: Iterable[str], settings: ReportSettings | None = None) -> Dump:
    """Parse lines and run the per-thread enrichment passes."""
    dump = parse_jstack_lines(lines)
    for thread in dump.threads:
        reconcile_locks(thread)
    return decorate_request_threads(dump, settings)


def load_dump(source: LineSource, settings: ReportSettings | None = None) -> Dump:
    """Parse a jstack thread dump from a path, stream or line sequence."""
    return build_dump(read_lines(source), settings)


def dump_from_text(text: str, settings: ReportSettings | None = None) -> Dump:
    """Parse a thread dump held in memory as a single string."""
    return build_dump(text.splitlines(), settings)
