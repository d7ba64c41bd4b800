"""Per-line parsing of thread blocks.

Each handler takes the state selected by the classifier and the raw line and
extends the thread currently being assembled.
"""

from __future__ import annotations

import re
from typing import Any

from jstack_report.fsm import ParserState
from jstack_report.models import DashEvent, DashKind, StackFrame, Thread, WaitKind, to_int

THREAD_NAME_PATTERN: re.Pattern[str] = re.compile(r'"([^"]+)"')
AFTER_NAME_PATTERN: re.Pattern[str] = re.compile(r'"[^"]+"(.*)')
THREAD_ID_PATTERN: re.Pattern[str] = re.compile(r'"[^"]+".* #([0-9]+) ')
CURRENTLY_PATTERN: re.Pattern[str] = re.compile(r".*nid=[^ ]+ ([^\[]+)")

# Object ids are always hex, "<no object reference available>" yields no id
DASH_PATTERN: re.Pattern[str] = re.compile(
    r"<(0x[0-9a-fA-F]+)>(?: \(a ([^ )]+))?(?: for ([^ )]+))?"
)

STATE_LABEL_WIDTH = len("   java.lang.Thread.State: ")

DASH_TYPES: dict[ParserState, tuple[DashKind, WaitKind | None]] = {
    ParserState.LOCKED: ("locked", None),
    ParserState.ELIMINATED: ("eliminated", None),
    # TIMED_WAITING (parking), "- parking to wait for  <0x...>"
    ParserState.WAITING_CONCURRENT: ("waiting_concurrent", "concurrent"),
    # BLOCKED (on object monitor), "- waiting to lock <0x...>"
    ParserState.WAITING_SYNCHRONIZED: ("waiting_synchronized", "synchronized"),
    # re-entering a synchronized block after Object.wait() returned
    ParserState.WAITING_RE_LOCK: ("waiting_re_lock", "re_lock"),
    # inside Object.wait(), "- waiting on <0x...>"
    ParserState.WAITING_NOTIFY: ("waiting_notify", "notify"),
}

_property_patterns: dict[str, re.Pattern[str]] = {}


def first_line_prop(line: str, name: str) -> str | None:
    """Extract a ``name=value`` token from a block header, e.g. ``prio=5``."""
    pattern = _property_patterns.get(name)
    if pattern is None:
        pattern = re.compile(rf" {re.escape(name)}=([^ ]+)(?: |$)")
        _property_patterns[name] = pattern
    match = pattern.search(line)
    return match.group(1) if match else None


def thread_name(line: str) -> str:
    match = THREAD_NAME_PATTERN.search(line)
    return match.group(1) if match else ""


def is_daemon(line: str) -> bool:
    """True when ``" daemon "`` appears after the quoted thread name."""
    match = AFTER_NAME_PATTERN.search(line)
    return match is not None and " daemon " in match.group(1)


def thread_id(line: str) -> int | None:
    """The ``#N`` thread number, absent on older JVMs."""
    match = THREAD_ID_PATTERN.search(line)
    return to_int(match.group(1)) if match else None


def currently(line: str) -> str | None:
    """Status phrase between ``nid=`` and the bracketed address, e.g. ``in Object.wait()``."""
    match = CURRENTLY_PATTERN.search(line)
    if not match:
        return None
    return match.group(1).strip() or None


def parse_block_first_line(line: str) -> Thread:
    """Parse a thread header.

    Example: ``"RMI TCP Connection(idle)" daemon prio=10 tid=0x0000000050977800
    nid=0x34d waiting on condition [0x00002b7b25bab000]``
    """
    fields: dict[str, Any] = {
        "name": thread_name(line),
        "id": thread_id(line),
        "daemon": is_daemon(line),
        "priority": to_int(first_line_prop(line, "prio")),
        "os_priority": to_int(first_line_prop(line, "os_prio")),
        "cpu": first_line_prop(line, "cpu"),
        "elapsed": first_line_prop(line, "elapsed"),
        "tid": first_line_prop(line, "tid"),
        "nid": first_line_prop(line, "nid"),
        "currently": currently(line),
    }
    present = {key: value for key, value in fields.items() if value is not None}
    return Thread(**present, lines=[line])


def parse_block_second_line(thread: Thread, line: str) -> None:
    """Record the thread state from ``   java.lang.Thread.State: WAITING (on object monitor)``."""
    thread.thread_state = line[STATE_LABEL_WIDTH:] or None


def parse_dash_line(state: ParserState, line: str) -> DashEvent:
    """Parse one of the ``\\t- xxx`` lines of a stack trace."""
    kind, wait_kind = DASH_TYPES[state]
    match = DASH_PATTERN.search(line)
    if match is None:
        return DashEvent(kind=kind, wait_kind=wait_kind, line=line)
    object_id, object_class, class_for = match.groups()
    return DashEvent(
        kind=kind,
        wait_kind=wait_kind,
        object_id=object_id,
        object_class=object_class,
        class_for=class_for,
        line=line,
    )


def parse_block_line(thread: Thread, state: ParserState, line: str) -> None:
    """Apply a non-header block line to ``thread`` and keep the raw text."""
    if state is ParserState.BLOCK_SECOND:
        parse_block_second_line(thread, line)
    elif state is ParserState.TRACE:
        thread.trace.append(StackFrame(line=line))
    elif state in DASH_TYPES:
        thread.trace.append(parse_dash_line(state, line))
    # owned lock, no compile task and block end lines carry nothing we model

    thread.lines.append(line)
