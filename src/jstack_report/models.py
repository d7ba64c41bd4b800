"""Data model for a parsed jstack thread dump.

A ``Dump`` is built once per input by the assembler in ``jstack_report.dump``.
Threads are enriched in place afterwards by the lock reconciler and the
request-thread decorator; nothing else mutates them.
"""

from __future__ import annotations

import re
from datetime import datetime
from typing import Literal, TypeAlias

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

# ============================================================
# TYPE ALIASES
# ============================================================

DashKind: TypeAlias = Literal[
    "locked",
    "waiting_concurrent",
    "waiting_notify",
    "waiting_synchronized",
    "waiting_re_lock",
    "eliminated",
]
WaitKind: TypeAlias = Literal["concurrent", "notify", "synchronized", "re_lock"]
HeldWaitKind: TypeAlias = Literal["concurrent", "synchronized", "re_lock"]

THREAD_STATES: tuple[str, ...] = (
    "NEW",
    "RUNNABLE",
    "BLOCKED",
    "WAITING",
    "TIMED_WAITING",
    "TERMINATED",
)

# Frame locations that carry no file:line information
SPECIAL_LOCATIONS: frozenset[str] = frozenset({"Native Method", "Unknown Source", "<generated>"})

FRAME_PATTERN: re.Pattern[str] = re.compile(r"\tat ([^(]+)[.]([^(]+)\(([^)]+)\)")


def to_int(text: str | None) -> int | None:
    """Parse an optional integer field, treating malformed values as absent."""
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        return None


# ============================================================
# LOCKS
# ============================================================


class LockRef(BaseModel):
    """A monitor or synchronizer identified by its dump-local object id."""

    model_config = ConfigDict(frozen=True)

    object_id: str
    object_class: str | None = None
    wait_kind: HeldWaitKind | None = None


# ============================================================
# TRACE ENTRIES
# ============================================================


class FrameDetails(BaseModel):
    """Parsed location of a single stack frame."""

    model_config = ConfigDict(frozen=True)

    class_name: str | None = None
    method: str | None = None
    file: str | None = None
    line_number: int | None = None


def parse_frame_line(line: str) -> FrameDetails:
    """Split a ``\\tat Class.method(File.java:123)`` line into its parts."""
    match = FRAME_PATTERN.search(line)
    if not match:
        return FrameDetails()

    class_name, method, location = match.groups()
    if location in SPECIAL_LOCATIONS:
        return FrameDetails(class_name=class_name, method=method, file=location)

    file_name, _, line_number = location.partition(":")
    return FrameDetails(
        class_name=class_name,
        method=method,
        file=file_name,
        line_number=to_int(line_number) if line_number else None,
    )


class StackFrame(BaseModel):
    """A ``\\tat ...`` trace line.

    The class/method/file split is computed on first call to ``details()`` and
    cached on the entry; most reports only ever count frames.
    """

    kind: Literal["frame"] = "frame"
    line: str

    _details: FrameDetails | None = PrivateAttr(default=None)

    def details(self) -> FrameDetails:
        if self._details is None:
            self._details = parse_frame_line(self.line)
        return self._details


class DashEvent(BaseModel):
    """A ``\\t- <verb> <0x...> (a Class)`` lock or wait annotation."""

    model_config = ConfigDict(frozen=True)

    kind: DashKind
    wait_kind: WaitKind | None = None
    object_id: str | None = None
    object_class: str | None = None
    class_for: str | None = None
    line: str


TraceEntry: TypeAlias = StackFrame | DashEvent


# ============================================================
# THREADS AND DUMPS
# ============================================================


class RequestInfo(BaseModel):
    """Correlation data carried in ``ajp|HHmmss.SSS|cid=..|rid=..|url`` thread names."""

    time: str
    date: datetime | None = None
    cid: str | None = None
    rid: str | None = None
    oip: str | None = None
    url: str | None = None
    age_seconds: int | None = None
    display_age: str | None = None


class Thread(BaseModel):
    """One thread block of the dump."""

    name: str
    id: int | None = None
    daemon: bool = False
    priority: int | None = None
    os_priority: int | None = None
    cpu: str | None = None
    elapsed: str | None = None
    tid: str | None = None
    nid: str | None = None
    currently: str | None = None
    thread_state: str | None = None

    trace: list[TraceEntry] = Field(default_factory=list)
    lines: list[str] = Field(default_factory=list)

    # Set by the lock reconciler; None means "not present", never an empty list
    locked: list[LockRef] | None = None
    waiting_on: LockRef | None = None

    request: RequestInfo | None = None

    @property
    def frames(self) -> list[StackFrame]:
        return [entry for entry in self.trace if isinstance(entry, StackFrame)]

    @property
    def state(self) -> str | None:
        """The bare ``java.lang.Thread.State`` value, e.g. ``BLOCKED``."""
        if not self.thread_state:
            return None
        head = self.thread_state.split(" ", 1)[0]
        return head if head in THREAD_STATES else None

    def locked_class(self, object_id: str) -> str | None:
        """Class of a lock this thread holds, looked up by object id."""
        for lock in self.locked or []:
            if lock.object_id == object_id:
                return lock.object_class
        return None


class Dump(BaseModel):
    """The full parsed representation of one jstack snapshot."""

    date: datetime | None = None
    prelude: list[str] = Field(default_factory=list)
    threads: list[Thread] = Field(default_factory=list)
    epilogue: list[str] = Field(default_factory=list)
