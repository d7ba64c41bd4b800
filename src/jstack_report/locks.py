"""Derive held locks and the awaited resource from a thread's trace."""

from __future__ import annotations

from collections.abc import Iterable

from jstack_report.models import DashEvent, LockRef, Thread, TraceEntry

BLOCKING_WAIT_KINDS: frozenset[str] = frozenset({"concurrent", "synchronized", "re_lock"})


def remove_waiting_on_lock(locks: list[LockRef], event: DashEvent) -> list[LockRef] | None:
    """Drop the monitor released by ``Object.wait()``; None when nothing is left."""
    remaining = [lock for lock in locks if lock.object_id != event.object_id]
    return remaining or None


def extract_locks_and_wait(
    trace: Iterable[TraceEntry],
) -> tuple[list[LockRef] | None, LockRef | None]:
    """Walk a trace oldest event first and accumulate ``(locked, waiting_on)``.

    jstack prints the newest frame first, so the trace is walked in reverse and
    the resulting lock list is in acquisition order, earliest first.
    """
    locks: list[LockRef] | None = None
    waiting_on: LockRef | None = None

    for entry in reversed(list(trace)):
        if not isinstance(entry, DashEvent):
            continue
        if entry.wait_kind == "notify":
            if locks:
                locks = remove_waiting_on_lock(locks, entry)
        elif entry.wait_kind in BLOCKING_WAIT_KINDS:
            if entry.object_id is not None:
                waiting_on = LockRef(
                    object_id=entry.object_id,
                    object_class=entry.object_class,
                    wait_kind=entry.wait_kind,
                )
        elif entry.kind == "locked" and entry.object_id is not None:
            locks = (locks or []) + [
                LockRef(object_id=entry.object_id, object_class=entry.object_class)
            ]

    return locks, waiting_on


def reconcile_locks(thread: Thread) -> Thread:
    """Set ``locked`` and ``waiting_on`` on ``thread`` from its trace.

    Only reads ``trace``, so running it again yields the same result.
    """
    thread.locked, thread.waiting_on = extract_locks_and_wait(thread.trace)
    return thread
