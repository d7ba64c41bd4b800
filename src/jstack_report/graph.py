"""Transitive lock graph.

Threads are joined on their ``tid``: a waiting thread points at the thread
holding the object it waits for, and those links are followed to the thread at
the root of the chain. The result is a forest of nested dicts keyed by
``LockKey(tid, object_id)`` where ``object_id`` is the lock the node holds that
its children wait for (``None`` for leaves).
"""

from __future__ import annotations

import logging
from typing import NamedTuple, TypeAlias

from jstack_report.models import Dump, Thread

logger = logging.getLogger(__name__)


class LockKey(NamedTuple):
    """A graph node: a thread, and the lock it holds that its children want."""

    tid: str
    object_id: str | None = None


LockForest: TypeAlias = dict[LockKey, "LockForest"]


def threads_by_tid(dump: Dump) -> dict[str, Thread]:
    return {thread.tid: thread for thread in dump.threads if thread.tid is not None}


def threads_by_name(dump: Dump) -> dict[str, Thread]:
    return {thread.name: thread for thread in dump.threads}


def lockers_by_oid(dump: Dump) -> dict[str, Thread]:
    """Map every locked object id to the thread holding it.

    A consistent dump has a single holder per object; should two threads claim
    the same id, the later one in the dump wins.
    """
    lockers: dict[str, Thread] = {}
    for thread in dump.threads:
        for lock in thread.locked or []:
            lockers[lock.object_id] = thread
    return lockers


def waiters_by_tid(dump: Dump) -> dict[str, LockKey]:
    """Map a waiting thread's tid to its holder's tid and the object waited for.

    Threads waiting on a lock no thread in the dump holds are left out.
    """
    lockers = lockers_by_oid(dump)
    waiters: dict[str, LockKey] = {}
    for thread in dump.threads:
        if thread.waiting_on is None or thread.tid is None:
            continue
        holder = lockers.get(thread.waiting_on.object_id)
        if holder is None or holder.tid is None:
            continue
        waiters[thread.tid] = LockKey(holder.tid, thread.waiting_on.object_id)
    return waiters


def waiters_by_oid(dump: Dump) -> dict[str, set[str]]:
    """Map an object id to the tids of every thread waiting for it."""
    waiters: dict[str, set[str]] = {}
    for thread in dump.threads:
        if thread.waiting_on is None or thread.tid is None:
            continue
        waiters.setdefault(thread.waiting_on.object_id, set()).add(thread.tid)
    return waiters


def transitive_path(waiters: dict[str, LockKey], tid: str) -> list[LockKey]:
    """Chain of holders above ``tid``, root first.

    For C waiting on B waiting on A the path of C is ``[A, B]``, each key naming
    the object its successor waits for. A tid seen twice ends the walk, so a
    deadlock cycle cannot loop forever.
    """
    path: list[LockKey] = []
    seen = {tid}
    locker = waiters.get(tid)
    while locker is not None and locker.tid not in seen:
        path.append(locker)
        seen.add(locker.tid)
        locker = waiters.get(locker.tid)
    path.reverse()
    return path


def _insert_path(forest: LockForest, path: list[LockKey]) -> LockForest:
    node = forest
    for key in path:
        node = node.setdefault(key, {})
    return node


def sort_forest(forest: LockForest, threads: dict[str, Thread]) -> LockForest:
    """Order siblings by thread name, then object id, at every level."""

    def sort_key(key: LockKey) -> tuple[str, str]:
        thread = threads.get(key.tid)
        return (thread.name if thread else key.tid, key.object_id or "")

    return {key: sort_forest(forest[key], threads) for key in sorted(forest, key=sort_key)}


def transitive_lock_graph(dump: Dump) -> LockForest:
    """Build the forest of threads transitively blocked behind each lock holder.

    Paths are merged longest first so deep chains fix the structure before the
    shorter chains they subsume are folded in; a thread already present under a
    parent is never added there a second time.
    """
    waiters = waiters_by_tid(dump)
    by_oid = waiters_by_oid(dump)

    paths = {
        tuple(path)
        for tid in sorted(waiters)
        if (path := transitive_path(waiters, tid))
    }
    ordered = sorted(paths, key=lambda path: (-len(path), path))

    forest: LockForest = {}
    for path in ordered:
        children = _insert_path(forest, list(path))
        for waiter_tid in sorted(by_oid.get(path[-1].object_id or "", ())):
            if waiter_tid == path[-1].tid or any(key.tid == waiter_tid for key in children):
                continue
            children[LockKey(waiter_tid)] = {}

    logger.debug("Built lock graph with %d roots from %d waiting threads", len(forest), len(waiters))
    return sort_forest(forest, threads_by_tid(dump))


def descendants(forest: LockForest) -> set[LockKey]:
    """Every distinct node anywhere below this level."""
    found: set[LockKey] = set()
    for key, children in forest.items():
        found.add(key)
        found |= descendants(children)
    return found


def blocked_count(children: LockForest) -> int:
    """Number of distinct nodes beneath a node, i.e. how many threads it blocks."""
    return len(descendants(children))
