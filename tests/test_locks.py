from jstack_report.blocks import parse_dash_line
from jstack_report.fsm import ParserState
from jstack_report.locks import extract_locks_and_wait, reconcile_locks
from jstack_report.models import LockRef, StackFrame, Thread


def dash(state: ParserState, oid: str, cls: str = "java.lang.Object"):
    return parse_dash_line(state, f"\t- xxx <{oid}> (a {cls})")


def frame(text: str = "A.b(A.java:1)") -> StackFrame:
    return StackFrame(line=f"\tat {text}")


def test_locks_are_in_acquisition_order():
    # newest frame first, as jstack prints it
    trace = [
        frame(),
        dash(ParserState.LOCKED, "0x3"),
        frame(),
        dash(ParserState.LOCKED, "0x2"),
        frame(),
        dash(ParserState.LOCKED, "0x1"),
    ]
    locks, waiting_on = extract_locks_and_wait(trace)

    assert [lock.object_id for lock in locks] == ["0x1", "0x2", "0x3"]
    assert waiting_on is None


def test_blocked_thread_waits_on_most_recent_resource():
    trace = [
        frame(),
        dash(ParserState.WAITING_SYNCHRONIZED, "0x9", "com.shop.Transaction"),
        frame(),
        dash(ParserState.LOCKED, "0x1"),
    ]
    locks, waiting_on = extract_locks_and_wait(trace)

    assert locks == [LockRef(object_id="0x1", object_class="java.lang.Object")]
    assert waiting_on == LockRef(
        object_id="0x9", object_class="com.shop.Transaction", wait_kind="synchronized"
    )


def test_later_wait_replaces_earlier_one():
    trace = [
        dash(ParserState.WAITING_CONCURRENT, "0x2"),
        frame(),
        dash(ParserState.WAITING_RE_LOCK, "0x1"),
    ]
    _, waiting_on = extract_locks_and_wait(trace)
    assert waiting_on.object_id == "0x2"
    assert waiting_on.wait_kind == "concurrent"


def test_object_wait_releases_the_monitor():
    trace = [
        frame("java.lang.Object.wait(Native Method)"),
        dash(ParserState.WAITING_NOTIFY, "0x5"),
        frame(),
        dash(ParserState.LOCKED, "0x5"),
        frame(),
        dash(ParserState.LOCKED, "0x4"),
    ]
    locks, waiting_on = extract_locks_and_wait(trace)
    assert [lock.object_id for lock in locks] == ["0x4"]
    assert waiting_on is None


def test_releasing_the_only_lock_leaves_locked_absent():
    trace = [dash(ParserState.WAITING_NOTIFY, "0x5"), frame(), dash(ParserState.LOCKED, "0x5")]
    locks, _ = extract_locks_and_wait(trace)
    assert locks is None


def test_notify_without_object_reference_is_harmless():
    trace = [
        parse_dash_line(ParserState.WAITING_NOTIFY, "\t- waiting on <no object reference available>"),
        frame(),
        dash(ParserState.LOCKED, "0x5"),
    ]
    locks, waiting_on = extract_locks_and_wait(trace)
    assert [lock.object_id for lock in locks] == ["0x5"]
    assert waiting_on is None


def test_eliminated_locks_are_ignored():
    trace = [frame(), dash(ParserState.ELIMINATED, "0x7")]
    assert extract_locks_and_wait(trace) == (None, None)


def test_frames_only_thread_has_no_lock_fields():
    thread = reconcile_locks(Thread(name="worker", tid="0x1", trace=[frame(), frame()]))
    assert thread.locked is None
    assert thread.waiting_on is None


def test_reconcile_is_idempotent():
    thread = Thread(
        name="worker",
        tid="0x1",
        trace=[
            dash(ParserState.WAITING_SYNCHRONIZED, "0x9"),
            frame(),
            dash(ParserState.LOCKED, "0x1"),
        ],
    )
    reconcile_locks(thread)
    first = (thread.locked, thread.waiting_on)
    trace_before = list(thread.trace)

    reconcile_locks(thread)

    assert (thread.locked, thread.waiting_on) == first
    assert thread.trace == trace_before
