"""Predicates over stack traces used to annotate threads in reports.

These are the only callers that need parsed frame details; they force the lazy
frame parsing of ``StackFrame.details()`` for the threads they inspect.
"""

from __future__ import annotations

from jstack_report.config import ReportSettings
from jstack_report.models import Thread

TX_REAPER_RUN = ("com.arjuna.ats.internal.arjuna.coordinator.ReaperWorkerThread", "run")
SOCKET_READ = ("java.net.SocketInputStream", "socketRead0")
ORACLE_READ = ("oracle.jdbc.driver.T4CSocketInputStreamWrapper", "read")
VALID_CONNECTION = (
    "org.jboss.resource.adapter.jdbc.CheckValidConnectionSQL",
    "isValidConnection",
)


def trace_has(thread: Thread, class_name: str, method: str) -> bool:
    """True when any frame of the thread is ``class_name.method``."""
    for frame in thread.frames:
        details = frame.details()
        if details.class_name == class_name and details.method == method:
            return True
    return False


def is_tx_reaper(thread: Thread) -> bool:
    return trace_has(thread, *TX_REAPER_RUN)


def is_db_socket_read(thread: Thread) -> bool:
    """Thread is blocked in ``socketRead0`` on an Oracle JDBC connection."""
    return trace_has(thread, *SOCKET_READ) and trace_has(thread, *ORACLE_READ)


def is_db_socket_read_is_valid(thread: Thread) -> bool:
    """Database socket read caused by a connection validity check."""
    return is_db_socket_read(thread) and trace_has(thread, *VALID_CONNECTION)


def thread_extra_info(thread: Thread, settings: ReportSettings) -> str | None:
    if is_tx_reaper(thread):
        return "[jboss tx reaper thread]"
    if is_db_socket_read_is_valid(thread):
        return "[db socketRead0 isValid]"
    if is_db_socket_read(thread):
        return "[db socketRead0]"
    if len(thread.trace) > settings.trace_report_limit:
        return f"[{len(thread.trace)} line trace]"
    return None
