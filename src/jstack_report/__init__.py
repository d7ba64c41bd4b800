"""Parse jstack thread dumps and compute transitive lock-wait graphs."""

from jstack_report.config import RenderOptions, ReportSettings
from jstack_report.dump import build_dump, dump_from_text, load_dump, parse_jstack_lines
from jstack_report.fsm import ParserState, ParseError, classify
from jstack_report.graph import LockKey, blocked_count, transitive_lock_graph
from jstack_report.locks import reconcile_locks
from jstack_report.models import DashEvent, Dump, LockRef, StackFrame, Thread
from jstack_report.render import render_lock_graph, render_lock_graph_plain

__version__ = "0.1.0"

__all__ = [
    "DashEvent",
    "Dump",
    "LockKey",
    "LockRef",
    "ParseError",
    "ParserState",
    "RenderOptions",
    "ReportSettings",
    "StackFrame",
    "Thread",
    "blocked_count",
    "build_dump",
    "classify",
    "dump_from_text",
    "load_dump",
    "parse_jstack_lines",
    "reconcile_locks",
    "render_lock_graph",
    "render_lock_graph_plain",
    "transitive_lock_graph",
]
