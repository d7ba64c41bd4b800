"""Box-drawing rendering of the transitive lock graph.

Lines are produced as rich ``Text`` so the caller decides how to print them;
styles are only attached when ``RenderOptions.color`` is set.
"""

from __future__ import annotations

from collections.abc import Callable

from rich.text import Text

from jstack_report.config import RenderOptions, ReportSettings
from jstack_report.graph import (
    LockForest,
    LockKey,
    blocked_count,
    threads_by_tid,
    transitive_lock_graph,
)
from jstack_report.models import Dump, Thread
from jstack_report.traits import thread_extra_info

GRAPH_STYLE = "magenta"
NORMAL_STYLE = "green"
BRIGHT_STYLE = "bright_cyan"
EXTRA_STYLE = "bright_black"

I_SHORT = "│ "
I_BRANCH = "│   "
T_BRANCH = "├── "
L_BRANCH = "└── "
SPACER = "    "

LabelFn = Callable[[LockKey, LockForest], list[Text]]


def styled(text: str, style: str, options: RenderOptions) -> Text:
    return Text(text, style=style if options.color else "")


def render_tree(
    key: LockKey, children: LockForest, label_fn: LabelFn, options: RenderOptions
) -> list[Text]:
    """Render a node and its subtree, children in their stored order."""
    label = label_fn(key, children)
    pre = styled(I_SHORT, GRAPH_STYLE, options) if children else Text()
    lines = [label[0]] + [Text.assemble(pre, line) for line in label[1:]]

    for index, (child_key, grandchildren) in enumerate(children.items()):
        subtree = render_tree(child_key, grandchildren, label_fn, options)
        last = index == len(children) - 1
        prefix_first = styled(L_BRANCH if last else T_BRANCH, GRAPH_STYLE, options)
        prefix_rest = styled(SPACER if last else I_BRANCH, GRAPH_STYLE, options)
        lines.append(Text.assemble(prefix_first, subtree[0]))
        lines.extend(Text.assemble(prefix_rest, line) for line in subtree[1:])
    return lines


def short_name(fqcn: str | None) -> str:
    """``java.util.concurrent.locks.ReentrantLock$NonfairSync`` -> ``ReentrantLock$NonfairSync``."""
    if not fqcn:
        return ""
    return fqcn.rsplit(".", 1)[-1]


def thread_display_age(thread: Thread) -> str | None:
    if thread.request and thread.request.display_age:
        return f"age {thread.request.display_age}"
    return None


def render_graph_node(
    threads: dict[str, Thread],
    key: LockKey,
    children: LockForest,
    settings: ReportSettings,
    options: RenderOptions,
) -> list[Text]:
    """Label lines for one node: the thread, then the lock it holds when it blocks others."""
    thread = threads.get(key.tid)
    if thread is None:
        return [Text(key.tid)]

    first = Text(thread.name)
    if age := thread_display_age(thread):
        first.append(" ")
        first.append_text(styled(age, NORMAL_STYLE, options))
    if extra := thread_extra_info(thread, settings):
        first.append(" ")
        first.append_text(styled(extra, EXTRA_STYLE, options))

    if not children:
        return [first]

    lock_class = thread.locked_class(key.object_id) if key.object_id else None
    second = Text.assemble(
        styled(f"tid {thread.tid} locked ", NORMAL_STYLE, options),
        styled(short_name(lock_class), BRIGHT_STYLE, options),
        styled(f" {key.object_id} - ", NORMAL_STYLE, options),
        styled(f"blocks {blocked_count(children)} threads", BRIGHT_STYLE, options),
    )
    return [first, second]


def render_lock_graph(
    dump: Dump,
    graph: LockForest | None = None,
    settings: ReportSettings | None = None,
    options: RenderOptions | None = None,
) -> list[Text]:
    """Render every tree of the lock graph, one ``Text`` per output line."""
    settings = settings or ReportSettings()
    options = options or RenderOptions()
    if graph is None:
        graph = transitive_lock_graph(dump)
    threads = threads_by_tid(dump)

    def label(key: LockKey, children: LockForest) -> list[Text]:
        return render_graph_node(threads, key, children, settings, options)

    lines: list[Text] = []
    for key, children in graph.items():
        lines.extend(render_tree(key, children, label, options))
    return lines


def render_lock_graph_plain(dump: Dump, settings: ReportSettings | None = None) -> list[str]:
    """The lock graph as plain strings, without styling."""
    lines = render_lock_graph(dump, settings=settings, options=RenderOptions(color=False))
    return [line.plain for line in lines]
