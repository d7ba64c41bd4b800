"""Rich output for a parsed dump.

Row builders return plain data so they can be tested without a console; the
``create_*``/``render_*`` functions turn that data into rich renderables.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from jstack_report.config import RenderOptions, ReportSettings
from jstack_report.graph import LockForest, descendants, transitive_lock_graph
from jstack_report.models import Dump, Thread
from jstack_report.render import render_lock_graph
from jstack_report.request_threads import request_threads_by_age
from jstack_report.traits import is_db_socket_read, is_db_socket_read_is_valid

JSTACK_REPORT_THEME = Theme(
    {
        "critical": "bold red",
        "warning": "bold yellow",
        "success": "bold green",
        "info": "cyan",
        "metric": "green",
        "label": "dim white",
        "header": "bold magenta",
        "section": "bold white",
    }
)


def make_console(options: RenderOptions | None = None, stderr: bool = False) -> Console:
    """Themed console; colour is disabled entirely when ``options.color`` is off."""
    options = options or RenderOptions()
    return Console(
        theme=JSTACK_REPORT_THEME,
        no_color=not options.color,
        highlight=False,
        stderr=stderr,
    )


# ============================================================
# ROW BUILDERS
# ============================================================


def display_date(dump: Dump) -> str:
    return dump.date.strftime("%Y-%m-%d %H:%M:%S") if dump.date else "unknown"


def build_statistics_rows(dump: Dump, settings: ReportSettings) -> list[tuple[str, str]]:
    threads = dump.threads
    lock_waits = sum(
        1
        for thread in threads
        if thread.waiting_on is not None and thread.waiting_on.wait_kind == "synchronized"
    )
    request_threads = sum(1 for thread in threads if thread.request is not None)
    long_traces = sum(1 for thread in threads if len(thread.trace) > settings.trace_report_limit)
    return [
        ("jstack dump date", display_date(dump)),
        ("total threads", str(len(threads))),
        ("threads waiting for locks", str(lock_waits)),
        ("request threads", str(request_threads)),
        (f"traces > {settings.trace_report_limit} lines", str(long_traces)),
    ]


def oldest_request_threads(dump: Dump, count: int) -> list[Thread]:
    return request_threads_by_age(dump)[:count]


def youngest_request_threads(dump: Dump, count: int) -> list[Thread]:
    threads = request_threads_by_age(dump)
    return list(reversed(threads[-count:])) if count else []


def build_age_rows(threads: list[Thread]) -> list[tuple[str, str]]:
    return [
        ((thread.request.display_age or "") if thread.request else "", thread.name)
        for thread in threads
    ]


def _groups_with_several(
    threads: list[Thread], key_fn: Callable[[Thread], str | None]
) -> list[tuple[str, list[Thread]]]:
    """Group threads by a key, keep groups of two or more, largest first."""
    groups: dict[str, list[Thread]] = defaultdict(list)
    for thread in threads:
        if key := key_fn(thread):
            groups[key].append(thread)
    several = [(key, members) for key, members in groups.items() if len(members) > 1]
    return sorted(several, key=lambda item: (-len(item[1]), item[0]))


def clients_with_most_requests(dump: Dump, count: int) -> list[tuple[str, list[Thread]]]:
    """Client ids with more than one in-flight request, each sorted oldest request first."""
    groups = _groups_with_several(
        dump.threads, lambda thread: thread.request.cid if thread.request else None
    )
    return [
        (cid, sorted(members, key=lambda t: -((t.request and t.request.age_seconds) or 0)))
        for cid, members in groups[:count]
    ]


def most_requested_urls(dump: Dump, count: int) -> list[tuple[str, int]]:
    groups = _groups_with_several(
        dump.threads, lambda thread: thread.request.url if thread.request else None
    )
    return [(url, len(members)) for url, members in groups[:count]]


def longest_traces(dump: Dump, count: int) -> list[Thread]:
    return sorted(dump.threads, key=lambda thread: -len(thread.trace))[:count]


def threads_in_db_socket_read(dump: Dump) -> list[Thread]:
    return sorted((t for t in dump.threads if is_db_socket_read(t)), key=lambda t: t.name)


# ============================================================
# RICH RENDERING
# ============================================================


def create_key_value_table(title: str, rows: list[tuple[str, str]]) -> Table:
    """Create a simple two-column key/value table."""
    table = Table(title=title, show_header=False, box=None, padding=(0, 2))
    table.add_column("Metric", style="label")
    table.add_column("Value", style="metric")
    for label, value in rows:
        table.add_row(label, value)
    return table


def create_thread_table(title: str, value_header: str, rows: list[tuple[str, str]]) -> Table:
    table = Table(title=title, box=None, padding=(0, 2), title_style="section")
    table.add_column(value_header, style="metric", justify="right", no_wrap=True)
    table.add_column("Thread", overflow="fold")
    for value, name in rows:
        table.add_row(value, Text(name))
    return table


def print_section_title(console: Console, title: str) -> None:
    console.print()
    console.print(Text(title, style="section"))
    console.print()


def print_lock_graph(
    console: Console,
    dump: Dump,
    settings: ReportSettings,
    options: RenderOptions,
    graph: LockForest | None = None,
) -> None:
    graph = transitive_lock_graph(dump) if graph is None else graph
    if not graph:
        console.print()
        console.print("No transitive lock chains detected", style="info")
        return

    print_section_title(console, f"TRANSITIVE LOCK GRAPH ({len(descendants(graph))} threads)")
    for line in render_lock_graph(dump, graph, settings, options):
        console.print(line, soft_wrap=True)


def print_clients(console: Console, dump: Dump, settings: ReportSettings) -> None:
    clients = clients_with_most_requests(dump, settings.top_clients)
    if not clients:
        return
    print_section_title(console, f"TOP {settings.top_clients} CLIENT IDS WITH MOST REQUESTS")
    for cid, threads in clients:
        console.print(Text(f"  cid {cid} - {len(threads)} threads", style="metric"))
        for thread in threads:
            age = thread.request.display_age if thread.request else None
            line = Text("      ")
            line.append(f"{'age ' + (age or ''):<10}", style="info")
            line.append(" ")
            line.append(thread.name)
            console.print(line, soft_wrap=True)


def print_db_socket_reads(console: Console, dump: Dump) -> None:
    threads = threads_in_db_socket_read(dump)
    print_section_title(console, f"THREADS WAITING ON DB IN SocketRead0 ({len(threads)} threads)")
    if not threads:
        console.print("   No threads in db socketRead0 detected!")
        return
    for thread in threads:
        age = thread.request.display_age if thread.request and thread.request.display_age else ""
        line = Text("      ")
        line.append(f"{age:>10}", style="metric")
        line.append(f" {thread.name}")
        if is_db_socket_read_is_valid(thread):
            line.append(" [in isValid]", style="label")
        console.print(line, soft_wrap=True)


def render_report(
    dump: Dump,
    console: Console,
    settings: ReportSettings | None = None,
    options: RenderOptions | None = None,
) -> None:
    """Print the full thread dump report."""
    settings = settings or ReportSettings()
    options = options or RenderOptions()

    console.print()
    console.print(Panel("THREAD DUMP REPORT", style="header", expand=True))
    console.print()
    console.print(create_key_value_table("STATISTICS", build_statistics_rows(dump, settings)))

    print_lock_graph(console, dump, settings, options)

    if oldest := oldest_request_threads(dump, settings.oldest_threads):
        console.print()
        console.print(
            create_thread_table(
                f"{settings.oldest_threads} OLDEST REQUEST THREADS", "Age", build_age_rows(oldest)
            )
        )
    if youngest := youngest_request_threads(dump, settings.youngest_threads):
        console.print()
        console.print(
            create_thread_table(
                f"{settings.youngest_threads} YOUNGEST REQUEST THREADS",
                "Age",
                build_age_rows(youngest),
            )
        )

    print_clients(console, dump, settings)

    if longest := longest_traces(dump, settings.longest_traces):
        console.print()
        console.print(
            create_thread_table(
                f"TOP {settings.longest_traces} THREADS WITH LONGEST TRACES",
                "Lines",
                [(str(len(thread.trace)), thread.name) for thread in longest],
            )
        )

    if urls := most_requested_urls(dump, settings.top_urls):
        console.print()
        console.print(
            create_thread_table(
                f"TOP {settings.top_urls} REQUESTED URLS",
                "Threads",
                [(str(count), url) for url, count in urls],
            )
        )

    print_db_socket_reads(console, dump)
    console.print()
