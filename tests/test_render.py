from rich.text import Text

from jstack_report.config import RenderOptions, ReportSettings
from jstack_report.graph import LockKey, transitive_lock_graph
from jstack_report.render import (
    render_lock_graph,
    render_lock_graph_plain,
    render_tree,
    short_name,
)

EXPECTED_SAMPLE_GRAPH = [
    "ajp|101500.000|cid=C1|rid=R1|/shop/cart age 25s [db socketRead0]",
    "│ tid 0x00007f4e2c001000 locked Transaction 0x0000000700000001 - blocks 3 threads",
    "└── Thread-7",
    "    │ tid 0x00007f4e2c003000 locked ContentItem 0x0000000700000002 - blocks 2 threads",
    "    ├── ajp|101510.500|cid=C2|rid=R3|/shop/item age 14s",
    "    └── ajp|101520.250|cid=C2|rid=R2|/shop/item age 04s",
]


def test_sample_graph_rendering(sample_dump):
    assert render_lock_graph_plain(sample_dump) == EXPECTED_SAMPLE_GRAPH


def test_render_tree_connectors():
    forest = {
        LockKey("root", "0x1"): {
            LockKey("a", "0x2"): {LockKey("a1"): {}, LockKey("a2"): {}},
            LockKey("b"): {},
        }
    }

    def label(key, children):
        return [Text(key.tid)]

    (root_key, children), = forest.items()
    lines = [line.plain for line in render_tree(root_key, children, label, RenderOptions(color=False))]

    assert lines == [
        "root",
        "├── a",
        "│   ├── a1",
        "│   └── a2",
        "└── b",
    ]


def test_multi_line_labels_keep_the_trunk():
    forest = {LockKey("root", "0x1"): {LockKey("child"): {}}}

    def label(key, children):
        lines = [Text(key.tid)]
        if children:
            lines.append(Text("holds a lock"))
        return lines

    (root_key, children), = forest.items()
    lines = [line.plain for line in render_tree(root_key, children, label, RenderOptions(color=False))]
    assert lines == ["root", "│ holds a lock", "└── child"]


def test_color_is_controlled_by_options(sample_dump):
    graph = transitive_lock_graph(sample_dump)
    settings = ReportSettings()

    plain = render_lock_graph(sample_dump, graph, settings, RenderOptions(color=False))
    colored = render_lock_graph(sample_dump, graph, settings, RenderOptions(color=True))

    assert [line.plain for line in plain] == [line.plain for line in colored]
    assert all(not span.style for line in plain for span in line.spans)
    assert any(span.style == "magenta" for line in colored for span in line.spans)


def test_long_traces_are_labelled(sample_dump):
    lines = render_lock_graph_plain(sample_dump, ReportSettings(trace_report_limit=2))
    assert lines[2] == "└── Thread-7 [5 line trace]"


def test_short_name():
    assert short_name("java.util.concurrent.locks.ReentrantLock$NonfairSync") == "ReentrantLock$NonfairSync"
    assert short_name("Plain") == "Plain"
    assert short_name(None) == ""


def test_empty_graph_renders_nothing(sample_dump):
    assert render_lock_graph(sample_dump, graph={}) == []
