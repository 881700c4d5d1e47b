from pathlib import Path

from traceview import jaeger, monkit
from traceview.models import TraceSpanID
from traceview.render import DisplayConfig, render_ascii_tree, render_rows, visible_spans

PROJECT_ROOT = Path(__file__).resolve().parent.parent
JAEGER_SAMPLE = PROJECT_ROOT / "tests" / "data" / "jaeger_sample.json"
MONKIT_SAMPLE = PROJECT_ROOT / "tests" / "data" / "monkit_sample.json"


def load_jaeger():
    return jaeger.convert(*jaeger.load(JAEGER_SAMPLE))


def test_tree_follows_child_edges():
    output = render_ascii_tree(load_jaeger(), DisplayConfig())
    lines = output.splitlines()

    assert lines[0] == "Trace ID: e (start: 999000, duration: 10us)"
    assert lines[1] == "└── cron tick (Span ID: 1, start: 999000, duration: 10us)"
    assert "Trace ID: 1f (start: 1000000, duration: 115us)" in lines
    assert "├── GET /users (Span ID: a1, start: 1000000, duration: 100us)" in lines
    assert "│   ├── SELECT users (Span ID: b2, start: 1000020, duration: 30us)" in lines
    assert "│   └── render (Span ID: c3, start: 1000060, duration: 35us)" in lines
    assert lines[-1] == "└── audit (Span ID: d4, start: 1000110, duration: 5us)"


def test_min_duration_hides_short_spans():
    timeline = load_jaeger()
    output = render_ascii_tree(timeline, DisplayConfig(min_duration=20))

    assert "cron tick" not in output
    assert "audit" not in output
    assert "└── (no visible spans)" in output
    assert not timeline.span(TraceSpanID(0x1F, 0xD4)).visible
    assert timeline.span(TraceSpanID(0x1F, 0xA1)).visible


def test_attributes_are_listed_under_their_span():
    output = render_ascii_tree(load_jaeger(), DisplayConfig(show_attributes=True))

    assert "│   ├── http.method: GET" in output
    assert "service.name: database" in output


def test_visible_spans_follow_render_order():
    spans = visible_spans(load_jaeger(), DisplayConfig())

    assert [span.caption for span in spans] == ["cron tick", "GET /users", "SELECT users", "render", "audit"]


def test_rows_for_jaeger_sample():
    output = render_rows(load_jaeger(), DisplayConfig())

    assert output.splitlines() == [
        "Row 0: cron tick | GET /users",
        "Row 1: SELECT users | render | audit",
    ]


def test_rows_for_monkit_sample():
    timeline = monkit.convert(monkit.load(MONKIT_SAMPLE))

    assert render_rows(timeline, DisplayConfig()).splitlines() == [
        "Row 0: storj.io/storj/satellite Download",
        "Row 1: storj.io/storj/satellite/metainfo GetObject | storj.io/storj/satellite/orders CreateGetOrderLimits",
    ]


def test_empty_timeline():
    timeline = jaeger.convert_file({"data": []})

    assert render_ascii_tree(timeline, DisplayConfig()) == "(no traces)"
    assert render_rows(timeline, DisplayConfig()) == "(no visible spans)"


def test_deep_span_chain_renders_without_recursion():
    depth = 1500
    records = [
        {
            "id": index,
            "parent_id": index - 1 if index > 1 else None,
            "func": {"package": "pkg", "name": f"fn{index}"},
            "trace": {"id": 0},
            "start": index,
            "finish": 2 * depth - index,
        }
        for index in range(1, depth + 1)
    ]
    timeline = monkit.convert_file(records)

    lines = render_ascii_tree(timeline, DisplayConfig()).splitlines()

    assert len(timeline.traces[0].order) == depth
    assert len(lines) == depth + 1
    assert lines[1].startswith("└── pkg fn1 ")
    assert lines[-1].startswith(" " * 4 * (depth - 1) + "└── pkg fn1500 ")


def test_shared_child_is_drawn_once_under_first_parent():
    timeline = jaeger.convert_file(
        {
            "data": [
                {
                    "traceID": "1",
                    "spans": [
                        {"traceID": "1", "spanID": "a", "operationName": "a", "startTime": 0, "duration": 10},
                        {
                            "traceID": "1",
                            "spanID": "b",
                            "operationName": "b",
                            "startTime": 1,
                            "duration": 5,
                            "references": [{"refType": "CHILD_OF", "traceID": "1", "spanID": "a"}],
                        },
                        {
                            "traceID": "1",
                            "spanID": "c",
                            "operationName": "c",
                            "startTime": 2,
                            "duration": 1,
                            "references": [
                                {"refType": "CHILD_OF", "traceID": "1", "spanID": "b"},
                                {"refType": "CHILD_OF", "traceID": "1", "spanID": "a"},
                            ],
                        },
                    ],
                }
            ]
        }
    )

    lines = render_ascii_tree(timeline, DisplayConfig()).splitlines()

    assert [line.split(" (")[0] for line in lines[1:]] == ["└── a", "    └── b", "        └── c"]
