"""
Plain text rendering of a Timeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Set, Tuple

from .models import Span, Timeline, Trace, TraceSpanID
from .rows import pack_rows

SpanTree = Tuple[Span, List["SpanTree"]]


@dataclass
class DisplayConfig:
    """Options controlling which spans are shown and how."""

    min_duration: int = 0
    show_rows: bool = False
    show_attributes: bool = False


def visible_spans(timeline: Timeline, config: DisplayConfig) -> List[Span]:
    """Mark the spans that pass the display filter and return them in render order."""
    result = []
    for span in timeline.spans():
        span.visible = span.duration >= config.min_duration
        if span.visible:
            result.append(span)
    return result


def _format_duration(timeline: Timeline, value: int) -> str:
    return f"{value}{timeline.unit}"


def _build_forest(trace: Trace) -> List[SpanTree]:
    """Arrange the visible spans of a trace into trees following child edges."""
    visible: Set[TraceSpanID] = {span.id for span in trace.order if span.visible}
    placed: Set[TraceSpanID] = set()
    forest: List[SpanTree] = []

    for root in trace.order:
        if root.id not in visible or root.id in placed:
            continue
        placed.add(root.id)
        tree: SpanTree = (root, [])
        forest.append(tree)
        # Preorder walk; a child already placed through an earlier sibling is skipped.
        stack = [(tree, iter(root.children))]
        while stack:
            (_, children), pending = stack[-1]
            child = next(pending, None)
            if child is None:
                stack.pop()
                continue
            if child.id in visible and child.id not in placed:
                placed.add(child.id)
                subtree: SpanTree = (child, [])
                children.append(subtree)
                stack.append((subtree, iter(child.children)))

    return forest


def render_ascii_tree(timeline: Timeline, config: DisplayConfig) -> str:
    """Render every trace as an ASCII tree of its spans."""
    lines: List[str] = []
    visible_spans(timeline, config)

    def render_forest(forest: List[SpanTree]) -> None:
        stack: List[Tuple[str, object, str, bool]] = [
            ("child", node, "", index == len(forest) - 1) for index, node in reversed(list(enumerate(forest)))
        ]
        while stack:
            kind, payload, prefix, is_last = stack.pop()
            connector = "└──" if is_last else "├──"
            if kind == "attribute":
                lines.append(f"{prefix}{connector} {payload}")
                continue

            span, children = payload
            lines.append(
                f"{prefix}{connector} {span.caption or '(unnamed span)'} "
                f"(Span ID: {span.span_id:x}, start: {span.start}, duration: {_format_duration(timeline, span.duration)})"
            )
            child_prefix = f"{prefix}{'    ' if is_last else '│   '}"

            entries: List[Tuple[str, object]] = []
            if config.show_attributes:
                for key in sorted(span.attributes):
                    entries.append(("attribute", f"{key}: {span.attributes[key]}"))
            for child in children:
                entries.append(("child", child))

            for index in reversed(range(len(entries))):
                entry_kind, entry = entries[index]
                stack.append((entry_kind, entry, child_prefix, index == len(entries) - 1))

    if not timeline.traces:
        return "(no traces)"

    for trace in timeline.traces:
        lines.append(
            f"Trace ID: {trace.trace_id:x} "
            f"(start: {trace.time_range.start}, duration: {_format_duration(timeline, trace.time_range.duration)})"
        )
        forest = _build_forest(trace)
        if not forest:
            lines.append("└── (no visible spans)")
        else:
            render_forest(forest)
        lines.append("")

    return "\n".join(lines).rstrip()


def render_rows(timeline: Timeline, config: DisplayConfig) -> str:
    """Render the visible spans packed into rows, one line per row."""
    packer = pack_rows(visible_spans(timeline, config))
    if not packer.rows:
        return "(no visible spans)"

    lines = []
    for index, row in enumerate(packer.rows):
        captions = " | ".join(span.caption or "(unnamed span)" for span in packer.row_spans(row))
        lines.append(f"Row {index}: {captions}")
    return "\n".join(lines)
