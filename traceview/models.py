"""
Data models used by traceview for representing timelines, traces and spans.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Set, Tuple

# Tick count on the timeline axis. The unit depends on the source format,
# see Timeline.unit.
Time = int
TraceID = int
SpanID = int

_TIME_MAX = 2**63 - 1
_TIME_MIN = -(2**63)

_UNIT_MICROSECONDS = {"ns": 0.001, "us": 1, "ms": 1000}


class TraceSpanID(NamedTuple):
    """Unique key of a span within a timeline."""

    trace_id: TraceID = 0
    span_id: SpanID = 0

    @property
    def is_zero(self) -> bool:
        return self.trace_id == 0 and self.span_id == 0


@dataclass(frozen=True, order=True, slots=True)
class TimeRange:
    """Closed interval on the timeline axis, ordered by start then finish."""

    start: Time
    finish: Time

    @property
    def duration(self) -> Time:
        return self.finish - self.start

    @property
    def is_valid(self) -> bool:
        return self.start <= self.finish

    def expand(self, other: TimeRange) -> TimeRange:
        return TimeRange(start=min(self.start, other.start), finish=max(self.finish, other.finish))

    def less(self, other: TimeRange) -> bool:
        return self < other


# Identity element of TimeRange.expand.
INVALID_RANGE = TimeRange(start=_TIME_MAX, finish=_TIME_MIN)


@dataclass(eq=False, slots=True)
class Span:
    """One traced operation and its causal edges to other spans."""

    id: TraceSpanID
    caption: str = ""
    time_range: TimeRange = TimeRange(0, 0)
    attributes: Dict[str, Any] = field(default_factory=dict)
    parents: List["Span"] = field(default_factory=list)
    children: List["Span"] = field(default_factory=list)
    follows_from: List["Span"] = field(default_factory=list)
    followed_by: List["Span"] = field(default_factory=list)
    is_placeholder: bool = True

    # Presentation scratch state, owned by whoever renders the timeline.
    visible: bool = False
    anchor: Optional[Tuple[int, int]] = None

    @property
    def trace_id(self) -> TraceID:
        return self.id.trace_id

    @property
    def span_id(self) -> SpanID:
        return self.id.span_id

    @property
    def start(self) -> Time:
        return self.time_range.start

    @property
    def finish(self) -> Time:
        return self.time_range.finish

    @property
    def duration(self) -> Time:
        return self.time_range.duration

    def add_parent(self, parent: Span) -> None:
        self.parents.append(parent)
        parent.children.append(self)

    def add_follows_from(self, previous: Span) -> None:
        self.follows_from.append(previous)
        previous.followed_by.append(self)

    def __repr__(self) -> str:
        return (
            f"Span(trace_id={self.trace_id:x}, span_id={self.span_id:x}, "
            f"caption={self.caption!r}, start={self.start}, finish={self.finish})"
        )


@dataclass(eq=False, slots=True)
class Trace:
    """Spans sharing a trace id, with their aggregated time range."""

    trace_id: TraceID
    time_range: TimeRange = INVALID_RANGE
    spans: List[Span] = field(default_factory=list)
    order: List[Span] = field(default_factory=list)
    _members: Set[TraceSpanID] = field(default_factory=set, init=False, repr=False)

    def add_span(self, span: Span) -> None:
        if span.id not in self._members:
            self._members.add(span.id)
            self.spans.append(span)
        self.time_range = self.time_range.expand(span.time_range)

    def sort(self) -> None:
        self.spans.sort(key=lambda span: span.time_range)

        self.order = []
        seen: Set[TraceSpanID] = set()
        roots = [span for span in self.spans if not span.parents]
        # Members only reachable through spans outside this trace, or through
        # a cycle, are picked up after the real roots.
        for start in roots + self.spans:
            stack = [start]
            while stack:
                span = stack.pop()
                if span.id in seen or span.id not in self._members:
                    continue
                seen.add(span.id)
                self.order.append(span)
                stack.extend(reversed(span.children))


@dataclass(eq=False, slots=True)
class Timeline:
    """Top-level container for all traces ingested from one input."""

    traces: List[Trace] = field(default_factory=list)
    span_by_id: Dict[TraceSpanID, Span] = field(default_factory=dict)
    time_range: TimeRange = INVALID_RANGE
    unit: str = "ns"

    @property
    def duration(self) -> Time:
        if not self.time_range.is_valid:
            return 0
        return self.time_range.duration

    def span(self, span_id: TraceSpanID) -> Span:
        return self.span_by_id[span_id]

    def spans(self) -> Iterator[Span]:
        for trace in self.traces:
            yield from trace.order

    def sort(self) -> None:
        self.traces.sort(key=lambda trace: trace.time_range)
        for trace in self.traces:
            trace.sort()

    def to_timedelta(self, value: Time) -> timedelta:
        return timedelta(microseconds=value * _UNIT_MICROSECONDS[self.unit])
