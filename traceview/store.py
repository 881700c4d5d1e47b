"""
Timeline assembly shared by the format converters.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .models import INVALID_RANGE, Span, TimeRange, Timeline, Trace, TraceID, TraceSpanID

logger = logging.getLogger(__name__)


class RefKind(enum.Enum):
    CHILD_OF = "CHILD_OF"
    FOLLOWS_FROM = "FOLLOWS_FROM"

    @classmethod
    def parse(cls, value: Any) -> Optional["RefKind"]:
        """Return the matching kind, or None for kinds this version does not know."""
        try:
            return cls(value)
        except ValueError:
            logger.debug("Ignoring reference of unknown kind %r", value)
            return None


@dataclass(slots=True)
class SpanContent:
    """Concrete data for a span, as read from a source record."""

    caption: str
    time_range: TimeRange
    attributes: Dict[str, Any] = field(default_factory=dict)


class TimelineBuilder:
    """Builds a single Timeline; every span is obtained through ensure()."""

    def __init__(self, *, unit: str = "ns") -> None:
        self._timeline = Timeline(unit=unit)
        self._trace_by_id: Dict[TraceID, Trace] = {}

    @property
    def timeline(self) -> Timeline:
        return self._timeline

    def ensure(self, span_id: TraceSpanID, content: Optional[SpanContent] = None) -> Span:
        """Return the span for ``span_id``, creating a placeholder on first sight.

        When ``content`` is given it replaces the span's caption, time range and
        attributes, makes the span a member of its trace and widens the trace
        and timeline ranges. The span's identity is never replaced.
        """
        span = self._timeline.span_by_id.get(span_id)
        if span is None:
            span = Span(id=span_id)
            self._timeline.span_by_id[span_id] = span
        if content is None:
            return span

        span.caption = content.caption
        span.time_range = content.time_range
        span.attributes = dict(content.attributes)
        span.is_placeholder = False

        trace = self._get_or_create_trace(span_id.trace_id)
        trace.add_span(span)
        self._timeline.time_range = self._timeline.time_range.expand(span.time_range)
        return span

    def link(self, span: Span, target: Span, kind: RefKind) -> None:
        """Add the mirrored edge pair for a reference from ``span`` to ``target``."""
        if kind is RefKind.CHILD_OF:
            span.add_parent(target)
        elif kind is RefKind.FOLLOWS_FROM:
            span.add_follows_from(target)

    def finish(self) -> Timeline:
        self._timeline.sort()
        logger.debug(
            "Converted %d spans into %d traces",
            sum(len(trace.spans) for trace in self._timeline.traces),
            len(self._timeline.traces),
        )
        return self._timeline

    def _get_or_create_trace(self, trace_id: TraceID) -> Trace:
        trace = self._trace_by_id.get(trace_id)
        if not trace:
            trace = Trace(trace_id=trace_id, time_range=INVALID_RANGE)
            self._trace_by_id[trace_id] = trace
            self._timeline.traces.append(trace)
        return trace
