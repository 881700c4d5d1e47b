"""
Conversion of monkit span logs into a traceview Timeline.

A monkit file is a JSON list of finished spans. Ids are plain integers and
times are nanoseconds, so there is nothing in the ids that can fail to parse.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import TimeRange, Timeline, TraceSpanID
from .store import RefKind, SpanContent, TimelineBuilder

logger = logging.getLogger(__name__)

UNIT = "ns"


@dataclass(slots=True)
class Func:
    package: str = ""
    name: str = ""


@dataclass(slots=True)
class MonkitSpan:
    id: int
    trace_id: int
    parent_id: Optional[int] = None
    func: Func = field(default_factory=Func)
    start: int = 0
    finish: int = 0
    orphaned: bool = False
    err: str = ""
    panicked: bool = False
    args: List[str] = field(default_factory=list)
    annotations: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def caption(self) -> str:
        return f"{self.func.package} {self.func.name}"


def _parse_annotation(pair: Sequence[str]) -> Tuple[str, str]:
    # Missing entries decode as empty strings, extra entries are dropped.
    key, value = (list(pair) + ["", ""])[:2]
    return key, value


def parse_span(raw: Dict[str, Any]) -> MonkitSpan:
    func = raw.get("func") or {}
    return MonkitSpan(
        id=raw.get("id", 0),
        trace_id=(raw.get("trace") or {}).get("id", 0),
        parent_id=raw.get("parent_id"),
        func=Func(package=func.get("package", ""), name=func.get("name", "")),
        start=raw.get("start", 0),
        finish=raw.get("finish", 0),
        orphaned=raw.get("orphaned", False),
        err=raw.get("err", ""),
        panicked=raw.get("panicked", False),
        args=list(raw.get("args") or []),
        annotations=[_parse_annotation(pair) for pair in raw.get("annotations") or []],
    )


def parse_file(data: Sequence[Dict[str, Any]]) -> List[MonkitSpan]:
    """Parse a decoded monkit span list."""
    return [parse_span(span) for span in data]


def load(path: Path) -> List[MonkitSpan]:
    """Load monkit spans from a JSON file."""
    return parse_file(json.loads(Path(path).read_text(encoding="utf-8")))


def _span_content(span: MonkitSpan) -> SpanContent:
    attributes: Dict[str, Any] = {}
    if span.err:
        attributes["err"] = span.err
    if span.panicked:
        attributes["panicked"] = True
    if span.orphaned:
        attributes["orphaned"] = True
    if span.args:
        attributes["args"] = list(span.args)
    attributes.update({f"annotation.{key}": value for key, value in span.annotations})

    return SpanContent(
        caption=span.caption,
        time_range=TimeRange(start=span.start, finish=span.finish),
        attributes=attributes,
    )


def parent_ref(span: MonkitSpan) -> Optional[TraceSpanID]:
    """Return the id of the span's parent, if the parent should be linked.

    monkit compares the parent span id against the span's own trace id, and
    a parent whose id equals the trace id is not linked. Kept as is for
    compatibility with existing span logs.
    """
    if span.parent_id is None:
        return None
    if span.parent_id == span.trace_id:
        logger.debug("Not linking span %d to parent %d: parent id equals trace id", span.id, span.parent_id)
        return None
    return TraceSpanID(trace_id=span.trace_id, span_id=span.parent_id)


def convert(*files: Sequence[MonkitSpan]) -> Timeline:
    """Build a sorted Timeline from one or more monkit span lists."""
    builder = TimelineBuilder(unit=UNIT)

    for spans in files:
        for span in spans:
            node = builder.ensure(
                TraceSpanID(trace_id=span.trace_id, span_id=span.id),
                _span_content(span),
            )
            parent_id = parent_ref(span)
            if parent_id is not None:
                builder.link(node, builder.ensure(parent_id), RefKind.CHILD_OF)

    return builder.finish()


def convert_file(data: Sequence[Dict[str, Any]]) -> Timeline:
    return convert(parse_file(data))
