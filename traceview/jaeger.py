"""
Conversion of Jaeger JSON exports into a traceview Timeline.

A Jaeger export looks like ``{"data": [trace, ...]}`` where each trace holds
its spans and the processes (services) that emitted them. Trace and span ids
are hexadecimal strings, times are microseconds.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .models import TimeRange, Timeline, TraceSpanID
from .store import RefKind, SpanContent, TimelineBuilder

logger = logging.getLogger(__name__)

UNIT = "us"

_HEX_ID = re.compile(r"[0-9a-fA-F]+")
_ID_LIMIT = 2**64

DEBUG_FLAG = 0b10


class InvalidIdentityError(ValueError):
    """A trace or span id that is not a 64-bit hexadecimal number."""

    def __init__(self, field_name: str, value: Any) -> None:
        super().__init__(f"invalid {field_name} {value!r}")
        self.field = field_name
        self.value = value


@dataclass(slots=True)
class Tag:
    key: str
    type: str = "string"
    value: Any = None


@dataclass(slots=True)
class Log:
    timestamp: int = 0
    fields: List[Tag] = field(default_factory=list)


@dataclass(slots=True)
class SpanRef:
    ref_type: str
    trace_id: str
    span_id: str


@dataclass(slots=True)
class Process:
    service_name: str
    tags: List[Tag] = field(default_factory=list)


@dataclass(slots=True)
class JaegerSpan:
    trace_id: str
    span_id: str
    operation_name: str = ""
    references: List[SpanRef] = field(default_factory=list)
    start_time: int = 0
    duration: int = 0
    flags: int = 0
    tags: List[Tag] = field(default_factory=list)
    logs: List[Log] = field(default_factory=list)
    process_id: str = ""
    warnings: List[str] = field(default_factory=list)


@dataclass(slots=True)
class JaegerTrace:
    trace_id: str
    spans: List[JaegerSpan] = field(default_factory=list)
    processes: Dict[str, Process] = field(default_factory=dict)


def _parse_tags(raw: Optional[Iterable[Dict[str, Any]]]) -> List[Tag]:
    return [Tag(key=tag.get("key", ""), type=tag.get("type", "string"), value=tag.get("value")) for tag in raw or []]


def parse_span(raw: Dict[str, Any]) -> JaegerSpan:
    return JaegerSpan(
        trace_id=raw.get("traceID", ""),
        span_id=raw.get("spanID", ""),
        operation_name=raw.get("operationName", ""),
        references=[
            SpanRef(
                ref_type=ref.get("refType", ""),
                trace_id=ref.get("traceID", ""),
                span_id=ref.get("spanID", ""),
            )
            for ref in raw.get("references") or []
        ],
        start_time=raw.get("startTime", 0),
        duration=raw.get("duration", 0),
        flags=raw.get("flags") or 0,
        tags=_parse_tags(raw.get("tags")),
        logs=[
            Log(timestamp=log.get("timestamp", 0), fields=_parse_tags(log.get("fields")))
            for log in raw.get("logs") or []
        ],
        process_id=raw.get("processID", ""),
        warnings=list(raw.get("warnings") or []),
    )


def parse_trace(raw: Dict[str, Any]) -> JaegerTrace:
    processes = {
        process_id: Process(service_name=process.get("serviceName", ""), tags=_parse_tags(process.get("tags")))
        for process_id, process in (raw.get("processes") or {}).items()
    }
    return JaegerTrace(
        trace_id=raw.get("traceID", ""),
        spans=[parse_span(span) for span in raw.get("spans") or []],
        processes=processes,
    )


def parse_file(data: Dict[str, Any]) -> List[JaegerTrace]:
    """Parse a decoded Jaeger export document."""
    traces = [parse_trace(trace) for trace in data.get("data") or []]
    logger.debug("Parsed %d Jaeger traces with %d spans", len(traces), sum(len(trace.spans) for trace in traces))
    return traces


def load(path: Path) -> List[JaegerTrace]:
    """Load Jaeger traces from a JSON export file."""
    return parse_file(json.loads(Path(path).read_text(encoding="utf-8")))


def parse_hex_id(value: Any, field_name: str) -> int:
    # See https://www.jaegertracing.io/docs/1.22/client-libraries/#value
    if not isinstance(value, str) or not _HEX_ID.fullmatch(value):
        raise InvalidIdentityError(field_name, value)
    parsed = int(value, 16)
    if parsed >= _ID_LIMIT:
        raise InvalidIdentityError(field_name, value)
    return parsed


def convert_trace_span_id(trace_id: Any, span_id: Any) -> TraceSpanID:
    return TraceSpanID(
        trace_id=parse_hex_id(trace_id, "TraceID"),
        span_id=parse_hex_id(span_id, "SpanID"),
    )


def _span_content(span: JaegerSpan, processes: Dict[str, Process]) -> SpanContent:
    attributes: Dict[str, Any] = {tag.key: tag.value for tag in span.tags}
    process = processes.get(span.process_id)
    if process:
        attributes["service.name"] = process.service_name
        attributes.update({f"process.{tag.key}": tag.value for tag in process.tags})
    if span.warnings:
        attributes["warnings"] = list(span.warnings)
    if span.flags & DEBUG_FLAG:
        attributes["debug"] = True
    if span.logs:
        attributes["logs"] = [
            {"timestamp": log.timestamp, **{tag.key: tag.value for tag in log.fields}} for log in span.logs
        ]

    return SpanContent(
        caption=span.operation_name,
        time_range=TimeRange(start=span.start_time, finish=span.start_time + span.duration),
        attributes=attributes,
    )


def convert(*traces: JaegerTrace) -> Timeline:
    """Build a sorted Timeline from Jaeger traces.

    Raises InvalidIdentityError on the first id that is not valid hexadecimal.
    """
    builder = TimelineBuilder(unit=UNIT)

    for trace in traces:
        for span in trace.spans:
            node = builder.ensure(
                convert_trace_span_id(span.trace_id, span.span_id),
                _span_content(span, trace.processes),
            )
            for ref in span.references:
                kind = RefKind.parse(ref.ref_type)
                if kind is None:
                    continue
                target = builder.ensure(convert_trace_span_id(ref.trace_id, ref.span_id))
                builder.link(node, target, kind)

    return builder.finish()


def convert_file(data: Dict[str, Any]) -> Timeline:
    return convert(*parse_file(data))
