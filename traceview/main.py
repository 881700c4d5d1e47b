"""
Entry point for the traceview CLI.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Iterable

from . import jaeger, monkit
from .models import Timeline
from .render import DisplayConfig, render_ascii_tree, render_rows

logger = logging.getLogger(__name__)

FORMATS = ("auto", "jaeger", "monkit")


class UnknownFormatError(ValueError):
    """The input document does not look like any supported trace format."""


def detect_format(data: Any) -> str:
    if isinstance(data, dict) and "data" in data:
        return "jaeger"
    if isinstance(data, list):
        return "monkit"
    raise UnknownFormatError("unable to detect trace format: expected a Jaeger export or a monkit span list")


def convert_document(data: Any, fmt: str = "auto") -> Timeline:
    if fmt == "auto":
        fmt = detect_format(data)
    logger.debug("Converting input as %s", fmt)
    if fmt == "jaeger":
        return jaeger.convert_file(data)
    if fmt == "monkit":
        return monkit.convert_file(data)
    raise UnknownFormatError(f"unsupported trace format: {fmt}")


def load_timeline(path: Path, fmt: str = "auto") -> Timeline:
    """Read a trace file from disk and convert it into a Timeline."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    timeline = convert_document(data, fmt)
    logger.info("Loaded %d traces (%d spans) from %s", len(timeline.traces), len(timeline.span_by_id), path)
    return timeline


def _parse_args(argv: Iterable[str]) -> tuple[argparse.ArgumentParser, argparse.Namespace]:
    parser = argparse.ArgumentParser(description="traceview: render Jaeger and monkit trace files as a span timeline.")
    parser.add_argument("path", help="Path to the trace file to load.")
    parser.add_argument(
        "--format",
        choices=FORMATS,
        default="auto",
        help="Input format (default: %(default)s)",
    )
    parser.add_argument(
        "--min-duration",
        type=int,
        default=0,
        help="Hide spans shorter than this many time units (default: %(default)s)",
    )
    parser.add_argument(
        "--rows",
        action="store_true",
        help="Also print the spans packed into display rows.",
    )
    parser.add_argument(
        "--attributes",
        action="store_true",
        help="Print span attributes below each span.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Logging level for traceview (default: %(default)s)",
    )
    return parser, parser.parse_args(list(argv))


def run(argv: list[str] | None = None) -> None:
    if argv is None:
        argv = sys.argv[1:]
    parser, args = _parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.WARNING))

    try:
        timeline = load_timeline(Path(args.path), args.format)
    except FileNotFoundError:
        parser.error(f"Input file not found: {args.path}")
    except OSError as exc:
        parser.error(f"Unable to read '{args.path}': {exc}")
    except json.JSONDecodeError as exc:
        parser.error(f"Unable to parse '{args.path}': {exc}")
    except ValueError as exc:
        parser.error(f"Unable to convert '{args.path}': {exc}")

    config = DisplayConfig(
        min_duration=args.min_duration,
        show_rows=args.rows,
        show_attributes=args.attributes,
    )
    print(render_ascii_tree(timeline, config))
    if config.show_rows:
        print()
        print(render_rows(timeline, config))


if __name__ == "__main__":
    run()
