"""
Packing of spans into display rows.
"""

from __future__ import annotations

from typing import Iterable, List, NamedTuple, Optional

from .models import Span


class Row(NamedTuple):
    """Half-open index range ``[low, high)`` into RowPacker.spans."""

    low: int
    high: int

    @property
    def size(self) -> int:
        return self.high - self.low


class RowPacker:
    """Single pass packing of spans into rows.

    Each added span is compared only with the span added right before it: if
    that one finished before this one starts, both share a row, otherwise a
    new row is opened. The result therefore depends on the order spans are
    added in.
    """

    def __init__(self) -> None:
        self.rows: List[Row] = []
        self.spans: List[Span] = []
        self._last: Optional[Span] = None

    def add(self, span: Span) -> None:
        index = len(self.spans)
        self.spans.append(span)

        if self._last is not None and self._last.finish <= span.start:
            low, high = self.rows[-1]
            self.rows[-1] = Row(low, high + 1)
        else:
            self.rows.append(Row(index, index + 1))
        self._last = span

    def extend(self, spans: Iterable[Span]) -> None:
        for span in spans:
            self.add(span)

    def row_spans(self, row: Row) -> List[Span]:
        return self.spans[row.low : row.high]


def pack_rows(spans: Iterable[Span]) -> RowPacker:
    packer = RowPacker()
    packer.extend(spans)
    return packer
