"""
Source positions used for spacing decisions and diagnostics.

Lines and columns are 1-based. A Span's end is exclusive: the column just
past the last character. Spans also carry character offsets into the
template source so the parser can slice payload text back out of it.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, order=True)
class Position:
    line: int
    column: int

    def __str__(self) -> str:  # pragma: no cover - trivial repr
        return f"{self.line}:{self.column}"


@dataclass(frozen=True)
class Span:
    start: Position
    end: Position
    start_pos: int = 0
    end_pos: int = 0

    @classmethod
    def join(cls, a: "Span", b: "Span") -> "Span":
        first = a if a.start <= b.start else b
        last = a if a.end >= b.end else b
        return cls(first.start, last.end, first.start_pos, last.end_pos)

    @classmethod
    def point(cls, line: int, column: int, pos: int = 0) -> "Span":
        here = Position(line, column)
        return cls(here, here, pos, pos)


@dataclass(frozen=True)
class Cursor:
    """Start/end pair the encoder compares to pick spacing."""

    start: Position
    end: Position

    @classmethod
    def from_span(cls, span: Span) -> "Cursor":
        return cls(span.start, span.end)

    @classmethod
    def join(cls, a: Span | "Cursor", b: Span | "Cursor") -> "Cursor":
        return cls(min(a.start, b.start), max(a.end, b.end))

    def first_character(self) -> "Cursor":
        return Cursor(self.start, Position(self.start.line, self.start.column + 1))

    def last_character(self) -> "Cursor":
        return Cursor(Position(self.end.line, max(self.end.column - 1, 1)), self.end)


__all__ = ["Cursor", "Position", "Span"]
