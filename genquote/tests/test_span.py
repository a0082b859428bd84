from __future__ import annotations

from genquote.span import Cursor, Position, Span


def _span(l1: int, c1: int, l2: int, c2: int) -> Span:
    return Span(Position(l1, c1), Position(l2, c2))


def test_positions_are_ordered_by_line_then_column() -> None:
    assert Position(1, 9) < Position(2, 1)
    assert Position(3, 2) < Position(3, 4)
    assert max(Position(2, 1), Position(1, 80)) == Position(2, 1)


def test_cursor_join_is_the_covering_range() -> None:
    a = _span(1, 5, 1, 7)
    b = _span(2, 1, 2, 4)
    joined = Cursor.join(b, a)
    assert joined.start == Position(1, 5)
    assert joined.end == Position(2, 4)


def test_cursor_boundary_characters() -> None:
    cursor = Cursor.from_span(_span(1, 3, 4, 2))
    first = cursor.first_character()
    last = cursor.last_character()
    assert (first.start, first.end) == (Position(1, 3), Position(1, 4))
    assert (last.start, last.end) == (Position(4, 1), Position(4, 2))


def test_span_join_keeps_offsets() -> None:
    a = Span(Position(1, 1), Position(1, 2), 0, 1)
    b = Span(Position(1, 4), Position(1, 6), 3, 5)
    joined = Span.join(a, b)
    assert (joined.start_pos, joined.end_pos) == (0, 5)
    assert joined.end == Position(1, 6)
