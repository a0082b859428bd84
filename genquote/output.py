"""
Reference output receiver.

`Tokens` is the builder a compiled routine populates. It records literal
text and whitespace intents (space, push, line, indent, unindent) and only
resolves them to characters when formatted, so redundant intents collapse:
a space between a literal and a line break disappears, repeated blank lines
merge into one, and indentation is applied when a line gets its first
literal.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Iterator, List, Union

from .config import DEFAULT_CONFIG, QuoteConfig


class Whitespace(Enum):
    SPACE = "space"
    PUSH = "push"
    LINE = "line"
    INDENT = "indent"
    UNINDENT = "unindent"


Item = Union[str, Whitespace]


class Tokens:
    def __init__(self, items: Iterable[Item] | None = None) -> None:
        self._items: List[Item] = list(items or ())

    def append(self, value: object) -> None:
        """
        Append a rendered value.

        `None` appends nothing, `Tokens` are spliced in, objects providing
        `into_tokens(tokens)` write themselves, and lists or tuples of
        `Tokens` are spliced in order. Anything else is appended as `str()`.
        """
        if value is None:
            return
        if isinstance(value, Tokens):
            self._items.extend(value._items)
            return
        if hasattr(value, "into_tokens"):
            value.into_tokens(self)
            return
        if isinstance(value, (list, tuple)) and value and all(isinstance(v, Tokens) for v in value):
            for tokens in value:
                self._items.extend(tokens._items)
            return
        text = value if isinstance(value, str) else str(value)
        if text:
            self._items.append(text)

    def extend(self, items: Iterable[Item] | "Tokens") -> None:
        for item in items:
            if isinstance(item, Whitespace):
                self._items.append(item)
            else:
                self.append(item)

    def space(self) -> None:
        self._items.append(Whitespace.SPACE)

    def push(self) -> None:
        self._items.append(Whitespace.PUSH)

    def line(self) -> None:
        self._items.append(Whitespace.LINE)

    def indent(self) -> None:
        self._items.append(Whitespace.INDENT)

    def unindent(self) -> None:
        self._items.append(Whitespace.UNINDENT)

    def nested(self, tokens: "Tokens") -> None:
        """Append `tokens` on their own lines, one level deeper."""
        self.indent()
        self.push()
        self.append(tokens)
        self.unindent()
        self.push()

    def is_empty(self) -> bool:
        return not any(isinstance(item, str) for item in self._items)

    def __iter__(self) -> Iterator[Item]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Tokens):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"Tokens({self._items!r})"

    def __str__(self) -> str:
        return self.to_string()

    def to_string(self, config: QuoteConfig = DEFAULT_CONFIG) -> str:
        return config.newline.join(self._lines(config))

    def to_file_string(self, config: QuoteConfig = DEFAULT_CONFIG) -> str:
        """Formatted output terminated by a newline, as written to disk."""
        lines = self._lines(config)
        if not lines:
            return ""
        return config.newline.join(lines) + config.newline

    def _lines(self, config: QuoteConfig) -> List[str]:
        lines: List[str] = []
        current: List[str] = []
        level = 0
        pending_space = False
        pending_blank = False

        for item in self._items:
            if isinstance(item, str):
                if current:
                    if pending_space:
                        current.append(" ")
                else:
                    if pending_blank and lines:
                        lines.append("")
                    current.append(config.indentation * level)
                pending_space = False
                pending_blank = False
                current.append(item)
            elif item is Whitespace.SPACE:
                pending_space = bool(current)
            elif item is Whitespace.PUSH:
                if current:
                    lines.append("".join(current))
                    current = []
                pending_space = False
            elif item is Whitespace.LINE:
                if current:
                    lines.append("".join(current))
                    current = []
                pending_space = False
                pending_blank = True
            elif item is Whitespace.INDENT:
                level += 1
            elif item is Whitespace.UNINDENT:
                level = max(level - 1, 0)

        if current:
            lines.append("".join(current))
        return lines


__all__ = ["Tokens", "Whitespace"]
