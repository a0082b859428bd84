"""
Host token reader.

Template text is read into a tree of leaves and balanced delimiter groups
using the lark grammar shipped next to this module. The quote parser never
sees characters, only this tree, so every construct it recognizes is
expressed in terms of tokens and their spans.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Sequence, Tuple, Union

from lark import Lark, Token, Tree
from lark.exceptions import UnexpectedCharacters, UnexpectedInput, UnexpectedToken

from .config import DEFAULT_CONFIG, QuoteConfig
from .errors import TemplateSyntaxError
from .span import Position, Span

logger = logging.getLogger(__name__)

_GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")
_GRAMMAR_SRC = _GRAMMAR_PATH.read_text()

_PARSER = Lark(
    _GRAMMAR_SRC,
    parser="lalr",
    start="start",
    maybe_placeholders=False,
)


class Delimiter(Enum):
    PARENTHESIS = ("(", ")")
    BRACE = ("{", "}")
    BRACKET = ("[", "]")

    @property
    def open(self) -> str:
        return self.value[0]

    @property
    def close(self) -> str:
        return self.value[1]


_GROUP_RULES = {
    "paren": Delimiter.PARENTHESIS,
    "brace": Delimiter.BRACE,
    "bracket": Delimiter.BRACKET,
}

_CLOSERS = {"RPAR", "RBRACE", "RSQB"}


@dataclass(frozen=True)
class Leaf:
    kind: str  # NAME, NUMBER, STRING, CHAR or PUNCT
    text: str
    span: Span


@dataclass(frozen=True)
class Group:
    delimiter: Delimiter
    children: Tuple["TokenTree", ...]
    span: Span


TokenTree = Union[Leaf, Group]


def lex_template(source: str, config: QuoteConfig = DEFAULT_CONFIG) -> Tuple[TokenTree, ...]:
    try:
        tree = _PARSER.parse(source)
    except UnexpectedInput as exc:
        raise _syntax_error(exc, source, config) from exc
    tokens = _build_items(tree.children, config)
    logger.debug("lexed %s: %d top-level tokens", config.filename, len(tokens))
    return tokens


def source_span(source: str) -> Span:
    """Span covering the whole template text."""
    return Span(Position(1, 1), _end_position(source), 0, len(source))


def _end_position(source: str) -> Position:
    line = source.count("\n") + 1
    column = len(source) - (source.rfind("\n") + 1) + 1
    return Position(line, column)


def _token_span(tok: Token) -> Span:
    return Span(
        Position(tok.line, tok.column),
        Position(tok.end_line, tok.end_column),
        tok.start_pos,
        tok.end_pos,
    )


def _build_items(children: Sequence[object], config: QuoteConfig, depth: int = 0) -> Tuple[TokenTree, ...]:
    items: List[TokenTree] = []
    for child in children:
        if isinstance(child, Tree):
            open_tok, close_tok = child.children[0], child.children[-1]
            span = Span.join(_token_span(open_tok), _token_span(close_tok))
            if depth + 1 > config.max_depth:
                raise TemplateSyntaxError(
                    f"template nesting exceeds the maximum depth of {config.max_depth}",
                    span=span,
                    filename=config.filename,
                )
            items.append(
                Group(
                    delimiter=_GROUP_RULES[child.data],
                    children=_build_items(child.children[1:-1], config, depth + 1),
                    span=span,
                )
            )
        elif isinstance(child, Token):
            items.append(Leaf(kind=child.type, text=child.value, span=_token_span(child)))
    return tuple(items)


def _syntax_error(exc: UnexpectedInput, source: str, config: QuoteConfig) -> TemplateSyntaxError:
    if isinstance(exc, UnexpectedToken) and exc.token.type == "$END":
        end = _end_position(source)
        return TemplateSyntaxError(
            "unterminated group: missing closing delimiter",
            span=Span.point(end.line, end.column, len(source)),
            filename=config.filename,
        )
    line = max(getattr(exc, "line", 1) or 1, 1)
    column = max(getattr(exc, "column", 1) or 1, 1)
    pos = getattr(exc, "pos_in_stream", 0) or 0
    span = Span(Position(line, column), Position(line, column + 1), pos, pos + 1)
    if isinstance(exc, UnexpectedToken) and exc.token.type in _CLOSERS:
        message = f"unbalanced closing delimiter {exc.token.value!r}"
    elif isinstance(exc, UnexpectedCharacters):
        char = exc.char
        if char == '"':
            message = "unterminated string literal"
        else:
            message = f"unexpected character {char!r}"
    else:
        message = f"unexpected input: {exc}"
    return TemplateSyntaxError(message, span=span, filename=config.filename)


StopPredicate = Callable[["TokenStream", List[TokenTree]], bool]


class TokenStream:
    """
    Forward-only cursor over one token region (the template or a group body).

    Mirrors the small peek/expect vocabulary the quote parser needs. Forks
    share the source text but own their own position, so a body parsed out
    of a group never advances its parent.
    """

    def __init__(
        self,
        source: str,
        tokens: Sequence[TokenTree],
        span: Span,
        config: QuoteConfig = DEFAULT_CONFIG,
        enclosed: bool = False,
    ) -> None:
        self.source = source
        self.span = span
        self.config = config
        self._tokens = tuple(tokens)
        self._index = 0
        self._enclosed = enclosed

    @classmethod
    def from_source(cls, source: str, config: QuoteConfig = DEFAULT_CONFIG) -> "TokenStream":
        return cls(source, lex_template(source, config), source_span(source), config)

    def fork(self, group: Group) -> "TokenStream":
        return TokenStream(self.source, group.children, group.span, self.config, enclosed=True)

    def __len__(self) -> int:
        return len(self._tokens) - self._index

    def is_empty(self) -> bool:
        return self._index >= len(self._tokens)

    def peek(self, n: int = 0) -> Optional[TokenTree]:
        idx = self._index + n
        if idx < len(self._tokens):
            return self._tokens[idx]
        return None

    def peek_kind(self, kind: str, n: int = 0) -> bool:
        tok = self.peek(n)
        return isinstance(tok, Leaf) and tok.kind == kind

    def peek_punct(self, char: str, n: int = 0) -> bool:
        tok = self.peek(n)
        return isinstance(tok, Leaf) and tok.kind == "PUNCT" and tok.text == char

    def peek_name(self, word: Optional[str] = None, n: int = 0) -> bool:
        tok = self.peek(n)
        if not isinstance(tok, Leaf) or tok.kind != "NAME":
            return False
        return word is None or tok.text == word

    def peek_group(self, delimiter: Optional[Delimiter] = None, n: int = 0) -> bool:
        tok = self.peek(n)
        if not isinstance(tok, Group):
            return False
        return delimiter is None or tok.delimiter is delimiter

    def adjacent(self, n: int = 0) -> bool:
        """True when token n ends exactly where token n+1 starts."""
        cur, nxt = self.peek(n), self.peek(n + 1)
        if cur is None or nxt is None:
            return False
        return cur.span.end == nxt.span.start

    def peek_arrow(self, n: int = 0) -> bool:
        return self.peek_punct("=", n) and self.peek_punct(">", n + 1) and self.adjacent(n)

    def next(self) -> TokenTree:
        tok = self.peek()
        if tok is None:
            raise self.error("unexpected end of input", self.end_span())
        self._index += 1
        return tok

    def expect_punct(self, char: str) -> Leaf:
        if not self.peek_punct(char):
            raise self.error(f"expected `{char}`")
        return self.next()  # type: ignore[return-value]

    def expect_name(self, word: Optional[str] = None) -> Leaf:
        if not self.peek_name(word):
            raise self.error(f"expected `{word}`" if word else "expected identifier")
        return self.next()  # type: ignore[return-value]

    def expect_group(self, delimiter: Delimiter) -> Group:
        if not self.peek_group(delimiter):
            raise self.error(f"expected `{delimiter.open} ... {delimiter.close}`")
        return self.next()  # type: ignore[return-value]

    def expect_arrow(self) -> Span:
        if not self.peek_arrow():
            raise self.error("expected `=>`")
        first = self.next()
        second = self.next()
        return Span.join(first.span, second.span)

    def expect_end(self) -> None:
        if not self.is_empty():
            raise self.error("unexpected trailing tokens")

    def take_until(self, stop: StopPredicate) -> List[TokenTree]:
        collected: List[TokenTree] = []
        while not self.is_empty() and not stop(self, collected):
            collected.append(self.next())
        return collected

    def text_of(self, tokens: Sequence[TokenTree]) -> str:
        return self.source[tokens[0].span.start_pos:tokens[-1].span.end_pos]

    def current_span(self) -> Span:
        tok = self.peek()
        return tok.span if tok is not None else self.end_span()

    def end_span(self) -> Span:
        end = self.span.end
        if self._enclosed:
            # Point at the closing delimiter.
            start = Position(end.line, max(end.column - 1, 1))
            return Span(start, end, max(self.span.end_pos - 1, 0), self.span.end_pos)
        return Span.point(end.line, end.column, self.span.end_pos)

    def error(self, message: str, span: Optional[Span] = None) -> TemplateSyntaxError:
        return TemplateSyntaxError(
            message,
            span=span if span is not None else self.current_span(),
            filename=self.config.filename,
        )


__all__ = [
    "Delimiter",
    "Group",
    "Leaf",
    "TokenStream",
    "TokenTree",
    "lex_template",
    "source_span",
]
