from __future__ import annotations

from typing import List, Optional, Tuple

from .ast import EvalSegment, LiteralSegment, StringSegment
from .config import DEFAULT_CONFIG, QuoteConfig
from .host import Expression
from .lexer import Delimiter, Group, Leaf, TokenStream
from .span import Span

SIGIL = "#"


class StringParser:
    """
    Parser for the body of a `#_( ... )` interpolation block.

    The block's text is taken from the template source between its first and
    last token, so the author's spacing survives verbatim. Whitespace that
    crosses a line break collapses to a single space. `#ident` and `#(expr)`
    are evaluation sites and `##` is a literal sigil.
    """

    def __init__(
        self,
        receiver: str,
        span: Span,
        config: QuoteConfig = DEFAULT_CONFIG,
        depth: int = 0,
    ) -> None:
        self.receiver = receiver
        self.span = span
        self.config = config
        self.depth = depth
        self._segments: List[StringSegment] = []
        self._text: List[str] = []
        self._pos: Optional[int] = None
        self._source = ""

    def parse(self, stream: TokenStream) -> Tuple[bool, Tuple[StringSegment, ...]]:
        self._source = stream.source
        self._walk(stream, self.depth)
        self._flush()
        has_eval = any(isinstance(segment, EvalSegment) for segment in self._segments)
        return has_eval, tuple(self._segments)

    def _walk(self, stream: TokenStream, depth: int) -> None:
        while not stream.is_empty():
            tok = stream.peek()
            if stream.peek_punct(SIGIL):
                if stream.peek_punct(SIGIL, 1) and stream.adjacent():
                    self._gap(tok.span.start_pos)
                    stream.next()
                    second = stream.next()
                    self._text.append(SIGIL)
                    self._pos = second.span.end_pos
                    continue
                if stream.peek_punct("<", 1) and stream.adjacent():
                    raise stream.error("control directives are not allowed in string interpolation")
                if stream.peek_name("_", 1) and stream.peek_group(Delimiter.PARENTHESIS, 2):
                    raise stream.error("string interpolation blocks cannot be nested")
                if stream.peek_name(None, 1):
                    self._gap(tok.span.start_pos)
                    stream.next()
                    ident = stream.next()
                    self._eval(ident.text, Span.join(tok.span, ident.span))
                    self._pos = ident.span.end_pos
                    continue
                if stream.peek_group(Delimiter.PARENTHESIS, 1):
                    self._gap(tok.span.start_pos)
                    stream.next()
                    group = stream.next()
                    if not group.children:
                        raise stream.error("expected expression", group.span)
                    inner = stream.fork(group)
                    self._eval(inner.text_of(group.children), Span.join(tok.span, group.span))
                    self._pos = group.span.end_pos
                    continue
            stream.next()
            if isinstance(tok, Group):
                self._group(stream, tok, depth)
            else:
                self._leaf(tok)

    def _leaf(self, tok: Leaf) -> None:
        self._gap(tok.span.start_pos)
        self._text.append(tok.text)
        self._pos = tok.span.end_pos

    def _group(self, stream: TokenStream, group: Group, depth: int) -> None:
        if depth + 1 > self.config.max_depth:
            raise stream.error(
                f"template nesting exceeds the maximum depth of {self.config.max_depth}",
                group.span,
            )
        self._gap(group.span.start_pos)
        self._text.append(group.delimiter.open)
        self._pos = group.span.start_pos + 1
        self._walk(stream.fork(group), depth + 1)
        self._gap(group.span.end_pos - 1)
        self._text.append(group.delimiter.close)
        self._pos = group.span.end_pos

    def _gap(self, until: int) -> None:
        if self._pos is None:
            return
        between = self._source[self._pos:until]
        if "\n" in between:
            between = " "
        self._text.append(between)

    def _eval(self, source: str, span: Span) -> None:
        self._flush()
        self._segments.append(EvalSegment(Expression.compile(source, span, self.config)))

    def _flush(self) -> None:
        if self._text:
            text = "".join(self._text)
            self._text.clear()
            if text:
                self._segments.append(LiteralSegment(text))
