"""
Recursive-descent template parser.

A `Quote` walks one token region and feeds every recognized construct to an
`Encoder` as a (span, cursor, node) triple, in source order. Control
constructs (`if`, `for`, `match`, `ref`) parse their bodies with fresh
`Quote` instances, so each body becomes its own compiled `Routine`.

Recognition order at each position (first match wins):

1. `##`                  -> a literal `#`
2. `#_( ... )`           -> string interpolation
3. `#<directive>`        -> control directive
4. `#ident`              -> identifier splice
5. `#( ... )`            -> keyword dispatch, literal or expression splice
6. `"string"`            -> quoted text
7. `(..)`, `{..}`, `[..]` -> delimiter group, parsed recursively
8. anything else         -> verbatim token
"""

from __future__ import annotations

import ast
import logging
from dataclasses import dataclass, replace
from typing import List, Optional

from .ast import (
    AstNode,
    Condition,
    Control,
    ControlNode,
    DelimiterClose,
    DelimiterOpen,
    Eval,
    EvalIdent,
    Literal,
    Loop,
    Match,
    MatchArm,
    Quoted,
    Scope,
    StringInterp,
    Tree,
)
from .config import DEFAULT_CONFIG, QuoteConfig
from .encoder import Encoder
from .host import Expression, Pattern
from .lexer import Delimiter, Group, Leaf, TokenStream, TokenTree
from .routine import Routine
from .span import Cursor, Position, Span
from .string_parser import StringParser

logger = logging.getLogger(__name__)

SIGIL = "#"


def _decode_string(stream: TokenStream, token: Leaf) -> str:
    try:
        return ast.literal_eval(token.text)
    except (ValueError, SyntaxError) as exc:
        raise stream.error(f"invalid string literal {token.text}: {exc}", token.span) from exc


def _stop_at_arrow_or_brace(stream: TokenStream, collected: List[TokenTree]) -> bool:
    return stream.peek_arrow() or stream.peek_group(Delimiter.BRACE)


def _stop_at_in(stream: TokenStream, collected: List[TokenTree]) -> bool:
    return stream.peek_name("in")


def _stop_at_loop_body(stream: TokenStream, collected: List[TokenTree]) -> bool:
    if _stop_at_arrow_or_brace(stream, collected):
        return True
    # `join (...)` ends the source expression unless it opens it or is a
    # method call.
    if collected and stream.peek_name("join") and stream.peek_group(Delimiter.PARENTHESIS, 1):
        prev = collected[-1]
        return not (isinstance(prev, Leaf) and prev.kind == "PUNCT" and prev.text == ".")
    return False


def _stop_at_final_brace(stream: TokenStream, collected: List[TokenTree]) -> bool:
    return stream.peek_group(Delimiter.BRACE) and len(stream) == 1


def _stop_at_guard_or_arrow(stream: TokenStream, collected: List[TokenTree]) -> bool:
    return stream.peek_name("if") or stream.peek_arrow()


def _stop_at_arrow(stream: TokenStream, collected: List[TokenTree]) -> bool:
    return stream.peek_arrow()


def _region(tokens: List[TokenTree], fallback: Span) -> Span:
    if not tokens:
        return fallback
    return Span.join(tokens[0].span, tokens[-1].span)


@dataclass(frozen=True)
class Quote:
    receiver: str
    config: QuoteConfig = DEFAULT_CONFIG
    # Overrides for where the region starts and ends, used when a body is
    # parsed out of delimiters that should not count for spacing.
    span_start: Optional[Position] = None
    span_end: Optional[Position] = None
    # Stop at the first top-level comma (single-line match arm bodies).
    until_comma: bool = False
    depth: int = 0

    def with_span(self, span: Span) -> "Quote":
        """Treat the interior of `span` (minus one column each side) as the region."""
        return replace(
            self,
            span_start=Position(span.start.line, span.start.column + 1),
            span_end=Position(span.end.line, max(span.end.column - 1, 1)),
        )

    def nested(self, *, until_comma: bool = False) -> "Quote":
        return Quote(self.receiver, self.config, until_comma=until_comma, depth=self.depth + 1)

    def parse(self, stream: TokenStream) -> Routine:
        if self.depth > self.config.max_depth:
            raise stream.error(
                f"template nesting exceeds the maximum depth of {self.config.max_depth}",
                stream.span,
            )
        encoder = Encoder(self.receiver, self.span_start, self.span_end, self.config.filename)
        self._parse_inner(encoder, stream)
        return encoder.finalize()

    def _parse_inner(self, encoder: Encoder, stream: TokenStream) -> None:
        while not stream.is_empty():
            if self.until_comma and stream.peek_punct(","):
                break

            tok = stream.peek()

            if stream.peek_punct(SIGIL):
                if stream.peek_punct(SIGIL, 1) and stream.adjacent():
                    self._parse_escape(encoder, stream)
                    continue
                if stream.peek_name("_", 1) and stream.peek_group(Delimiter.PARENTHESIS, 2):
                    self._parse_string(encoder, stream)
                    continue
                if stream.peek_punct("<", 1) and stream.adjacent():
                    self._parse_control(encoder, stream)
                    continue
                if stream.peek_name(None, 1) or stream.peek_group(Delimiter.PARENTHESIS, 1):
                    self._parse_expression(encoder, stream)
                    continue

            if isinstance(tok, Group):
                stream.next()
                self._parse_group(encoder, stream.fork(tok), tok)
                continue

            stream.next()
            if tok.kind == "STRING":
                encoder.encode(tok.span, Cursor.from_span(tok.span), Quoted(_decode_string(stream, tok)))
            else:
                encoder.encode(tok.span, Cursor.from_span(tok.span), Tree(tok))

    def _parse_escape(self, encoder: Encoder, stream: TokenStream) -> None:
        first = stream.next()
        second = stream.next()
        span = Span.join(first.span, second.span)
        sigil = Leaf(kind="PUNCT", text=SIGIL, span=second.span)
        encoder.encode(span, Cursor.join(first.span, second.span), Tree(sigil))

    def _parse_string(self, encoder: Encoder, stream: TokenStream) -> None:
        start = stream.next()
        stream.next()
        group = stream.next()
        parser = StringParser(self.receiver, group.span, self.config, depth=self.depth + 1)
        has_eval, segments = parser.parse(stream.fork(group))
        encoder.encode(
            group.span,
            Cursor.join(start.span, group.span),
            StringInterp(has_eval=has_eval, segments=segments),
        )

    def _parse_control(self, encoder: Encoder, stream: TokenStream) -> None:
        start = stream.next()
        lt = stream.next()
        name = stream.expect_name()
        directive = Control.lookup(name.text)
        if directive is None:
            known = ", ".join(member.value for member in Control)
            raise stream.error(f"unknown control directive `{name.text}` (expected one of: {known})", name.span)
        gt = stream.expect_punct(">")
        encoder.encode(
            Span.join(start.span, lt.span),
            Cursor.join(start.span, gt.span),
            ControlNode(directive),
        )

    def _parse_expression(self, encoder: Encoder, stream: TokenStream) -> None:
        start = stream.next()

        if not stream.peek_group(Delimiter.PARENTHESIS):
            ident = stream.expect_name()
            span = Span.join(start.span, ident.span)
            encoder.encode(span, Cursor.join(start.span, ident.span), EvalIdent(ident.text))
            return

        group = stream.next()
        scope = stream.fork(group)
        span = Span.join(start.span, group.span)

        node: AstNode
        if scope.peek_name("if"):
            node = self._parse_condition(scope)
        elif scope.peek_name("for"):
            node = self._parse_loop(scope)
        elif scope.peek_name("match"):
            node = self._parse_match(scope)
        elif scope.peek_name("ref"):
            node = self._parse_scope(scope)
        elif scope.peek_kind("STRING") and len(scope) == 1:
            node = Literal(_decode_string(scope, scope.next()))
        else:
            node = Eval(self._expression(scope, scope.take_until(lambda s, c: False)))
        scope.expect_end()

        encoder.encode(span, Cursor.join(start.span, group.span), node)

    def _parse_group(self, encoder: Encoder, inner: TokenStream, group: Group) -> None:
        if self.depth + 1 > self.config.max_depth:
            raise inner.error(
                f"template nesting exceeds the maximum depth of {self.config.max_depth}",
                group.span,
            )
        cursor = Cursor.from_span(group.span)
        encoder.encode(group.span, cursor.first_character(), DelimiterOpen(group.delimiter))
        replace(self, until_comma=False, depth=self.depth + 1)._parse_inner(encoder, inner)
        encoder.encode(group.span, cursor.last_character(), DelimiterClose(group.delimiter))

    def _parse_condition(self, scope: TokenStream) -> Condition:
        scope.expect_name("if")
        condition = self._expression(scope, scope.take_until(_stop_at_arrow_or_brace))

        if scope.peek_arrow():
            scope.expect_arrow()
            then_branch = self.nested().parse(scope)
            return Condition(condition, then_branch, None)

        body = scope.expect_group(Delimiter.BRACE)
        then_branch = self.nested().parse(scope.fork(body))

        else_branch = None
        if scope.peek_name("else"):
            scope.next()
            body = scope.expect_group(Delimiter.BRACE)
            else_branch = self.nested().parse(scope.fork(body))

        return Condition(condition, then_branch, else_branch)

    def _parse_loop(self, scope: TokenStream) -> Loop:
        scope.expect_name("for")
        pattern_tokens = scope.take_until(_stop_at_in)
        pattern_span = _region(pattern_tokens, scope.current_span())
        scope.expect_name("in")
        pattern = Pattern.compile(
            scope.text_of(pattern_tokens) if pattern_tokens else "",
            pattern_span,
            config=self.config,
        )
        expr = self._expression(scope, scope.take_until(_stop_at_loop_body))

        join = None
        if scope.peek_name("join"):
            scope.next()
            paren = scope.expect_group(Delimiter.PARENTHESIS)
            join = self.nested().with_span(paren.span).parse(scope.fork(paren))

        if scope.peek_arrow():
            scope.expect_arrow()
            body = self.nested().parse(scope)
        else:
            group = scope.expect_group(Delimiter.BRACE)
            body = self.nested().parse(scope.fork(group))

        return Loop(pattern=pattern, join=join, expr=expr, body=body)

    def _parse_match(self, scope: TokenStream) -> Match:
        scope.expect_name("match")
        subject = self._expression(scope, scope.take_until(_stop_at_final_brace))
        block = scope.expect_group(Delimiter.BRACE)
        body = scope.fork(block)

        arms: List[MatchArm] = []
        while not body.is_empty():
            pattern_tokens = body.take_until(_stop_at_guard_or_arrow)
            pattern_span = _region(pattern_tokens, body.current_span())
            guard = None
            if body.peek_name("if"):
                body.next()
                guard_tokens = body.take_until(_stop_at_arrow)
                guard = body.text_of(guard_tokens) if guard_tokens else ""
                pattern_span = _region(pattern_tokens + guard_tokens, pattern_span)
            pattern = Pattern.compile(
                body.text_of(pattern_tokens) if pattern_tokens else "",
                pattern_span,
                guard=guard,
                config=self.config,
            )
            body.expect_arrow()

            if body.peek_group(Delimiter.BRACE):
                group = body.next()
                routine = self.nested().parse(body.fork(group))
            else:
                routine = self.nested(until_comma=True).parse(body)

            arms.append(MatchArm(pattern=pattern, body=routine, guard=guard))

            if body.peek_punct(","):
                body.next()

        return Match(subject=subject, arms=tuple(arms))

    def _parse_scope(self, scope: TokenStream) -> Scope:
        scope.expect_name("ref")

        binding = None
        if scope.peek_name("_"):
            scope.next()
        else:
            binding = scope.expect_name().text

        if scope.peek_group(Delimiter.BRACE):
            group = scope.next()
            body = self.nested().parse(scope.fork(group))
        else:
            scope.expect_arrow()
            body = self.nested().parse(scope)

        return Scope(binding=binding, body=body)

    def _expression(self, scope: TokenStream, tokens: List[TokenTree]) -> Expression:
        if not tokens:
            raise scope.error("expected expression")
        return Expression.compile(scope.text_of(tokens), _region(tokens, scope.span), self.config)


def parse_template(source: str, receiver: str = "t", config: QuoteConfig = DEFAULT_CONFIG) -> Routine:
    """Parse template text end-to-end into a reusable `Routine`."""
    stream = TokenStream.from_source(source, config)
    routine = Quote(receiver, config).parse(stream)
    logger.debug("parsed %s into %d instructions", config.filename, len(routine))
    return routine


__all__ = ["Quote", "parse_template"]
