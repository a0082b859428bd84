from __future__ import annotations

import logging
from typing import List, Optional

from .ast import (
    AstNode,
    Condition,
    Control,
    ControlNode,
    DelimiterClose,
    DelimiterOpen,
    Element,
    Eval,
    EvalIdent,
    Literal,
    LiteralSegment,
    Loop,
    Match,
    Quoted,
    Scope,
    StringInterp,
    Tree,
)
from .errors import EncoderError
from .lexer import Delimiter
from .routine import (
    Append,
    Branch,
    Dispatch,
    Indent,
    Instruction,
    Interpolate,
    Iterate,
    Line,
    Push,
    Rebind,
    Routine,
    Space,
    Splice,
    SpliceName,
    Unindent,
)
from .span import Cursor, Position, Span

logger = logging.getLogger(__name__)

_CONTROL_INSTRUCTIONS = {
    Control.SPACE: Space,
    Control.PUSH: Push,
    Control.LINE: Line,
    Control.INDENT: Indent,
    Control.UNINDENT: Unindent,
}


class Encoder:
    """
    Accumulates parsed elements and lowers them into a `Routine`.

    Spacing between two consecutive elements is decided from their cursors
    alone: touching on one line means no whitespace, a gap on one line is a
    space, the next line is a push and anything further is a single blank
    line. `span_start` / `span_end` stand in for a previous / following
    element when a sub-program is parsed out of a larger region.
    """

    def __init__(
        self,
        receiver: str,
        span_start: Optional[Position] = None,
        span_end: Optional[Position] = None,
        filename: str = "<template>",
    ) -> None:
        self.receiver = receiver
        self.span_start = span_start
        self.span_end = span_end
        self.filename = filename
        self.program: List[Element] = []
        self._instructions: List[Instruction] = []
        self._last: Optional[Position] = None
        self._delimiters: List[Delimiter] = []

    def encode(self, span: Span, cursor: Cursor, node: AstNode) -> None:
        previous = self._last if self._last is not None else self.span_start
        if previous is not None:
            self._spacing(previous, cursor.start)
        self._last = cursor.end
        self.program.append(Element(span, cursor, node))
        self._lower(span, node)

    def finalize(self) -> Routine:
        if self.span_end is not None:
            previous = self._last if self._last is not None else self.span_start
            if previous is not None:
                self._spacing(previous, self.span_end)
        if self._delimiters:
            raise EncoderError(f"unclosed delimiter {self._delimiters[-1].open!r} at end of program")
        logger.debug("finalized routine for %s: %d instructions", self.receiver, len(self._instructions))
        return Routine(self.receiver, tuple(self._instructions), self.filename)

    def _spacing(self, last: Position, next_: Position) -> None:
        if next_.line == last.line:
            if next_.column > last.column:
                self._instructions.append(Space())
        elif next_.line == last.line + 1:
            self._instructions.append(Push())
        elif next_.line > last.line:
            self._instructions.append(Line())

    def _lower(self, span: Span, node: AstNode) -> None:
        emit = self._instructions.append
        if isinstance(node, Tree):
            emit(Append(node.token.text))
        elif isinstance(node, Quoted):
            emit(Append(node.text))
        elif isinstance(node, Literal):
            emit(Append(node.string))
        elif isinstance(node, DelimiterOpen):
            self._delimiters.append(node.delimiter)
            emit(Append(node.delimiter.open))
            if node.delimiter is Delimiter.BRACE:
                emit(Indent())
        elif isinstance(node, DelimiterClose):
            if not self._delimiters:
                raise EncoderError(f"closing {node.delimiter.close!r} without an open delimiter")
            opened = self._delimiters.pop()
            if opened is not node.delimiter:
                raise EncoderError(
                    f"closing {node.delimiter.close!r} does not match open {opened.open!r}"
                )
            if node.delimiter is Delimiter.BRACE:
                emit(Unindent())
            emit(Append(node.delimiter.close))
        elif isinstance(node, EvalIdent):
            emit(SpliceName(node.name, span))
        elif isinstance(node, Eval):
            emit(Splice(node.expr))
        elif isinstance(node, StringInterp):
            if node.has_eval:
                emit(Interpolate(node.segments))
            else:
                text = "".join(s.text for s in node.segments if isinstance(s, LiteralSegment))
                emit(Append(text))
        elif isinstance(node, ControlNode):
            emit(_CONTROL_INSTRUCTIONS[node.directive]())
        elif isinstance(node, Condition):
            emit(Branch(node.condition, node.then_branch, node.else_branch))
        elif isinstance(node, Loop):
            emit(Iterate(node.pattern, node.expr, node.body, node.join))
        elif isinstance(node, Match):
            emit(Dispatch(node.subject, tuple((arm.pattern, arm.body) for arm in node.arms)))
        elif isinstance(node, Scope):
            emit(Rebind(node.binding, node.body))
        else:
            raise EncoderError(f"unsupported node {node!r}")
