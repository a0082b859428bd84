from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Optional, Tuple, Union

from .lexer import Delimiter, Leaf
from .span import Cursor, Span

if TYPE_CHECKING:  # pragma: no cover
    from .host import Expression, Pattern
    from .routine import Routine


class Control(Enum):
    """Closed set of `#<directive>` names."""

    SPACE = "space"
    PUSH = "push"
    LINE = "line"
    INDENT = "indent"
    UNINDENT = "unindent"

    @classmethod
    def lookup(cls, name: str) -> Optional["Control"]:
        for member in cls:
            if member.value == name:
                return member
        return None


@dataclass(frozen=True)
class LiteralSegment:
    text: str


@dataclass(frozen=True)
class EvalSegment:
    expr: "Expression"


StringSegment = Union[LiteralSegment, EvalSegment]


@dataclass(frozen=True)
class Tree:
    token: Leaf


@dataclass(frozen=True)
class DelimiterOpen:
    delimiter: Delimiter


@dataclass(frozen=True)
class DelimiterClose:
    delimiter: Delimiter


@dataclass(frozen=True)
class Quoted:
    text: str


@dataclass(frozen=True)
class Literal:
    string: str


@dataclass(frozen=True)
class EvalIdent:
    name: str


@dataclass(frozen=True)
class Eval:
    expr: "Expression"


@dataclass(frozen=True)
class StringInterp:
    has_eval: bool
    segments: Tuple[StringSegment, ...]


@dataclass(frozen=True)
class ControlNode:
    directive: Control


@dataclass(frozen=True)
class Condition:
    condition: "Expression"
    then_branch: "Routine"
    else_branch: Optional["Routine"] = None


@dataclass(frozen=True)
class Loop:
    pattern: "Pattern"
    join: Optional["Routine"]
    expr: "Expression"
    body: "Routine"


@dataclass(frozen=True)
class MatchArm:
    """
    One `pattern [if guard] => body` case.

    The guard is compiled into `pattern` so a single host `match` decides
    both; `guard` keeps the source text for diagnostics.
    """

    pattern: "Pattern"
    body: "Routine"
    guard: Optional[str] = None


@dataclass(frozen=True)
class Match:
    subject: "Expression"
    arms: Tuple[MatchArm, ...]


@dataclass(frozen=True)
class Scope:
    binding: Optional[str]
    body: "Routine"


AstNode = Union[
    Tree,
    DelimiterOpen,
    DelimiterClose,
    Quoted,
    Literal,
    EvalIdent,
    Eval,
    StringInterp,
    ControlNode,
    Condition,
    Loop,
    Match,
    Scope,
]


@dataclass(frozen=True)
class Element:
    """One encoded program entry: original span, spacing cursor, node."""

    span: Span
    cursor: Cursor
    node: AstNode
