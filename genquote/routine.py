"""
Compiled builder routines.

The encoder lowers a parsed program into a flat tuple of instructions. A
`Routine` executes them against a receiver (see `genquote.output.Tokens`) and
a binding `Environment`. Control constructs carry their bodies as nested
routines, so the interpreter below is a straight walk with no jumps.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from .ast import EvalSegment, LiteralSegment, StringSegment
from .errors import RenderError
from .host import Expression, Pattern, evaluation_scope
from .span import Span


class Environment:
    def __init__(self, parent: Environment | None = None) -> None:
        self.parent = parent
        self.values: Dict[str, object] = {}

    def define(self, name: str, value: object) -> None:
        self.values[name] = value

    def get(self, name: str) -> object:
        if name in self.values:
            return self.values[name]
        if self.parent:
            return self.parent.get(name)
        raise KeyError(name)

    def child(self, values: Mapping[str, object] | None = None) -> "Environment":
        env = Environment(parent=self)
        if values:
            env.values.update(values)
        return env

    def flatten(self) -> Dict[str, object]:
        """All visible bindings, inner scopes shadowing outer ones."""
        merged = self.parent.flatten() if self.parent else {}
        merged.update(self.values)
        return merged

    def scope(self) -> Dict[str, Any]:
        return evaluation_scope(self.flatten())


@dataclass(frozen=True)
class Append:
    text: str


@dataclass(frozen=True)
class Space:
    pass


@dataclass(frozen=True)
class Push:
    pass


@dataclass(frozen=True)
class Line:
    pass


@dataclass(frozen=True)
class Indent:
    pass


@dataclass(frozen=True)
class Unindent:
    pass


@dataclass(frozen=True)
class SpliceName:
    name: str
    span: Span


@dataclass(frozen=True)
class Splice:
    expr: Expression


@dataclass(frozen=True)
class Interpolate:
    segments: Tuple[StringSegment, ...]


@dataclass(frozen=True)
class Branch:
    condition: Expression
    then_branch: "Routine"
    else_branch: Optional["Routine"] = None


@dataclass(frozen=True)
class Iterate:
    pattern: Pattern
    source: Expression
    body: "Routine"
    join: Optional["Routine"] = None


@dataclass(frozen=True)
class Dispatch:
    subject: Expression
    arms: Tuple[Tuple[Pattern, "Routine"], ...]


@dataclass(frozen=True)
class Rebind:
    binding: Optional[str]
    body: "Routine"


Instruction = Union[
    Append,
    Space,
    Push,
    Line,
    Indent,
    Unindent,
    SpliceName,
    Splice,
    Interpolate,
    Branch,
    Iterate,
    Dispatch,
    Rebind,
]


@dataclass(frozen=True)
class Routine:
    receiver: str
    instructions: Tuple[Instruction, ...]
    filename: str = "<template>"

    def __len__(self) -> int:
        return len(self.instructions)

    def run(self, tokens: Any, bindings: Mapping[str, object] | None = None) -> Any:
        """Populate `tokens` using `bindings`; returns the receiver."""
        env = Environment()
        for name, value in (bindings or {}).items():
            env.define(name, value)
        env.define(self.receiver, tokens)
        self.execute(tokens, env)
        return tokens

    def execute(self, tokens: Any, env: Environment) -> None:
        for instr in self.instructions:
            self._exec(instr, tokens, env)

    def _exec(self, instr: Instruction, tokens: Any, env: Environment) -> None:
        if isinstance(instr, Append):
            tokens.append(instr.text)
            return
        if isinstance(instr, Space):
            tokens.space()
            return
        if isinstance(instr, Push):
            tokens.push()
            return
        if isinstance(instr, Line):
            tokens.line()
            return
        if isinstance(instr, Indent):
            tokens.indent()
            return
        if isinstance(instr, Unindent):
            tokens.unindent()
            return
        if isinstance(instr, SpliceName):
            tokens.append(self._lookup(instr, env))
            return
        if isinstance(instr, Splice):
            tokens.append(instr.expr.evaluate(env.scope(), self.filename))
            return
        if isinstance(instr, Interpolate):
            tokens.append(self._interpolate(instr.segments, env))
            return
        if isinstance(instr, Branch):
            if instr.condition.evaluate(env.scope(), self.filename):
                instr.then_branch.execute(tokens, env)
            elif instr.else_branch is not None:
                instr.else_branch.execute(tokens, env)
            return
        if isinstance(instr, Iterate):
            self._iterate(instr, tokens, env)
            return
        if isinstance(instr, Dispatch):
            subject = instr.subject.evaluate(env.scope(), self.filename)
            for pattern, body in instr.arms:
                captured = pattern.match(subject, env.scope(), self.filename)
                if captured is not None:
                    body.execute(tokens, env.child(captured))
                    break
            return
        if isinstance(instr, Rebind):
            inner = env.child()
            if instr.binding is not None:
                inner.define(instr.binding, tokens)
            instr.body.execute(tokens, inner)
            return
        raise RuntimeError(f"Unsupported instruction {instr}")

    def _lookup(self, instr: SpliceName, env: Environment) -> object:
        try:
            return env.get(instr.name)
        except KeyError:
            raise RenderError(
                f"unknown identifier '{instr.name}'", span=instr.span, filename=self.filename
            ) from None

    def _interpolate(self, segments: Tuple[StringSegment, ...], env: Environment) -> str:
        out = []
        for segment in segments:
            if isinstance(segment, LiteralSegment):
                out.append(segment.text)
            elif isinstance(segment, EvalSegment):
                value = segment.expr.evaluate(env.scope(), self.filename)
                if value is not None:
                    out.append(str(value))
        return "".join(out)

    def _iterate(self, instr: Iterate, tokens: Any, env: Environment) -> None:
        items = instr.source.evaluate(env.scope(), self.filename)
        try:
            iterator = iter(items)
        except TypeError:
            raise RenderError(
                f"`{instr.source.source.strip()}` is not iterable",
                span=instr.source.span,
                filename=self.filename,
            ) from None
        previous: Optional[Environment] = None
        for item in iterator:
            captured = instr.pattern.match(item, env.scope(), self.filename)
            if captured is None:
                raise RenderError(
                    f"loop item {item!r} does not match `{instr.pattern.source.strip()}`",
                    span=instr.pattern.span,
                    filename=self.filename,
                )
            # The join belongs to the item before it and sees its bindings.
            if previous is not None and instr.join is not None:
                instr.join.execute(tokens, previous)
            previous = env.child(captured)
            instr.body.execute(tokens, previous)


__all__ = [
    "Append",
    "Branch",
    "Dispatch",
    "Environment",
    "Indent",
    "Instruction",
    "Interpolate",
    "Iterate",
    "Line",
    "Push",
    "Rebind",
    "Routine",
    "Space",
    "Splice",
    "SpliceName",
    "Unindent",
]
