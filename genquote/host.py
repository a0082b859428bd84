"""
Host expression and pattern capability.

Template payloads (`#(expr)`, conditions, loop sources, match subjects,
patterns and guards) are written in Python's own syntax. They are compiled
once, when the template is parsed, with the interpreter's `compile()`, so a
malformed payload is a template syntax error located at the payload. At
render time expressions are evaluated with `eval()` and patterns run through
a compiled `match` statement; the engine never re-implements either.
"""

from __future__ import annotations

import builtins
import types
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .config import DEFAULT_CONFIG, QuoteConfig
from .errors import RenderError, TemplateSyntaxError
from .span import Span

_SUBJECT = "__subject__"
_MATCHER = "__genquote_match__"


def evaluation_scope(values: Mapping[str, object]) -> Dict[str, object]:
    scope: Dict[str, object] = {"__builtins__": builtins}
    scope.update(values)
    return scope


def _payload_error(exc: SyntaxError, what: str, source: str, span: Span, config: QuoteConfig) -> TemplateSyntaxError:
    detail = exc.msg or "invalid syntax"
    return TemplateSyntaxError(f"invalid {what} `{source.strip()}`: {detail}", span=span, filename=config.filename)


@dataclass(frozen=True)
class Expression:
    source: str
    span: Span
    code: types.CodeType = field(repr=False, compare=False)

    @classmethod
    def compile(cls, source: str, span: Span, config: QuoteConfig = DEFAULT_CONFIG) -> "Expression":
        if not source.strip():
            raise TemplateSyntaxError("expected expression", span=span, filename=config.filename)
        try:
            # Parenthesized so payloads may span lines like the template does.
            code = compile(f"(\n{source}\n)", config.filename, "eval")
        except SyntaxError as exc:
            raise _payload_error(exc, "expression", source, span, config) from exc
        return cls(source=source, span=span, code=code)

    def evaluate(self, scope: Dict[str, Any], filename: str = "<template>") -> Any:
        try:
            return eval(self.code, scope)
        except Exception as exc:
            raise RenderError(
                f"evaluating `{self.source.strip()}` failed: {exc}",
                span=self.span,
                filename=filename,
            ) from exc


@dataclass(frozen=True)
class Pattern:
    """
    A `match` pattern with an optional guard.

    Compiled into a small matcher function whose body is a single-case
    `match` statement. The function is re-bound to the live scope on every
    use so value patterns and guards see the current bindings.
    """

    source: str
    span: Span
    guard: Optional[str] = None
    code: types.CodeType = field(default=None, repr=False, compare=False)  # type: ignore[assignment]

    @classmethod
    def compile(
        cls,
        source: str,
        span: Span,
        guard: Optional[str] = None,
        config: QuoteConfig = DEFAULT_CONFIG,
    ) -> "Pattern":
        if not source.strip():
            raise TemplateSyntaxError("expected pattern", span=span, filename=config.filename)
        if guard is not None and not guard.strip():
            raise TemplateSyntaxError("expected guard expression after `if`", span=span, filename=config.filename)
        case = f"({source})"
        if guard is not None:
            case += f" if ({guard})"
        module_src = (
            f"def {_MATCHER}({_SUBJECT}):\n"
            f"    match {_SUBJECT}:\n"
            f"        case {case}:\n"
            f"            captured = dict(locals())\n"
            f"            del captured[{_SUBJECT!r}]\n"
            f"            return captured\n"
            f"    return None\n"
        )
        try:
            module_code = compile(module_src, config.filename, "exec")
        except SyntaxError as exc:
            what = "pattern" if guard is None else "pattern or guard"
            text = source if guard is None else f"{source} if {guard}"
            raise _payload_error(exc, what, text, span, config) from exc
        code = next(const for const in module_code.co_consts if isinstance(const, types.CodeType))
        return cls(source=source, span=span, guard=guard, code=code)

    def match(self, subject: Any, scope: Dict[str, Any], filename: str = "<template>") -> Optional[Dict[str, Any]]:
        """Return the captured names when `subject` matches, else None."""
        matcher = types.FunctionType(self.code, scope, _MATCHER)
        try:
            return matcher(subject)
        except Exception as exc:
            raise RenderError(
                f"matching `{self.source.strip()}` failed: {exc}",
                span=self.span,
                filename=filename,
            ) from exc


__all__ = ["Expression", "Pattern", "evaluation_scope"]
