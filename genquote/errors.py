"""
Error classes raised while parsing, compiling and rendering templates.

User-facing failures derive from `TemplateError` and carry the Span of the
offending template text. `EncoderError` is deliberately outside that
hierarchy: it signals a broken internal invariant, not a template mistake.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .span import Span


@dataclass
class Diagnostic:
    """A single located message, renderable against the template source."""

    message: str
    span: Span | None = None
    filename: str = "<template>"
    severity: str = "error"
    notes: list[str] = field(default_factory=list)

    def location(self) -> str:
        if self.span is None:
            return self.filename
        return f"{self.filename}:{self.span.start.line}:{self.span.start.column}"

    def render(self, source: str | None = None) -> str:
        out = [f"{self.location()}: {self.severity}: {self.message}"]
        if source is not None and self.span is not None:
            lines = source.splitlines()
            line_no = self.span.start.line
            if 1 <= line_no <= len(lines):
                text = lines[line_no - 1]
                out.append(f"    {text}")
                width = 1
                if self.span.end.line == line_no:
                    width = max(self.span.end.column - self.span.start.column, 1)
                out.append("    " + " " * (self.span.start.column - 1) + "^" * width)
        for note in self.notes:
            out.append(f"note: {note}")
        return "\n".join(out)


class TemplateError(Exception):
    def __init__(self, message: str, *, span: Span | None = None, filename: str = "<template>") -> None:
        super().__init__(message)
        self.message = message
        self.span = span
        self.filename = filename

    def to_diagnostic(self) -> Diagnostic:
        return Diagnostic(message=self.message, span=self.span, filename=self.filename)

    def __str__(self) -> str:
        return f"{self.to_diagnostic().location()}: {self.message}"


class TemplateSyntaxError(TemplateError, ValueError):
    """Malformed template grammar, reported at the offending span."""


class RenderError(TemplateError, RuntimeError):
    """A template payload failed while a compiled routine was running."""


class EncoderError(AssertionError):
    """Internal structural inconsistency detected by the encoder."""


__all__ = [
    "Diagnostic",
    "EncoderError",
    "RenderError",
    "TemplateError",
    "TemplateSyntaxError",
]
