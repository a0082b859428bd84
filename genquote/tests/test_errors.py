from __future__ import annotations

import pytest

from genquote import Template
from genquote.errors import Diagnostic, EncoderError, TemplateError, TemplateSyntaxError
from genquote.span import Position, Span


def test_diagnostic_renders_caret_under_span() -> None:
    source = "fn main() {\n    #<bogus>\n}"
    with pytest.raises(TemplateSyntaxError) as info:
        Template(source)
    diag = info.value.to_diagnostic()
    assert isinstance(diag, Diagnostic)
    lines = diag.render(source).splitlines()
    assert lines[0].startswith("<template>:2:7: error: unknown control directive")
    assert lines[1] == "        #<bogus>"
    assert lines[2] == "          " + "^" * 5


def test_filename_is_configurable() -> None:
    from genquote.config import QuoteConfig

    with pytest.raises(TemplateSyntaxError) as info:
        Template("#(1 +)", config=QuoteConfig(filename="gen/main.rs.tmpl"))
    assert str(info.value).startswith("gen/main.rs.tmpl:1:3:")


def test_syntax_errors_are_value_errors() -> None:
    err = TemplateSyntaxError("bad", span=Span(Position(1, 1), Position(1, 2)))
    assert isinstance(err, ValueError)
    assert isinstance(err, TemplateError)
    assert not issubclass(EncoderError, TemplateError)


def test_diagnostic_without_span() -> None:
    diag = Diagnostic(message="boom", notes=["see docs"])
    assert diag.render("src") == "<template>: error: boom\nnote: see docs"
