from __future__ import annotations

import pytest

from genquote.errors import RenderError
from genquote.output import Tokens
from genquote.routine import Environment, Routine
from genquote.template import Template, quote


def test_environment_scopes_shadow_and_flatten() -> None:
    root = Environment()
    root.define("a", 1)
    root.define("b", 2)
    child = root.child({"b": 3})
    assert child.get("a") == 1
    assert child.get("b") == 3
    assert child.flatten() == {"a": 1, "b": 3}
    with pytest.raises(KeyError):
        child.get("missing")


def test_run_binds_receiver_and_returns_it() -> None:
    tokens = Tokens()
    routine = Template("a #b").routine
    assert isinstance(routine, Routine)
    assert routine.run(tokens, {"b": "c"}) is tokens
    assert tokens.to_string() == "a c"


def test_populate_appends_to_existing_output() -> None:
    tokens = Tokens()
    tokens.append("first")
    tokens.push()
    Template("second #n").populate(tokens, n=2)
    assert tokens.to_string() == "first\nsecond 2"


def test_spliced_values() -> None:
    inner = quote("x + y")

    class Name:
        def into_tokens(self, tokens: Tokens) -> None:
            tokens.append("custom")

    assert quote("#v", v=inner).to_string() == "x + y"
    assert quote("a #v b", v=None).to_string() == "a b"
    assert quote("#v", v=Name()).to_string() == "custom"
    assert quote("#v", v=[quote("p"), quote("q")]).to_string() == "pq"


def test_loop_bindings_do_not_leak() -> None:
    tmpl = Template("#(for x in xs => #x) #x")
    assert tmpl.render(xs=[1, 2], x="outer") == "12 outer"


def test_unknown_identifier_is_a_render_error() -> None:
    with pytest.raises(RenderError) as info:
        Template("ok\n#missing").render()
    assert info.value.span.start.line == 2
    assert "missing" in info.value.message


def test_failed_expression_keeps_its_cause() -> None:
    with pytest.raises(RenderError) as info:
        Template("#(1 / 0)").render()
    assert isinstance(info.value.__cause__, ZeroDivisionError)


def test_loop_item_must_match_pattern() -> None:
    with pytest.raises(RenderError) as info:
        Template("#(for (a, b) in items => #a)").render(items=[1])
    assert "does not match" in info.value.message


def test_loop_source_must_be_iterable() -> None:
    with pytest.raises(RenderError):
        Template("#(for a in n => #a)").render(n=3)
