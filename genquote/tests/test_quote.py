from __future__ import annotations

import pytest

from genquote import render
from genquote.config import QuoteConfig
from genquote.errors import TemplateSyntaxError
from genquote.template import Template


def test_arrow_condition() -> None:
    assert render('#(if True => "yes")') == "yes"
    assert render('#(if False => "yes")') == ""


def test_condition_with_else_branch() -> None:
    tmpl = Template("#(if flag { on } else { off })")
    assert tmpl.render(flag=True) == "on"
    assert tmpl.render(flag=False) == "off"


def test_loop_with_join_inside_braces() -> None:
    assert render('{ #(for i in range(0, 3) join (", ") => #i) }') == "{ 0, 1, 2 }"


def test_join_renders_between_items_only() -> None:
    tmpl = Template("#(for i in items join (|) => #i)")
    assert tmpl.render(items=[1, 2, 3]) == "1|2|3"
    assert tmpl.render(items=[1]) == "1"
    assert tmpl.render(items=[]) == ""


def test_join_spacing_ignores_its_parentheses() -> None:
    items = [("a", 1), ("b", 2)]
    assert render("#(for (k, v) in items join (, ) => #k = #v)", items=items) == "a = 1, b = 2"
    assert render("#(for (k, v) in items join (,) => #k)", items=items) == "a,b"
    assert render("#(for (k, v) in items join ( ) => #k)", items=items) == "a b"


def test_loop_brace_body() -> None:
    assert render("#(for x in xs { #x#<push> })", xs=[1, 2]) == "1\n2"


def test_identifier_splice() -> None:
    assert render("let x = #value;", value=42) == "let x = 42;"


def test_expression_and_literal_splices() -> None:
    assert render("#(1 + 2) #(name.upper())", name="abc") == "3 ABC"
    assert render('#("hello world")') == "hello world"


def test_escaped_sigil() -> None:
    assert render("##include <stdio.h>") == "#include <stdio.h>"
    assert render("a ## b") == "a # b"


def test_lone_sigil_is_verbatim() -> None:
    assert render("# 1") == "# 1"


def test_quoted_strings_render_their_contents() -> None:
    assert render('print("hi")') == "print(hi)"
    assert render('print(#_("hi"))') == 'print("hi")'


def test_single_quotes_pass_through_verbatim() -> None:
    assert render("char c = 'a';") == "char c = 'a';"
    assert render("fn f<'a>(x: &'a str) {}") == "fn f<'a>(x: &'a str) {}"
    assert render("// don't (stop) it's fine") == "// don't (stop) it's fine"
    assert render("#(if c == 'a' => yes)", c="a") == "yes"


def test_layout_decides_line_breaks() -> None:
    assert render("a\nb\n\nc\n\n\n\nd") == "a\nb\n\nc\n\nd"
    assert render("\n\nfoo bar") == "foo bar"


def test_braces_indent_their_lines() -> None:
    src = "fn main() {\n    body();\n}"
    assert render(src) == "fn main() {\n    body();\n}"
    assert render("{\n{\nx\n}\n}") == "{\n    {\n        x\n    }\n}"
    assert render("{ x }") == "{ x }"


def test_control_directives() -> None:
    assert render("a #<push> b") == "a\nb"
    assert render("a #<line> b") == "a\n\nb"
    assert render("a#<space>b") == "a b"
    assert render("x #<indent>#<push>y#<unindent>#<push>z") == "x\n    y\nz"


def test_match_dispatch() -> None:
    tmpl = Template('#(match kind { "int" => i32, "str" if wide => String, "str" => str, _ => unknown })')
    assert tmpl.render(kind="int", wide=False) == "i32"
    assert tmpl.render(kind="str", wide=True) == "String"
    assert tmpl.render(kind="str", wide=False) == "str"
    assert tmpl.render(kind="bool", wide=False) == "unknown"


def test_match_first_arm_wins_and_later_guards_never_run() -> None:
    calls = []

    def probe(value):
        calls.append(value)
        return True

    tmpl = Template("#(match n { 1 => one, x if probe(x) => other, })")
    assert tmpl.render(n=1, probe=probe) == "one"
    assert calls == []
    assert tmpl.render(n=2, probe=probe) == "other"
    assert calls == [2]


def test_match_brace_arms_and_captures() -> None:
    tmpl = Template("#(match point { (0, 0) => { origin } (x, y) => { at #x #y } })")
    assert tmpl.render(point=(0, 0)) == "origin"
    assert tmpl.render(point=(3, 4)) == "at 3 4"


def test_match_without_matching_arm_renders_nothing() -> None:
    assert render("a #(match n { 1 => one }) b", n=5) == "a b"


def test_scope_exposes_the_receiver() -> None:
    assert render('#(ref out { a #(out.append("b")) c })') == "a b c"
    assert render("#(ref _ => x)") == "x"


def test_default_receiver_name_is_bound() -> None:
    assert render('#(t.append("x"))') == "x"
    assert Template('#(out.append("y"))', receiver="out").render() == "y"


def test_template_is_reusable() -> None:
    tmpl = Template("hello #who")
    assert tmpl.render(who="a") == "hello a"
    assert tmpl.render(who="b") == "hello b"


def test_custom_indentation() -> None:
    tmpl = Template("{\nx\n}", config=QuoteConfig(indentation="\t"))
    assert tmpl.render() == "{\n\tx\n}"


@pytest.mark.parametrize(
    "src, fragment",
    [
        ("#(for x xs => #x)", "`in`"),
        ("#(if x)", "{"),
        ("#(match x)", "{"),
        ("#(ref => x)", "identifier"),
        ("#(1 +)", "invalid expression"),
        ("#(if True { a } junk)", "trailing"),
        ("#<bogus>", "unknown control directive"),
        ("#<push", "`>`"),
        ("#(for in xs => x)", "pattern"),
        ("#(match x { 1 2 => a })", "invalid pattern"),
        ("#(match x { => a })", "pattern"),
    ],
)
def test_grammar_errors(src: str, fragment: str) -> None:
    with pytest.raises(TemplateSyntaxError) as info:
        Template(src)
    assert fragment in info.value.message


def test_errors_point_at_the_offending_span() -> None:
    with pytest.raises(TemplateSyntaxError) as info:
        Template("ok\n  #<nope>")
    span = info.value.span
    assert (span.start.line, span.start.column) == (2, 5)
    assert str(info.value).startswith("<template>:2:5:")


def test_nesting_depth_is_bounded() -> None:
    config = QuoteConfig(max_depth=2)
    assert Template("((x))", config=config).render() == "((x))"
    with pytest.raises(TemplateSyntaxError):
        Template("(((x)))", config=config)


def test_delimiters_pair_in_stack_order() -> None:
    from genquote.routine import Append

    routine = Template("f([{x}], ())").routine
    texts = [i.text for i in routine.instructions if isinstance(i, Append) and i.text in "()[]{}"]
    assert texts == ["(", "[", "{", "}", "]", "(", ")", ")"]


def test_escape_never_starts_an_interpolation() -> None:
    assert render("##x ##(y)", x=1, y=2) == "#x #(y)"


def test_deep_nesting_is_rejected_before_parsing() -> None:
    with pytest.raises(TemplateSyntaxError):
        Template("(" * 3000 + ")" * 3000)
    with pytest.raises(TemplateSyntaxError):
        Template("#_(" + "(" * 3000 + ")" * 3000 + ")", config=QuoteConfig(max_depth=4))


def test_join_sees_the_previous_item_bindings() -> None:
    assert render("#(for x in xs join (<#x> ) => #x)", xs=[1, 2, 3]) == "1<1> 2<2> 3"


def test_loop_source_may_start_with_join() -> None:
    def upper(parts):
        return [p.upper() for p in parts]

    assert render("#(for x in join(xs) join (-) => #x)", join=upper, xs="ab") == "A-B"
