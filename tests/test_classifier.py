import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from codepreview.reader.classifier import Category, classify, render_markup

K, B, S, N, C, F, P = (
    Category.KEYWORD,
    Category.BUILTIN,
    Category.STRING,
    Category.NUMBER,
    Category.COMMENT,
    Category.FUNCTION,
    Category.PLAIN,
)


def _pairs(source, language, registry):
    return [(span.text, span.category) for span in classify(source, language, registry)]


@pytest.mark.parametrize(
    "source,language,expected",
    [
        ('print("Hello")', "python", [("print", B), ("(", P), ('"Hello"', S), (")", P)]),
        ("x = foo(1)", "python", [("x", P), (" = ", P), ("foo", F), ("(", P), ("1", N), (")", P)]),
        ("foo (1)", "python", [("foo", P), (" (", P), ("1", N), (")", P)]),
        ("if x:", "python", [("if", K), (" ", P), ("x", P), (":", P)]),
        ('# hi "x"\ny', "python", [('# hi "x"', C), ("\n", P), ("y", P)]),
        ('"# not a comment"', "python", [('"# not a comment"', S)]),
        ('f"{x}"', "python", [('f"{x}"', S)]),
        ("rb'x'", "python", [("rb'x'", S)]),
        ('xf"y"', "python", [("xf", P), ('"y"', S)]),
        ('"""doc "x" """', "python", [('"""doc "x" """', S)]),
        (r'"a\"b"', "python", [(r'"a\"b"', S)]),
        ("3.14 1.2.3", "python", [("3.14", N), (" ", P), ("1.2.3", N)]),
        ("x1 3abc", "python", [("x1", P), (" ", P), ("3", N), ("abc", P)]),
        (
            "/* a */ int x = 3.14;",
            "java",
            [("/* a */", C), (" ", P), ("int", K), (" ", P), ("x", P), (" = ", P), ("3.14", N), (";", P)],
        ),
        ("System.out.println(s); // done", "java",
         [("System", B), (".", P), ("out", P), (".", P), ("println", B), ("(", P), ("s", P), ("); ", P),
          ("// done", C)]),
        ("'a'", "java", [("'a'", S)]),
        ('<div class="x">', "html", [("<", P), ("div", K), (" ", P), ("class", P), ("=", P), ('"x"', S), (">", P)]),
    ],
)
def test_classify_basic(source, language, expected, registry):
    assert _pairs(source, language, registry) == expected


@pytest.mark.parametrize(
    "source,language,expected",
    [
        ('s = "abc', "python", [("s", P), (" = ", P), ('"abc', S)]),
        ("x /* open", "java", [("x", P), (" ", P), ("/* open", C)]),
        ("<!-- c", "html", [("<!-- c", C)]),
        ("'''never closed", "python", [("'''never closed", S)]),
        ('"ends with \\', "python", [('"ends with \\', S)]),
    ],
)
def test_malformed_input_runs_to_end(source, language, expected, registry):
    assert _pairs(source, language, registry) == expected


def test_unknown_language_still_classifies(registry):
    spans = _pairs("print(1) # x", "cobol", registry)
    # no builtins or comment markers: print is just a call site
    assert spans == [("print", F), ("(", P), ("1", N), (") # ", P), ("x", P)]


def test_empty_source(registry):
    assert classify("", "python", registry) == []


def test_offsets_are_contiguous(registry):
    source = 'name = input("Enter: ")\nprint(f"Hi {name}")  # greet\n'
    spans = classify(source, "python", registry)
    assert spans[0].start == 0
    assert spans[-1].end == len(source)
    for left, right in zip(spans, spans[1:]):
        assert left.end == right.start
    for span in spans:
        assert source[span.start:span.end] == span.text


def test_render_markup_escapes(registry):
    html = render_markup(classify('x < "a"', "python", registry))
    assert html == 'x &lt; <span class="string">"a"</span>'


def test_render_markup_preserves_text(registry):
    source = "def f():\n    return 1"
    html = render_markup(classify(source, "python", registry))
    assert '<span class="keyword">def</span>' in html
    assert '<span class="number">1</span>' in html


source_text = st.text(
    alphabet=st.sampled_from(list("abcxyz019_ .()[]{}#/*<>!-=+\"'\\\nfr\t")),
    max_size=80,
)


@settings(max_examples=200, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(source=source_text, language=st.sampled_from(["python", "java", "html", "unknown"]))
def test_spans_reproduce_source(source, language):
    spans = classify(source, language)
    assert "".join(span.text for span in spans) == source
    assert all(span.text for span in spans)
    position = 0
    for span in spans:
        assert span.start == position
        position = span.end
    assert position == len(source)


@settings(max_examples=100, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(source=source_text, language=st.sampled_from(["python", "java", "html"]))
def test_classification_is_deterministic(source, language):
    assert classify(source, language) == classify(source, language)
