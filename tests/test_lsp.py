import pytest

from codepreview.reader.classifier import Category, ClassifiedSpan, classify
from codepreview_lsp.tokens import (
    describe,
    encode_semantic_tokens,
    offset_from_position,
    position_from_offset,
    span_at,
)


def test_encode_relative_tokens(registry):
    text = 'print("a")\n# c'
    data = encode_semantic_tokens(classify(text, "python", registry), text)
    assert data == [
        0, 0, 5, 1, 1,   # print: builtin function
        0, 6, 3, 2, 0,   # "a"
        1, 0, 3, 4, 0,   # # c
    ]


def test_multiline_comment_is_split_per_line(registry):
    text = "/* a\nb */ x"
    data = encode_semantic_tokens(classify(text, "java", registry), text)
    assert data == [0, 0, 4, 4, 0, 1, 0, 4, 4, 0]


def test_plain_text_has_no_tokens(registry):
    text = "x = y"
    assert encode_semantic_tokens(classify(text, "python", registry), text) == []


@pytest.mark.parametrize(
    "text,offset,expected",
    [
        ("ab\ncd", 0, (0, 0)),
        ("ab\ncd", 2, (0, 2)),
        ("ab\ncd", 4, (1, 1)),
        ("ab\n\ncd", 4, (2, 0)),
    ],
)
def test_position_round_trip(text, offset, expected):
    assert position_from_offset(text, offset) == expected
    assert offset_from_position(text, *expected) == offset


def test_offset_past_end_is_clamped():
    assert offset_from_position("ab", 5, 0) == 2
    assert offset_from_position("ab", 0, 10) == 2
    assert offset_from_position("ab\ncd", 0, 10) == 2


def test_columns_count_utf16_units(registry):
    text = '"\U0001F600" + "a"'
    data = encode_semantic_tokens(classify(text, "python", registry), text)
    assert data == [0, 0, 4, 2, 0, 0, 7, 3, 2, 0]
    assert position_from_offset(text, 6) == (0, 7)
    assert offset_from_position(text, 0, 7) == 6


def test_span_at_and_describe(registry):
    text = "def greet(): return len(x)"
    spans = classify(text, "python", registry)
    assert describe(span_at(spans, 1), "python") == "def: python keyword"
    assert describe(span_at(spans, 5), "python") == "greet(...): function call"
    assert describe(span_at(spans, text.index("len")), "python") == "len: python builtin"
    assert span_at(spans, len(text)) is None


def test_describe_ignores_literals():
    span = ClassifiedSpan('"s"', Category.STRING, 0, 3)
    assert describe(span, "python") is None


def test_server_features():
    server = pytest.importorskip("codepreview_lsp.server")
    from lsprotocol.types import (
        DidOpenTextDocumentParams,
        HoverParams,
        Position,
        SemanticTokensParams,
        TextDocumentIdentifier,
        TextDocumentItem,
    )

    uri = "file:///tmp/Main.java"
    server.did_open(DidOpenTextDocumentParams(
        text_document=TextDocumentItem(uri=uri, language_id="", version=1, text="int x = 1;"),
    ))
    try:
        assert server.ls.documents[uri].language_id == "java"
        tokens = server.on_semantic_tokens(SemanticTokensParams(text_document=TextDocumentIdentifier(uri=uri)))
        assert tokens.data[:5] == [0, 0, 3, 0, 0]
        hover = server.on_hover(HoverParams(
            text_document=TextDocumentIdentifier(uri=uri), position=Position(line=0, character=1),
        ))
        assert hover.contents.value == "int: java keyword"
    finally:
        server.ls.documents.pop(uri, None)


def test_server_language_for():
    server = pytest.importorskip("codepreview_lsp.server")
    assert server.language_for("file:///a/b/hello.py", None) == "python"
    assert server.language_for("file:///a/page.html", "HTML") == "html"
