"""
Semantic token encoding for classified spans.

LSP wants tokens as a flat list of integers, five per token:

    deltaLine, deltaStartChar, length, tokenType, tokenModifiers

relative to the previous token. Tokens may not span lines, so multi-line
strings and block comments are cut at every newline. Plain spans are not
reported at all.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Tuple

from codepreview.reader.classifier import Category, ClassifiedSpan

TOKEN_TYPES: List[str] = ["keyword", "function", "string", "number", "comment"]
TOKEN_MODIFIERS: List[str] = ["defaultLibrary"]

# category -> (token type index, modifier bitset)
CATEGORY_TOKENS: Dict[Category, Tuple[int, int]] = {
    Category.KEYWORD: (TOKEN_TYPES.index("keyword"), 0),
    Category.FUNCTION: (TOKEN_TYPES.index("function"), 0),
    Category.BUILTIN: (TOKEN_TYPES.index("function"), 1 << TOKEN_MODIFIERS.index("defaultLibrary")),
    Category.STRING: (TOKEN_TYPES.index("string"), 0),
    Category.NUMBER: (TOKEN_TYPES.index("number"), 0),
    Category.COMMENT: (TOKEN_TYPES.index("comment"), 0),
}


def utf16_len(text: str) -> int:
    """Length of `text` in UTF-16 code units, the unit LSP columns count in."""
    return len(text.encode("utf-16-le")) // 2


def position_from_offset(text: str, offset: int) -> Tuple[int, int]:
    # Return (line, col), 0-based; col in UTF-16 code units
    line = text.count("\n", 0, offset)
    line_start = text.rfind("\n", 0, offset) + 1
    return line, utf16_len(text[line_start:offset])


def offset_from_position(text: str, line: int, col: int) -> int:
    offset = 0
    for _ in range(line):
        nl = text.find("\n", offset)
        if nl == -1:
            return len(text)
        offset = nl + 1
    line_end = text.find("\n", offset)
    if line_end == -1:
        line_end = len(text)
    units = 0
    while offset < line_end and units < col:
        units += 2 if ord(text[offset]) > 0xFFFF else 1
        offset += 1
    return offset


def _pieces(span: ClassifiedSpan, text: str):
    """Yield (line, col, length) for each single-line piece of a span."""
    line, col = position_from_offset(text, span.start)
    for i, chunk in enumerate(span.text.split("\n")):
        if chunk:
            yield line + i, (col if i == 0 else 0), utf16_len(chunk)


def encode_semantic_tokens(spans: List[ClassifiedSpan], text: str) -> List[int]:
    data: List[int] = []
    prev_line = 0
    prev_col = 0
    for span in spans:
        token = CATEGORY_TOKENS.get(span.category)
        if token is None:
            continue
        token_type, modifiers = token
        for line, col, length in _pieces(span, text):
            delta_line = line - prev_line
            delta_col = col - prev_col if delta_line == 0 else col
            data.extend([delta_line, delta_col, length, token_type, modifiers])
            prev_line, prev_col = line, col
    return data


def span_at(spans: List[ClassifiedSpan], offset: int) -> Optional[ClassifiedSpan]:
    for span in spans:
        if span.start <= offset < span.end:
            return span
    return None


def describe(span: ClassifiedSpan, language_id: str) -> Optional[str]:
    """Hover text for a classified span, or None for spans not worth describing."""
    if span.category is Category.KEYWORD:
        return f"{span.text}: {language_id} keyword"
    if span.category is Category.BUILTIN:
        return f"{span.text}: {language_id} builtin"
    if span.category is Category.FUNCTION:
        return f"{span.text}(...): function call"
    return None
