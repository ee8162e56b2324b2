"""
  Lexical classifier for the source preview.

- Single left-to-right scan, total over any input (no error path)
- Spans are contiguous, non-overlapping and gap-free: joining their text
  reproduces the source exactly
- Productions are tried in a fixed order at every position:

    comment > string > number > identifier

  identifiers are then ranked keyword > builtin > call-site function > plain
- Comments and strings are opaque: their interior is never re-scanned
- Malformed input degrades: an unterminated string or block comment simply
  runs to the end of the buffer
"""

from __future__ import annotations

import html
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, Optional

from codepreview import LanguageId
from codepreview.languages import LanguageRegistry, LanguageSpec, get_registry


class Category(str, Enum):
    KEYWORD = "keyword"
    BUILTIN = "builtin"
    STRING = "string"
    NUMBER = "number"
    COMMENT = "comment"
    FUNCTION = "function"
    PLAIN = "plain"


@dataclass(frozen=True)
class ClassifiedSpan:
    text: str
    category: Category
    start: int
    end: int


QUOTES = "\"'"
DIGITS = "0123456789"

# A production inspects source[pos:] and returns (end, category) or None
Production = Callable[[str, int, LanguageSpec], Optional[tuple[int, Category]]]


def _is_ident_start(ch: str) -> bool:
    return ch == "_" or ch.isalpha()


def _is_ident_char(ch: str) -> bool:
    return ch == "_" or ch.isalnum()


def match_comment(source: str, pos: int, spec: LanguageSpec) -> Optional[tuple[int, Category]]:
    for marker in spec.line_comments:
        if source.startswith(marker, pos):
            end = source.find("\n", pos)
            return (len(source) if end == -1 else end), Category.COMMENT
    for start, stop in spec.block_comments:
        if source.startswith(start, pos):
            end = source.find(stop, pos + len(start))
            return (len(source) if end == -1 else end + len(stop)), Category.COMMENT
    return None


def _scan_quoted(source: str, pos: int, triple: bool) -> int:
    """Return the end offset of the string whose opening quote is at `pos`."""
    quote = source[pos]
    n = len(source)
    if triple and source.startswith(quote * 3, pos):
        closing = quote * 3
        i = pos + 3
        while i < n:
            if source[i] == "\\":
                i += 2
                continue
            if source.startswith(closing, i):
                return i + 3
            i += 1
        return n
    i = pos + 1
    while i < n:
        ch = source[i]
        if ch == "\\":
            # escape pair consumed greedily, even across a newline
            i += 2
            continue
        if ch == quote:
            return i + 1
        i += 1
    return n


def match_string(source: str, pos: int, spec: LanguageSpec) -> Optional[tuple[int, Category]]:
    ch = source[pos]
    if ch in QUOTES:
        return min(_scan_quoted(source, pos, spec.triple_quotes), len(source)), Category.STRING
    # f"...", rb'...': the prefix belongs to the string, but only at a word start
    if not spec.string_prefixes or not _is_ident_start(ch):
        return None
    if pos > 0 and _is_ident_char(source[pos - 1]):
        return None
    for width in (1, 2):
        quote_at = pos + width
        if quote_at < len(source) and source[quote_at] in QUOTES:
            if source[pos:quote_at].lower() in spec.string_prefixes:
                return min(_scan_quoted(source, quote_at, spec.triple_quotes), len(source)), Category.STRING
            return None
    return None


def match_number(source: str, pos: int, spec: LanguageSpec) -> Optional[tuple[int, Category]]:
    if source[pos] not in DIGITS:
        return None
    i = pos
    while i < len(source) and (source[i] in DIGITS or source[i] == "."):
        i += 1
    return i, Category.NUMBER


def match_identifier(source: str, pos: int, spec: LanguageSpec) -> Optional[tuple[int, Category]]:
    if not _is_ident_start(source[pos]):
        return None
    i = pos + 1
    while i < len(source) and _is_ident_char(source[i]):
        i += 1
    word = source[pos:i]
    if word in spec.keywords:
        return i, Category.KEYWORD
    if word in spec.builtins:
        return i, Category.BUILTIN
    if i < len(source) and source[i] == "(":
        return i, Category.FUNCTION
    return i, Category.PLAIN


# Precedence table: earlier entries win at any given position
PRODUCTIONS: tuple[tuple[str, Production], ...] = (
    ("comment", match_comment),
    ("string", match_string),
    ("number", match_number),
    ("identifier", match_identifier),
)


def iter_spans(source: str, spec: LanguageSpec) -> Iterator[ClassifiedSpan]:
    pos = 0
    n = len(source)
    plain_start = 0  # start of the pending run of unrecognised characters

    while pos < n:
        found = None
        for _name, production in PRODUCTIONS:
            found = production(source, pos, spec)
            if found is not None:
                break
        if found is None:
            pos += 1
            continue
        end, category = found
        if plain_start < pos:
            yield ClassifiedSpan(source[plain_start:pos], Category.PLAIN, plain_start, pos)
        yield ClassifiedSpan(source[pos:end], category, pos, end)
        pos = plain_start = end

    if plain_start < n:
        yield ClassifiedSpan(source[plain_start:n], Category.PLAIN, plain_start, n)


def classify(
    source: str,
    language_id: LanguageId,
    registry: Optional[LanguageRegistry] = None,
) -> list[ClassifiedSpan]:
    """Split `source` into classified spans covering every character exactly once."""
    spec = (registry or get_registry()).spec_for(language_id)
    return list(iter_spans(source or "", spec))


def render_markup(spans: list[ClassifiedSpan]) -> str:
    """HTML markup for highlighted display; plain spans are only escaped."""
    out = []
    for span in spans:
        text = html.escape(span.text, quote=False)
        if span.category is Category.PLAIN:
            out.append(text)
        else:
            out.append(f'<span class="{span.category.value}">{text}</span>')
    return "".join(out)
