"""Best-effort expression evaluator for the pseudo-execution engine.

Placeholders inside an interpolated string (`{expr}`) follow a small fixed
grammar:

  - a bare variable reference                 {name}
  - an aggregate call over a literal sequence {sum([1, 2, 3])}  sum/min/max/len
  - one binary arithmetic operation           {2 + 2}  {price * 3}

Print arguments and assignment right-hand sides additionally accept string and
number literals, f-strings and `+` chains (concatenation or addition).

Anything outside the grammar is not an error: it is emitted verbatim. Division
by zero becomes an inline marker and the run continues.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Optional

from codepreview.errors import PreviewUnboundName
from codepreview.types.environment import Environment, NotFound
from codepreview.types.value import Value, ValueKind

if TYPE_CHECKING:
    from codepreview.evaluation.dialects import Dialect


DIVISION_BY_ZERO = "[ZeroDivisionError: division by zero]"

NUMBER_RE = re.compile(r"[+-]?(?:\d+\.\d*|\.\d+|\d+)")
IDENT_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_OPERAND = r"[+-]?(?:\d+\.\d*|\.\d+|\d+)|[A-Za-z_][A-Za-z0-9_]*"
BINARY_RE = re.compile(rf"({_OPERAND})\s*([-+*/])\s*({_OPERAND})")
AGGREGATE_RE = re.compile(r"(sum|min|max|len)\(\s*([\[(])(.*)([\])])\s*\)", re.DOTALL)
STR_CALL_RE = re.compile(r"(?:str|String\.valueOf)\((.*)\)", re.DOTALL)

ESCAPES = {"n": "\n", "t": "\t", "r": "\r", "\\": "\\", "'": "'", '"': '"', "0": "\0"}

OPENERS = "([{"
CLOSERS = ")]}"


class Unresolved(Exception):
    """The expression is outside the supported grammar."""


def decode_escapes(body: str) -> str:
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch == "\\" and i + 1 < len(body) and body[i + 1] in ESCAPES:
            out.append(ESCAPES[body[i + 1]])
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


def string_literal(text: str) -> Optional[tuple[str, str]]:
    """Split a complete quoted literal into (prefix, raw body), or None.

    The literal must span the whole text: '"a" + "b"' is not one literal.
    """
    i = 0
    while i < len(text) and i < 2 and text[i] in "fFrRbBuU":
        i += 1
    if i >= len(text) or text[i] not in "\"'":
        return None
    prefix = text[:i]
    quote = text[i]
    if text.startswith(quote * 3, i) and len(text) >= i + 6 and text.endswith(quote * 3):
        return prefix, text[i + 3:-3]
    j = i + 1
    while j < len(text):
        if text[j] == "\\":
            j += 2
            continue
        if text[j] == quote:
            return (prefix, text[i + 1:j]) if j == len(text) - 1 else None
        j += 1
    return None


def split_top_level(text: str, separator: str) -> list[str]:
    """Split on `separator` outside of quotes and brackets."""
    parts = []
    depth = 0
    quote = None
    start = 0
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch in OPENERS:
            depth += 1
        elif ch in CLOSERS:
            depth = max(depth - 1, 0)
        elif ch == separator and depth == 0:
            parts.append(text[start:i])
            start = i + 1
        i += 1
    parts.append(text[start:])
    return parts


def matching_paren(text: str, open_at: int) -> int:
    """Index of the ')' closing the '(' at `open_at`, or -1 if it is never closed."""
    depth = 0
    quote = None
    i = open_at
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
        elif ch in "\"'":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return -1


def find_calls(text: str, name: str) -> list[tuple[int, int, int]]:
    """Locate calls to the plain function `name` outside of string literals.

    Returns (start, open paren, close paren) triples in source order. Method
    calls (`obj.name(...)`) and longer identifiers (`my_name(...)`) are not
    matches, and calls nested inside a match are not reported.
    """
    calls = []
    quote = None
    i = 0
    while i < len(text):
        ch = text[i]
        if quote:
            if ch == "\\":
                i += 2
                continue
            if ch == quote:
                quote = None
            i += 1
            continue
        if ch in "\"'":
            quote = ch
            i += 1
            continue
        m = IDENT_RE.match(text, i)
        if not m:
            i += 1
            continue
        if m.group(0) == name and (i == 0 or text[i - 1] != "."):
            open_at = m.end()
            while open_at < len(text) and text[open_at] == " ":
                open_at += 1
            if open_at < len(text) and text[open_at] == "(":
                close = matching_paren(text, open_at)
                if close != -1:
                    calls.append((i, open_at, close))
                    i = close + 1
                    continue
        i = m.end()
    return calls


def parse_number(text: str) -> Optional[Value]:
    if not NUMBER_RE.fullmatch(text):
        return None
    if "." in text:
        return Value.floating(float(text))
    return Value.integer(int(text))


# -------------------------------
# Arithmetic
# -------------------------------
def arithmetic(op: str, left: Value, right: Value, dialect: Dialect) -> Value:
    """Apply a binary operator to two numeric values.

    Raises ZeroDivisionError on division by zero and Unresolved when an operand
    is not numeric.
    """
    if not (left.is_numeric and right.is_numeric):
        raise Unresolved(f"{left.render()} {op} {right.render()}")
    a, b = left.data, right.data
    both_int = left.kind is ValueKind.INTEGER and right.kind is ValueKind.INTEGER
    if op == "+":
        result = a + b
    elif op == "-":
        result = a - b
    elif op == "*":
        result = a * b
    elif op == "/":
        if b == 0:
            raise ZeroDivisionError("division by zero")
        if both_int and dialect.truncating_division:
            quotient = abs(a) // abs(b)
            return Value.integer(quotient if (a < 0) == (b < 0) else -quotient)
        return Value.floating(a / b)
    else:
        raise Unresolved(op)
    return Value.integer(result) if both_int else Value.floating(result)


def _operand(text: str, env: Environment) -> Value:
    number = parse_number(text)
    if number is not None:
        return number
    value = env.get(text)
    if value is NotFound:
        raise Unresolved(text)
    return value


def _aggregate(name: str, items_text: str) -> Value:
    items = [p.strip() for p in split_top_level(items_text, ",") if p.strip()]
    numbers = [parse_number(item) for item in items]
    if name == "len":
        return Value.integer(len(items))
    if any(n is None for n in numbers):
        raise Unresolved(items_text)
    floats = any(n.kind is ValueKind.FLOAT for n in numbers)
    raw = [n.data for n in numbers]
    if name == "sum":
        total = sum(raw)
        return Value.floating(total) if floats else Value.integer(total)
    if not raw:
        # min()/max() of an empty sequence is an error in Python
        raise Unresolved(items_text)
    picked = min(raw) if name == "min" else max(raw)
    return Value.of(picked)


def resolve_placeholder(expr: str, env: Environment, dialect: Dialect) -> Value:
    """Evaluate one expression of the fixed placeholder grammar."""
    expr = expr.strip()
    if IDENT_RE.fullmatch(expr):
        try:
            return env.lookup(expr)
        except PreviewUnboundName:
            raise Unresolved(expr) from None
    number = parse_number(expr)
    if number is not None:
        return number
    m = AGGREGATE_RE.fullmatch(expr)
    if m and OPENERS.index(m.group(2)) == CLOSERS.index(m.group(4)):
        return _aggregate(m.group(1), m.group(3))
    m = BINARY_RE.fullmatch(expr)
    if m:
        left, op, right = m.groups()
        return arithmetic(op, _operand(left, env), _operand(right, env), dialect)
    raise Unresolved(expr)


def _split_format_spec(expr: str) -> tuple[str, str]:
    # {value:.2f}: the spec follows the last top-level colon
    parts = split_top_level(expr, ":")
    if len(parts) == 1:
        return expr, ""
    return ":".join(parts[:-1]), parts[-1]


def evaluate_placeholder(expr: str, env: Environment, dialect: Dialect) -> str:
    body, spec = _split_format_spec(expr.strip())
    try:
        value = resolve_placeholder(body, env, dialect)
    except ZeroDivisionError:
        return DIVISION_BY_ZERO
    except Unresolved:
        return expr.strip()
    if spec:
        try:
            return format(value.data, spec)
        except (TypeError, ValueError):
            return value.render()
    return value.render()


def evaluate_interpolated(template: str, env: Environment, dialect: Dialect) -> str:
    """Resolve every {expr} placeholder of an interpolated string body."""
    out = []
    i = 0
    n = len(template)
    while i < n:
        ch = template[i]
        if ch == "{":
            if template.startswith("{{", i):
                out.append("{")
                i += 2
                continue
            close = template.find("}", i + 1)
            if close == -1:
                out.append(template[i:])
                break
            out.append(evaluate_placeholder(template[i + 1:close], env, dialect))
            i = close + 1
            continue
        if ch == "}" and template.startswith("}}", i):
            out.append("}")
            i += 2
            continue
        out.append(ch)
        i += 1
    return "".join(out)


# -------------------------------
# Print arguments / assignments
# -------------------------------
def _wrapped_in_parens(text: str) -> bool:
    if not (text.startswith("(") and text.endswith(")")):
        return False
    depth = 0
    for i, ch in enumerate(text):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i == len(text) - 1
    return False


def _resolve_term(text: str, env: Environment, dialect: Dialect) -> Value:
    text = text.strip()
    if not text:
        raise Unresolved(text)
    literal = string_literal(text)
    if literal is not None:
        prefix, body = literal
        if "r" in prefix.lower():
            decoded = body
        else:
            decoded = decode_escapes(body)
        if "f" in prefix.lower():
            return Value.string(evaluate_interpolated(decoded, env, dialect))
        return Value.string(decoded)
    if _wrapped_in_parens(text):
        return resolve_expression(text[1:-1], env, dialect)
    m = STR_CALL_RE.fullmatch(text)
    if m:
        return Value.string(resolve_expression(m.group(1), env, dialect).render())
    return resolve_placeholder(text, env, dialect)


def _concatenate(terms: list[str], env: Environment, dialect: Dialect) -> Value:
    resolved: list[Optional[Value]] = []
    for term in terms:
        try:
            resolved.append(_resolve_term(term, env, dialect))
        except ZeroDivisionError:
            resolved.append(Value.string(DIVISION_BY_ZERO))
        except Unresolved:
            resolved.append(None)
    has_text = any(v is not None and v.kind is ValueKind.STRING for v in resolved)
    if not has_text:
        if any(v is None for v in resolved):
            raise Unresolved("+".join(terms))
        acc = resolved[0]
        for value in resolved[1:]:
            acc = arithmetic("+", acc, value, dialect)
        return acc
    if not dialect.concat_coerces and any(v is not None and v.is_numeric for v in resolved):
        # str + int is a TypeError in Python: surface the expression instead
        raise Unresolved("+".join(terms))
    pieces = []
    acc: Optional[Value] = None
    for term, value in zip(terms, resolved):
        if value is None:
            value = Value.string(term.strip())
        if acc is None:
            acc = value
        elif acc.kind is ValueKind.STRING or value.kind is ValueKind.STRING:
            pieces.append(acc.render())
            acc = value if value.kind is ValueKind.STRING else Value.string(value.render())
        else:
            # numeric prefix of a Java chain: 1 + 2 + "x" == "3x"
            acc = arithmetic("+", acc, value, dialect)
    pieces.append(acc.render())
    return Value.string("".join(pieces))


def resolve_expression(text: str, env: Environment, dialect: Dialect) -> Value:
    """Evaluate a print argument or assignment right-hand side. Raises Unresolved."""
    terms = split_top_level(text.strip(), "+")
    # "+5" or "1e+5" style leftovers are not concatenation chains
    if len(terms) > 1 and all(t.strip() for t in terms):
        if len(terms) == 2 and not any(string_literal(t.strip()) for t in terms):
            try:
                return resolve_placeholder(text, env, dialect)
            except Unresolved:
                pass
        return _concatenate(terms, env, dialect)
    return _resolve_term(text, env, dialect)


def evaluate_expression(text: str, env: Environment, dialect: Dialect) -> Value:
    """Like resolve_expression, but anything unsupported comes back verbatim as a string."""
    try:
        return resolve_expression(text, env, dialect)
    except ZeroDivisionError:
        return Value.string(DIVISION_BY_ZERO)
    except Unresolved:
        return Value.string(text.strip())
