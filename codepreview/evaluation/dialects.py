"""Statement shapes recognised by the pseudo-execution engine, per language.

A dialect turns one source line into a Statement. It never executes anything:
the Scanner decides what a statement does. Control-flow headers are recognised
only so they can be skipped; the engine produces a straight-line transcript.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, Optional, Type

from codepreview import LanguageId
from codepreview.evaluation.evaluator import find_calls, split_top_level, string_literal
from codepreview.languages import LanguageSpec
from codepreview.reader.classifier import Category, iter_spans
from codepreview.types.value import ValueKind


class StatementKind(Enum):
    BLANK = "blank"
    OUTPUT = "output"
    INPUT = "input"
    ASSIGN = "assign"
    HEADER = "header"
    UNKNOWN = "unknown"


STRING_METHODS = frozenset({"strip", "lstrip", "rstrip", "lower", "upper", "title", "capitalize"})


@dataclass
class InputSite:
    """One input call of a statement, in source order."""

    prompt: Optional[str] = None
    target: ValueKind = ValueKind.STRING
    # no-argument methods applied to the raw answer, e.g. input().strip().title()
    chain: tuple[str, ...] = ()

    def transform(self, raw: str) -> str:
        for method in self.chain:
            if method in STRING_METHODS:
                raw = getattr(str, method)(raw)
        return raw


def input_name(index: int) -> str:
    """Name the index-th input call of a statement is bound to while it runs."""
    return f"__input_{index}"


@dataclass
class Statement:
    kind: StatementKind
    line_no: int
    text: str
    # ASSIGN / INPUT target; None for a bare input() call
    name: Optional[str] = None
    # OUTPUT arguments, ASSIGN right-hand side (single item)
    args: list[str] = field(default_factory=list)
    # input calls; args refer to their answers through input_name()
    sites: list[InputSite] = field(default_factory=list)
    declared: Optional[str] = None
    newline: bool = True
    sep: Optional[str] = None
    end: Optional[str] = None


def blank_comments(source: str, spec: LanguageSpec) -> str:
    """Replace every comment with spaces, keeping newlines so line numbers hold."""
    out = []
    for span in iter_spans(source, spec):
        if span.category is Category.COMMENT:
            out.append("".join("\n" if ch == "\n" else " " for ch in span.text))
        else:
            out.append(span.text)
    return "".join(out)


class Dialect:
    name: LanguageId = ""
    start_banners: tuple[str, ...] = ()
    end_banner: str = ""
    # int / int: truncate (Java) or produce a float (Python)
    truncating_division: bool = False
    # "a" + 1: concatenates (Java) or is a type error (Python)
    concat_coerces: bool = False

    def parse_line(self, line_no: int, line: str) -> Statement:
        raise NotImplementedError

    def parse_source(self, source: str, spec: LanguageSpec) -> Iterator[Statement]:
        for line_no, line in enumerate(blank_comments(source, spec).split("\n"), start=1):
            stripped = line.strip()
            if not stripped:
                yield Statement(StatementKind.BLANK, line_no, line)
            else:
                yield self.parse_line(line_no, stripped)


class PythonDialect(Dialect):
    name = "python"
    start_banners = (">>> Python Execution Started",)
    end_banner = ">>> Execution Completed Successfully"

    HEADER_RE = re.compile(
        r"(?:if|elif|else|for|while|def|class|try|except|finally|with|async\s+def|async\s+for|async\s+with)\b.*:$"
    )
    SKIP_RE = re.compile(r"(?:import|from|return|pass|break|continue|global|nonlocal|raise|assert|del)\b")
    DEFINITION_RE = re.compile(r"(?:async\s+)?(?:def|class)\b")
    PRINT_RE = re.compile(r"print\((.*)\)$", re.DOTALL)
    ASSIGN_RE = re.compile(r"([A-Za-z_]\w*)\s*([-+*/]?)=(?!=)\s*(.+)$")
    CHAIN_RE = re.compile(r"(?:\s*\.\s*[A-Za-z_]\w*\(\s*\))*")
    METHOD_RE = re.compile(r"\.\s*([A-Za-z_]\w*)\(")
    WRAPPER_RE = re.compile(r"(?<![\w.])(int|float|str)\s*\(\s*$")
    WRAPPER_CLOSE_RE = re.compile(r"\s*\)")

    COERCIONS = {"int": ValueKind.INTEGER, "float": ValueKind.FLOAT, "str": ValueKind.STRING}

    def parse_line(self, line_no: int, line: str) -> Statement:
        if self.HEADER_RE.match(line) or self.SKIP_RE.match(line):
            # a header still asks for its input once, a definition never does
            sites = [] if self.DEFINITION_RE.match(line) else self.extract_input_sites(line)[1]
            return Statement(StatementKind.HEADER, line_no, line, sites=sites)
        m = self.PRINT_RE.match(line)
        if m:
            return self._print(line_no, line, m.group(1))
        rewritten, sites = self.extract_input_sites(line)
        if sites and rewritten == input_name(0):
            return Statement(StatementKind.INPUT, line_no, line, sites=sites)
        m = self.ASSIGN_RE.match(rewritten)
        if m:
            name, op, rhs = m.groups()
            if not op and len(sites) == 1 and rhs.strip() == input_name(0):
                return Statement(StatementKind.INPUT, line_no, line, name=name, sites=sites)
            expr = f"{name} {op} {rhs}" if op else rhs
            return Statement(StatementKind.ASSIGN, line_no, line, name=name, args=[expr], sites=sites)
        return Statement(StatementKind.UNKNOWN, line_no, line, sites=sites)

    def extract_input_sites(self, text: str) -> tuple[str, list[InputSite]]:
        """Replace every input(...) call of `text` with the name of its answer.

        A trailing chain of no-argument methods and an int()/float()/str()
        wrapper are part of the call site.
        """
        sites: list[InputSite] = []
        out = []
        pos = 0
        for start, open_at, close in find_calls(text, "input"):
            chain = self.CHAIN_RE.match(text, close + 1)
            end = chain.end()
            prompt = text[open_at + 1:close].strip() or None
            site = InputSite(prompt, chain=tuple(self.METHOD_RE.findall(chain.group(0))))
            wrapper = self.WRAPPER_RE.search(text, pos, start)
            closer = self.WRAPPER_CLOSE_RE.match(text, end)
            if wrapper and closer:
                start, end = wrapper.start(), closer.end()
                site.target = self.COERCIONS[wrapper.group(1)]
            out.append(text[pos:start])
            out.append(input_name(len(sites)))
            sites.append(site)
            pos = end
        out.append(text[pos:])
        return "".join(out), sites

    def _print(self, line_no: int, line: str, inner: str) -> Statement:
        stmt = Statement(StatementKind.OUTPUT, line_no, line)
        inner, stmt.sites = self.extract_input_sites(inner)
        for arg in split_top_level(inner, ","):
            arg = arg.strip()
            if not arg:
                continue
            m = re.match(r"(sep|end)\s*=(?!=)\s*(.+)$", arg, re.DOTALL)
            if m and string_literal(m.group(2).strip()):
                setattr(stmt, m.group(1), m.group(2).strip())
                continue
            stmt.args.append(arg)
        return stmt


class JavaDialect(Dialect):
    name = "java"
    start_banners = (">>> Compiling Java...", ">>> Running Main class...")
    end_banner = ">>> BUILD SUCCESSFUL"
    truncating_division = True
    concat_coerces = True

    HEADER_RE = re.compile(
        r"(?:[{}]|(?:public|private|protected|static|abstract|class|interface|enum|if|else|for|while|do|switch|case|default|try|catch|finally)\b|.*\{$)"
    )
    SKIP_RE = re.compile(r"(?:import|package|return|break|continue|throw)\b")
    PRINT_RE = re.compile(r"System\.out\.(println|print)\((.*)\)\s*;?$", re.DOTALL)
    _TYPE = r"(?:final\s+)?([A-Za-z_][\w<>\[\]]*)\s+"
    SCANNER_RE = re.compile(
        rf"(?:{_TYPE})?([A-Za-z_]\w*)\s*=\s*[A-Za-z_]\w*\.(nextLine|next|nextInt|nextLong|nextDouble|nextFloat)\(\s*\)\s*;?$"
    )
    PARSED_SCANNER_RE = re.compile(
        rf"(?:{_TYPE})?([A-Za-z_]\w*)\s*=\s*(Integer\.parseInt|Long\.parseLong|Double\.parseDouble|Float\.parseFloat)\(\s*[A-Za-z_]\w*\.(?:nextLine|next)\(\s*\)\s*\)\s*;?$"
    )
    INCREMENT_RE = re.compile(r"([A-Za-z_]\w*)\s*(\+\+|--)\s*;?$")
    ASSIGN_RE = re.compile(rf"(?:{_TYPE})?([A-Za-z_]\w*)\s*([-+*/]?)=(?!=)\s*(.+?)\s*;?$")

    READERS = {
        "nextLine": ValueKind.STRING,
        "next": ValueKind.STRING,
        "nextInt": ValueKind.INTEGER,
        "nextLong": ValueKind.INTEGER,
        "nextDouble": ValueKind.FLOAT,
        "nextFloat": ValueKind.FLOAT,
        "Integer.parseInt": ValueKind.INTEGER,
        "Long.parseLong": ValueKind.INTEGER,
        "Double.parseDouble": ValueKind.FLOAT,
        "Float.parseFloat": ValueKind.FLOAT,
    }

    def parse_line(self, line_no: int, line: str) -> Statement:
        m = self.PRINT_RE.match(line)
        if m:
            method, inner = m.groups()
            return Statement(
                StatementKind.OUTPUT, line_no, line,
                args=[inner] if inner.strip() else [], newline=(method == "println"),
            )
        if self.HEADER_RE.match(line) or self.SKIP_RE.match(line):
            return Statement(StatementKind.HEADER, line_no, line)
        for pattern in (self.SCANNER_RE, self.PARSED_SCANNER_RE):
            m = pattern.match(line)
            if m:
                declared, name, reader = m.groups()
                return Statement(
                    StatementKind.INPUT, line_no, line,
                    name=name, sites=[InputSite(target=self.READERS[reader])], declared=declared,
                )
        m = self.INCREMENT_RE.match(line)
        if m:
            name, op = m.groups()
            return Statement(StatementKind.ASSIGN, line_no, line, name=name, args=[f"{name} {op[0]} 1"])
        m = self.ASSIGN_RE.match(line)
        if m:
            declared, name, op, rhs = m.groups()
            expr = f"{name} {op} {rhs}" if op else rhs
            return Statement(StatementKind.ASSIGN, line_no, line, name=name, args=[expr], declared=declared)
        return Statement(StatementKind.UNKNOWN, line_no, line)


DIALECTS: Dict[LanguageId, Type[Dialect]] = {
    PythonDialect.name: PythonDialect,
    JavaDialect.name: JavaDialect,
}


def get_dialect(language_id: LanguageId) -> Optional[Dialect]:
    cls = DIALECTS.get((language_id or "").lower())
    return cls() if cls else None
