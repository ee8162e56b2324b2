"""Line-oriented pseudo-execution.

The Scanner walks the statements of one buffer top to bottom, exactly once.
Output statements become `output` lines, assignments update the run's
Environment and input statements suspend the run on the InputCoordinator.
Nothing else yields control, so a run is a straight-line transcript: headers of
conditionals and loops are recognised but their bodies run once, in order.

Two input modes keep the same ordering guarantee (the Nth request belongs to
the Nth input call-site in a top-to-bottom scan):

  SYNC   each input statement suspends the scan when it is reached
  BATCH  all call-sites are collected and answered before any output is
         produced; values are coerced (and warned about) at collection time
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from enum import Enum
from typing import Deque, Optional

from codepreview.evaluation.dialects import Dialect, InputSite, Statement, StatementKind, input_name
from codepreview.evaluation.evaluator import decode_escapes, evaluate_expression, string_literal
from codepreview.languages import LanguageSpec
from codepreview.runtime.input_coordinator import InputCoordinator
from codepreview.types.environment import Environment
from codepreview.types.output import OutputSink, echo_text
from codepreview.types.value import Value, ValueKind, coerce

logger = logging.getLogger(__name__)


class InputMode(Enum):
    SYNC = "sync"
    BATCH = "batch"


class Scanner:
    def __init__(
        self,
        source: str,
        dialect: Dialect,
        spec: LanguageSpec,
        sink: OutputSink,
        coordinator: InputCoordinator,
        *,
        mode: InputMode = InputMode.SYNC,
        cancel: Optional[asyncio.Event] = None,
    ):
        self.source = source
        self.dialect = dialect
        self.spec = spec
        self.sink = sink
        self.coordinator = coordinator
        self.mode = mode
        self.cancel = cancel or asyncio.Event()
        self.env = Environment()
        # text printed without a trailing newline, waiting for the rest of its line
        self._partial = ""
        self._answers: Deque[Value] = deque()

    @property
    def cancelled(self) -> bool:
        return self.cancel.is_set()

    async def run(self) -> bool:
        """Produce the transcript. Returns False if the run was cancelled."""
        statements = list(self.dialect.parse_source(self.source, self.spec))
        logger.debug("Scanning %d line(s) of %s in %s mode", len(statements), self.dialect.name, self.mode.value)
        for banner in self.dialect.start_banners:
            self.sink.info(banner)
        if self.mode is InputMode.BATCH:
            if not await self._collect_inputs(statements):
                return False
        for stmt in statements:
            if self.cancelled:
                return False
            await self.execute(stmt)
        if self.cancelled:
            return False
        self._flush_partial()
        self.sink.info(self.dialect.end_banner)
        return True

    async def execute(self, stmt: Statement) -> None:
        values = await self._read_sites(stmt)
        if values is None:
            return
        if stmt.kind is StatementKind.OUTPUT:
            self._write(self._render_output(stmt, self._bind(values)))
        elif stmt.kind is StatementKind.ASSIGN:
            self._assign(stmt, self._bind(values))
        elif stmt.kind is StatementKind.INPUT:
            if stmt.name:
                self.env.assign(stmt.name, self._declared(stmt, values[0]))
        # BLANK, HEADER and UNKNOWN lines produce nothing beyond their inputs

    def _bind(self, values: list[Value]) -> Environment:
        """The run's environment plus the answers of one statement's input calls."""
        if not values:
            return self.env
        env = self.env.copy()
        for index, value in enumerate(values):
            env.assign(input_name(index), value)
        return env

    # -------------------------------
    # Output
    # -------------------------------
    def _literal_option(self, raw: Optional[str], default: str) -> str:
        if raw is None:
            return default
        literal = string_literal(raw)
        return decode_escapes(literal[1]) if literal else default

    def _render_output(self, stmt: Statement, env: Environment) -> str:
        rendered = [evaluate_expression(arg, env, self.dialect).render() for arg in stmt.args]
        text = self._literal_option(stmt.sep, " ").join(rendered)
        if stmt.newline:
            text += self._literal_option(stmt.end, "\n")
        return text

    def _write(self, text: str) -> None:
        pending = self._partial + text
        *complete, self._partial = pending.split("\n")
        for line in complete:
            self.sink.output(line)

    def _flush_partial(self) -> None:
        if self._partial:
            self.sink.output(self._partial)
            self._partial = ""

    # -------------------------------
    # Assignment
    # -------------------------------
    def _assign(self, stmt: Statement, env: Environment) -> None:
        value = evaluate_expression(stmt.args[0], env, self.dialect)
        self.env.assign(stmt.name, self._declared(stmt, value))

    def _declared(self, stmt: Statement, value: Value) -> Value:
        # double avg = 7;  stores 7.0 in Java
        if stmt.declared in ("double", "float") and value.kind is ValueKind.INTEGER:
            return Value.floating(value.data)
        return value

    # -------------------------------
    # Input
    # -------------------------------
    def _prompt_text(self, site: InputSite) -> str:
        if site.prompt is None:
            return ""
        return evaluate_expression(site.prompt, self.env, self.dialect).render()

    def _take_prompt(self, site: InputSite) -> str:
        prompt = self._partial + self._prompt_text(site)
        self._partial = ""
        return prompt

    def _coerce(self, raw: str, kind: ValueKind) -> Value:
        value, warning = coerce(raw, kind)
        if warning:
            self.sink.warning(warning)
        return value

    async def _ask(self, prompt: str, site: InputSite) -> Optional[Value]:
        """Request one answer; None if the run was stopped while waiting."""
        raw = await self.coordinator.request(prompt)
        if self.cancelled:
            return None
        self.sink.echo(echo_text(prompt, raw))
        return self._coerce(site.transform(raw), site.target)

    async def _read_sites(self, stmt: Statement) -> Optional[list[Value]]:
        values = []
        for site in stmt.sites:
            prompt = self._take_prompt(site)
            if self.mode is InputMode.BATCH:
                # the prompt was shown during collection
                values.append(self._answers.popleft())
                continue
            value = await self._ask(prompt, site)
            if value is None:
                return None
            values.append(value)
        return values

    def collect_input_sites(self, statements: list[Statement]) -> list[InputSite]:
        return [site for stmt in statements for site in stmt.sites]

    async def _collect_inputs(self, statements: list[Statement]) -> bool:
        logger.debug("Collecting %d input(s) up front", len(self.collect_input_sites(statements)))
        partial = ""
        for stmt in statements:
            values = []
            for site in stmt.sites:
                # prompts are evaluated before any assignment has run
                prompt = partial + self._prompt_text(site)
                partial = ""
                value = await self._ask(prompt, site)
                if value is None:
                    return False
                values.append(value)
                self._answers.append(value)
            if stmt.kind is StatementKind.OUTPUT:
                partial = (partial + self._render_output(stmt, self._bind(values))).split("\n")[-1]
        return True
