from __future__ import annotations

import asyncio
import logging
from typing import Literal, Optional

from codepreview import LanguageId
from codepreview.config import get_input_mode
from codepreview.errors import PreviewConfigError
from codepreview.evaluation.dialects import get_dialect
from codepreview.evaluation.scanner import InputMode, Scanner
from codepreview.languages import LanguageRegistry, get_registry
from codepreview.reader.classifier import ClassifiedSpan, classify
from codepreview.runtime.backend import PythonBackend
from codepreview.runtime.input_coordinator import InputCoordinator
from codepreview.types.output import OutputSink, RunOutcome, RunResult

logger = logging.getLogger(__name__)

STOP_MARKER = ">>> Execution stopped by user"
HTML_BANNER = ">>> Rendering HTML preview"

# Rendered verbatim by the shell in an isolated viewer; never interpreted
MARKUP_LANGUAGES = frozenset({"html"})


class Session:
    """
    One preview session: an OutputSink and an InputCoordinator shared by every
    run, plus the engine that fills them. At most one run is active at a time;
    a new run clears the transcript first.
    """

    def __init__(
        self,
        registry: LanguageRegistry | None = None,
        *,
        input_mode: InputMode | Literal['sync', 'batch'] | None = None,
        delegate: bool = False,
        backend: PythonBackend | None = None,
    ):
        self.registry = registry or get_registry()
        mode = input_mode or get_input_mode()
        try:
            self.input_mode = InputMode(mode)
        except ValueError:
            raise PreviewConfigError(f"Unknown input mode {mode!r}; expected 'sync' or 'batch'") from None
        self.delegate = delegate
        self.backend = backend or PythonBackend()
        self.sink = OutputSink()
        self.coordinator = InputCoordinator()
        self._active = False
        self._cancel: Optional[asyncio.Event] = None
        self._stop_reported = False

    @property
    def running(self) -> bool:
        return self._active

    def classify(self, source: str, language_id: LanguageId) -> list[ClassifiedSpan]:
        return classify(source, language_id, self.registry)

    def submit(self, text: str) -> bool:
        return self.coordinator.submit(text)

    def stop(self) -> None:
        """Stop the active run, or mark an idle session as stopped.

        The "stopped" warning is appended exactly once per run (or once while
        idle); the coordinator is always left idle.
        """
        self.coordinator.cancel()
        if self._active and self._cancel is not None:
            # the run appends the marker itself once it settles
            self._cancel.set()
            return
        self._report_stop()

    def _report_stop(self) -> None:
        if not self._stop_reported:
            self._stop_reported = True
            self.sink.warning(STOP_MARKER)

    async def run(self, source: str, language_id: LanguageId) -> RunResult:
        if self._active:
            logger.debug("Run of %s rejected: another run is active", language_id)
            return RunResult(RunOutcome.REJECTED, self.sink.lines)
        self._active = True
        self._cancel = cancel = asyncio.Event()
        self._stop_reported = False
        self.coordinator.cancel()
        self.sink.clear()
        document = None
        logger.debug("Run of %s started (%d chars)", language_id, len(source or ""))
        try:
            # run boundary: a stop issued right after start is seen here
            await asyncio.sleep(0)
            if cancel.is_set():
                outcome = RunOutcome.CANCELLED
            else:
                outcome, document = await self._dispatch(source or "", language_id, cancel)
        except Exception as ex:
            # nothing escapes the run boundary
            logger.exception("Run of %s failed", language_id)
            self.sink.error(f"Error: {ex}")
            outcome = RunOutcome.FAILED
        finally:
            self.coordinator.cancel()
            self._active = False
        if cancel.is_set():
            outcome = RunOutcome.CANCELLED
            self._report_stop()
        logger.debug("Run of %s settled: %s", language_id, outcome.value)
        return RunResult(outcome, self.sink.lines, document)

    async def _dispatch(
        self, source: str, language_id: LanguageId, cancel: asyncio.Event
    ) -> tuple[RunOutcome, Optional[str]]:
        lang = (language_id or "").lower()
        spec = self.registry.get(lang)
        if lang in MARKUP_LANGUAGES:
            self.sink.info(HTML_BANNER)
            return RunOutcome.COMPLETED, source
        if self.delegate and lang == self.backend.language:
            return await self.backend.run(source, self.sink, self.coordinator, cancel), None
        dialect = get_dialect(lang)
        if dialect is None or spec is None:
            self.sink.error(f"Unsupported language: {language_id}")
            return RunOutcome.FAILED, None
        scanner = Scanner(
            source, dialect, spec, self.sink, self.coordinator,
            mode=self.input_mode, cancel=cancel,
        )
        completed = await scanner.run()
        return (RunOutcome.COMPLETED if completed else RunOutcome.CANCELLED), None
