"""Append-only transcript of a run.

Ordering is the only contract: later lines render below earlier ones, lines
are never reordered or deduplicated. Listeners let a shell stream lines as they
are appended instead of waiting for the run to settle.

All appends happen on the event loop thread; the Python backend marshals its
worker-thread writes onto the loop before they reach the sink.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional

from codepreview import LineListener

logger = logging.getLogger(__name__)


class OutputKind(str, Enum):
    INFO = "info"
    OUTPUT = "output"
    ERROR = "error"
    WARNING = "warning"
    INPUT = "input"


@dataclass(frozen=True)
class OutputLine:
    text: str
    kind: OutputKind = OutputKind.OUTPUT


def echo_text(prompt: str, value: str) -> str:
    """Transcript line pairing a prompt with the value the user typed."""
    prompt = prompt.rstrip()
    return f"{prompt} {value}" if prompt else value


class OutputSink:
    def __init__(self):
        self._lines: List[OutputLine] = []
        self.listeners: List[LineListener] = []

    def append(self, text: str, kind: OutputKind = OutputKind.OUTPUT) -> OutputLine:
        line = OutputLine(text=str(text), kind=OutputKind(kind))
        self._lines.append(line)
        for listener in list(self.listeners):
            try:
                listener(line)
            except Exception:
                # a broken shell callback must not abort the run
                logger.exception("Output listener %r failed", listener)
        return line

    def info(self, text: str) -> OutputLine:
        return self.append(text, OutputKind.INFO)

    def output(self, text: str) -> OutputLine:
        return self.append(text, OutputKind.OUTPUT)

    def error(self, text: str) -> OutputLine:
        return self.append(text, OutputKind.ERROR)

    def warning(self, text: str) -> OutputLine:
        return self.append(text, OutputKind.WARNING)

    def echo(self, text: str) -> OutputLine:
        return self.append(text, OutputKind.INPUT)

    @property
    def lines(self) -> List[OutputLine]:
        return list(self._lines)

    def texts(self, kind: Optional[OutputKind] = None) -> List[str]:
        return [line.text for line in self._lines if kind is None or line.kind is kind]

    @property
    def last(self) -> Optional[OutputLine]:
        return self._lines[-1] if self._lines else None

    def clear(self) -> None:
        self._lines.clear()

    def __len__(self) -> int:
        return len(self._lines)

    def __iter__(self) -> Iterator[OutputLine]:
        return iter(list(self._lines))


class RunOutcome(Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    # another run already owned the session; nothing was touched
    REJECTED = "rejected"


@dataclass
class RunResult:
    outcome: RunOutcome
    lines: List[OutputLine]
    # markup-only languages hand the buffer back for an isolated viewer
    document: Optional[str] = None
