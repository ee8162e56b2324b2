"""Suspend/resume bridge between a running program and the human at the keyboard.

The coordinator is a two-state machine:

    IDLE --request(prompt)--> AWAITING_INPUT --submit(text) / cancel()--> IDLE

While AWAITING_INPUT exactly one PendingInputRequest exists. Its future is the
one-shot continuation of the suspended statement; nothing else re-enters the
run. The engine never polls: the shell is told about prompts through
listeners and answers with submit() or cancel().

Usage:
  value = await coordinator.request("Enter: ")   # engine side
  coordinator.submit("Ada")                      # shell side
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional

from codepreview.errors import InputProtocolError

logger = logging.getLogger(__name__)


class InputState(Enum):
    IDLE = "idle"
    AWAITING_INPUT = "awaiting-input"


@dataclass
class PendingInputRequest:
    prompt: str
    future: asyncio.Future

    def resolve(self, value: str) -> None:
        if not self.future.done():
            self.future.set_result(value)


# Called with the open request, or None once the prompt closes
PromptListener = Callable[[Optional[PendingInputRequest]], None]


class InputCoordinator:
    def __init__(self):
        self._pending: Optional[PendingInputRequest] = None
        self.listeners: List[PromptListener] = []

    @property
    def state(self) -> InputState:
        return InputState.IDLE if self._pending is None else InputState.AWAITING_INPUT

    @property
    def pending(self) -> Optional[PendingInputRequest]:
        return self._pending

    @property
    def prompt(self) -> Optional[str]:
        return None if self._pending is None else self._pending.prompt

    async def request(self, prompt: str = "") -> str:
        """Suspend the caller until the shell submits a value (or cancels).

        Raises InputProtocolError if another request is still outstanding:
        that is a bug in the caller, not a runtime condition to recover from.
        """
        if self._pending is not None:
            raise InputProtocolError(
                f"Input requested ({prompt!r}) while {self._pending.prompt!r} is still pending"
            )
        loop = asyncio.get_running_loop()
        pending = PendingInputRequest(prompt=prompt, future=loop.create_future())
        self._pending = pending
        logger.debug("Awaiting input for prompt %r", prompt)
        self._notify(pending)
        try:
            return await pending.future
        finally:
            # task cancellation: do not leave a dead request behind
            if self._pending is pending:
                self._pending = None
                self._notify(None)

    def submit(self, text: str) -> bool:
        """Answer the pending request. Blank text is rejected; returns whether accepted."""
        if self._pending is None:
            return False
        value = (text or "").strip()
        if not value:
            return False
        self._resolve(value)
        return True

    def cancel(self) -> bool:
        """Resolve the pending request with an empty string so the run can unwind."""
        if self._pending is None:
            return False
        self._resolve("")
        return True

    def _resolve(self, value: str) -> None:
        pending = self._pending
        self._pending = None
        pending.resolve(value)
        logger.debug("Input for prompt %r resolved", pending.prompt)
        self._notify(None)

    def _notify(self, request: Optional[PendingInputRequest]) -> None:
        for listener in list(self.listeners):
            try:
                listener(request)
            except Exception:
                logger.exception("Prompt listener %r failed", listener)
