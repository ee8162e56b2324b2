"""Full-fidelity execution of Python buffers.

Python is the one language that does not go through the pseudo-execution
engine when delegation is on: the buffer is compiled and executed by the host
interpreter on a worker thread. This module only bridges that execution to the
same contracts the engine uses:

- output: the run gets its own `print` and its own view of `sys` whose
  stdout / stderr are line-buffered streams handing complete lines to the
  OutputSink on the event loop thread; the process-wide sys streams are
  never touched
- input:  the `input` builtin is replaced by a bridge that suspends the worker
  until the InputCoordinator resolves
- stop:   a trace hook raises RunCancelled inside the user's frames once the run
  is cancelled, and the run call settles immediately either way

Loading is lazy and memoized: every run awaits the same load, concurrent runs
never trigger a second one, and a failed load is forgotten so the next run can
retry.
"""

from __future__ import annotations

import asyncio
import builtins
import io
import logging
import sys
import threading
import traceback
import types
from typing import Callable, Optional

from codepreview import LanguageId
from codepreview.errors import BackendUnavailable, RunCancelled
from codepreview.runtime.input_coordinator import InputCoordinator
from codepreview.types.output import OutputKind, OutputSink, RunOutcome, echo_text

logger = logging.getLogger(__name__)

PREVIEW_FILENAME = "<preview>"
START_BANNER = ">>> Python Execution Started"
END_BANNER = ">>> Execution Completed Successfully"
RETRY_HINT = "Run again to retry loading the Python runtime."

# Builds the builtins table every run starts from
Loader = Callable[[], dict]


def default_loader() -> dict:
    base = dict(vars(builtins))
    # make sure the compiler is usable before claiming to be ready
    compile("pass", PREVIEW_FILENAME, "exec")
    return base


class SinkStream(io.TextIOBase):
    """Text stream that forwards complete lines to an OutputSink.

    Written to from the worker thread; lines are appended on the loop thread so
    they keep their order relative to input prompts and echoes.
    """

    def __init__(self, sink: OutputSink, kind: OutputKind, loop: asyncio.AbstractEventLoop):
        super().__init__()
        self._sink = sink
        self._kind = kind
        self._loop = loop
        self._buffer = ""
        self._silenced = False

    def writable(self) -> bool:
        return True

    def write(self, text: str) -> int:
        if self._silenced:
            return len(text)
        *lines, self._buffer = (self._buffer + text).split("\n")
        for line in lines:
            self._schedule(line)
        return len(text)

    def take_partial(self) -> str:
        partial, self._buffer = self._buffer, ""
        return partial

    def flush_partial(self) -> None:
        if self._buffer:
            self._schedule(self.take_partial())

    def silence(self) -> None:
        self._silenced = True

    def _schedule(self, line: str) -> None:
        try:
            self._loop.call_soon_threadsafe(self._emit, line)
        except RuntimeError:
            # the loop is gone: the run was abandoned after a stop
            self._silenced = True

    def _emit(self, line: str) -> None:
        if not self._silenced:
            self._sink.append(line, self._kind)


class RunSys(types.ModuleType):
    """The `sys` module as seen from inside one run.

    Attribute reads fall through to the real module, except the standard
    streams, which belong to the run. Rebinding them only affects the run.
    """

    def __init__(self, stdout: SinkStream, stderr: SinkStream):
        super().__init__("sys")
        self.stdout = stdout
        self.stderr = stderr

    def __getattr__(self, name: str):
        return getattr(sys, name)


class PythonBackend:
    language: LanguageId = "python"

    def __init__(self, loader: Optional[Loader] = None):
        self._loader = loader or default_loader
        self._base: Optional[dict] = None
        self._load_task: Optional[asyncio.Future] = None
        self.load_count = 0

    @property
    def ready(self) -> bool:
        return self._base is not None

    async def ensure_loaded(self) -> dict:
        """Load the runtime once; every caller awaits the same load.

        Raises BackendUnavailable if loading fails.
        """
        if self._base is not None:
            return self._base
        task = self._load_task
        if task is None or task.get_loop() is not asyncio.get_running_loop():
            task = self._load_task = asyncio.ensure_future(self._load())
        try:
            return await asyncio.shield(task)
        except BackendUnavailable:
            if self._load_task is task:
                self._load_task = None
            raise
        except Exception as ex:
            if self._load_task is task:
                self._load_task = None
            raise BackendUnavailable(str(ex) or type(ex).__name__) from ex

    async def _load(self) -> dict:
        self.load_count += 1
        logger.debug("Loading Python runtime (attempt %d)", self.load_count)
        loop = asyncio.get_running_loop()
        base = await loop.run_in_executor(None, self._loader)
        self._base = base
        return base

    async def run(
        self,
        source: str,
        sink: OutputSink,
        coordinator: InputCoordinator,
        cancel: asyncio.Event,
    ) -> RunOutcome:
        load = asyncio.ensure_future(self.ensure_loaded())
        stopper = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({load, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopper.cancel()
            if not load.done():
                # the shared load is shielded and keeps going for the next run
                load.cancel()
        if cancel.is_set() or load.cancelled():
            return RunOutcome.CANCELLED
        try:
            base = load.result()
        except BackendUnavailable as ex:
            logger.warning("Python runtime unavailable: %s", ex)
            sink.error(f"Python runtime failed to load: {ex}")
            sink.info(RETRY_HINT)
            return RunOutcome.FAILED

        sink.info(START_BANNER)
        loop = asyncio.get_running_loop()
        stop_flag = threading.Event()
        stdout = SinkStream(sink, OutputKind.OUTPUT, loop)
        stderr = SinkStream(sink, OutputKind.ERROR, loop)
        done: asyncio.Future = loop.create_future()

        async def ask(prompt: str) -> str:
            value = await coordinator.request(prompt)
            if cancel.is_set():
                # the worker must see the stop before it gets the value back
                stop_flag.set()
                stdout.silence()
                stderr.silence()
            else:
                sink.echo(echo_text(prompt, value))
            return value

        def bridged_input(prompt: object = "") -> str:
            if stop_flag.is_set():
                raise RunCancelled("run stopped")
            text = stdout.take_partial() + str(prompt)
            value = asyncio.run_coroutine_threadsafe(ask(text), loop).result()
            if stop_flag.is_set():
                raise RunCancelled("run stopped")
            return value

        def settle(error: Optional[str]) -> None:
            if not done.done():
                done.set_result(error)

        def worker() -> None:
            error = self._execute(source, base, stdout, stderr, bridged_input, stop_flag)
            try:
                loop.call_soon_threadsafe(settle, error)
            except RuntimeError:
                logger.debug("Python run finished after its loop closed")

        thread = threading.Thread(target=worker, name="codepreview-python", daemon=True)
        thread.start()
        stopper = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({done, stopper}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            stopper.cancel()
            if not done.done():
                # stopped (or the awaiting task was cancelled): abandon the worker
                stop_flag.set()
                stdout.silence()
                stderr.silence()
                coordinator.cancel()

        if cancel.is_set():
            return RunOutcome.CANCELLED
        error = done.result()
        if error:
            sink.error(f"Error: {error}")
            return RunOutcome.FAILED
        sink.info(END_BANNER)
        return RunOutcome.COMPLETED

    def _execute(self, source, base, stdout, stderr, bridged_input, stop_flag) -> Optional[str]:
        """Run `source` on the current (worker) thread. Returns an error summary or None."""
        run_sys = RunSys(stdout, stderr)
        host_print = base.get("print", builtins.print)
        host_import = base.get("__import__", builtins.__import__)

        def bridged_print(*args, sep=" ", end="\n", file=None, flush=False):
            host_print(*args, sep=sep, end=end, file=run_sys.stdout if file is None else file, flush=flush)

        def bridged_import(name, globals=None, locals=None, fromlist=(), level=0):
            if name == "sys" and level == 0:
                return run_sys
            return host_import(name, globals, locals, fromlist, level)

        run_builtins = dict(base)
        run_builtins["input"] = bridged_input
        run_builtins["print"] = bridged_print
        run_builtins["__import__"] = bridged_import
        namespace = {"__name__": "__main__", "__builtins__": run_builtins}

        def tracer(frame, event, arg):
            if frame.f_code.co_filename != PREVIEW_FILENAME:
                return None
            if stop_flag.is_set():
                raise RunCancelled("run stopped")
            return tracer

        error = None
        sys.settrace(tracer)
        try:
            exec(compile(source, PREVIEW_FILENAME, "exec"), namespace)
        except RunCancelled:
            logger.debug("Python run unwound after stop")
        except SystemExit:
            pass
        except Exception as ex:
            error = traceback.format_exception_only(type(ex), ex)[-1].strip()
        finally:
            sys.settrace(None)
            stdout.flush_partial()
            stderr.flush_partial()
        return error
