"""Console front-end.

  python -m codepreview run hello.py                 # pseudo-execute, prompts on stdin
  python -m codepreview run hello.py --runtime       # real Python backend
  python -m codepreview run Main.java --mode batch
  python -m codepreview highlight hello.py [--html]
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from codepreview.config import get_log_level
from codepreview.interpreter import Session
from codepreview.languages import language_for_suffix
from codepreview.reader.classifier import classify, render_markup
from codepreview.runtime.input_coordinator import PendingInputRequest
from codepreview.types.output import OutputKind, OutputLine, RunOutcome

PREFIXES = {
    OutputKind.INFO: "",
    OutputKind.OUTPUT: "",
    OutputKind.INPUT: "",
    OutputKind.WARNING: "! ",
    OutputKind.ERROR: "!! ",
}

EXIT_CODES = {
    RunOutcome.COMPLETED: 0,
    RunOutcome.FAILED: 1,
    RunOutcome.REJECTED: 2,
    RunOutcome.CANCELLED: 130,
}


def language_for(path: Path, explicit: Optional[str]) -> str:
    if explicit:
        return explicit
    return language_for_suffix(path.suffix)


def _print_line(line: OutputLine) -> None:
    # input echoes are already on the terminal
    if line.kind is OutputKind.INPUT:
        return
    stream = sys.stderr if line.kind in (OutputKind.ERROR, OutputKind.WARNING) else sys.stdout
    print(PREFIXES[line.kind] + line.text, file=stream)


async def _run(session: Session, source: str, language: str) -> RunOutcome:
    loop = asyncio.get_running_loop()

    async def answer(request: PendingInputRequest) -> None:
        while session.coordinator.pending is request:
            try:
                text = await loop.run_in_executor(None, input, request.prompt)
            except EOFError:
                session.stop()
                return
            if session.coordinator.pending is request and not session.submit(text):
                print("! a value is required", file=sys.stderr)

    def on_prompt(request: Optional[PendingInputRequest]) -> None:
        if request is not None:
            loop.create_task(answer(request))

    session.sink.listeners.append(_print_line)
    session.coordinator.listeners.append(on_prompt)
    result = await session.run(source, language)
    if result.document is not None:
        print(result.document)
    return result.outcome


def cmd_run(args: argparse.Namespace) -> int:
    path = Path(args.file)
    source = path.read_text(encoding="utf-8")
    session = Session(input_mode=args.mode, delegate=args.runtime)
    try:
        outcome = asyncio.run(_run(session, source, language_for(path, args.language)))
    except KeyboardInterrupt:
        return EXIT_CODES[RunOutcome.CANCELLED]
    return EXIT_CODES[outcome]


def cmd_highlight(args: argparse.Namespace) -> int:
    path = Path(args.file)
    spans = classify(path.read_text(encoding="utf-8"), language_for(path, args.language))
    if args.html:
        print(render_markup(spans))
        return 0
    for span in spans:
        print(f"{span.start:>6} {span.end:>6}  {span.category.value:<9} {span.text!r}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="codepreview", description="Live source preview engine")
    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="run a buffer and print its transcript")
    run.add_argument("file")
    run.add_argument("--language", "-l", help="language id (default: from the file extension)")
    run.add_argument("--mode", choices=["sync", "batch"], default=None, help="input collection mode")
    run.add_argument("--runtime", action="store_true", help="execute Python with the real interpreter")
    run.set_defaults(func=cmd_run)

    hl = sub.add_parser("highlight", help="print the classified spans of a buffer")
    hl.add_argument("file")
    hl.add_argument("--language", "-l")
    hl.add_argument("--html", action="store_true", help="emit highlighted markup")
    hl.set_defaults(func=cmd_highlight)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    logging.basicConfig(level=get_log_level(), format="%(levelname)s %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
