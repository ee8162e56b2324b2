from __future__ import annotations

"""
A pygls-based Language Server acting as the preview shell.

Features:
- Text synchronization and document store
- Semantic tokens: every keystroke re-classifies the buffer (pure, never raises)
- Hover: keyword / builtin / call-site descriptions
- Commands:
    codepreview.run          [uri, languageId?]   -> {"outcome", "lines", "document"}
    codepreview.submitInput  [text]               -> {"accepted": bool}
    codepreview.stop         []
- Notifications to the client while a run is in flight:
    codepreview/output        {"text", "kind"}     one per transcript line
    codepreview/inputRequest  {"prompt"} | null    prompt opened / closed

Note: the server owns one Session, so one run at a time across all documents.
"""

from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Dict, List, Optional
from urllib.parse import urlparse

from pygls.server import LanguageServer
from lsprotocol.types import (
    DidChangeTextDocumentParams,
    DidCloseTextDocumentParams,
    DidOpenTextDocumentParams,
    Hover,
    HoverParams,
    MarkupContent,
    MarkupKind,
    SemanticTokens,
    SemanticTokensLegend,
    SemanticTokensParams,
    TextDocumentSyncKind,
)

from codepreview.interpreter import Session
from codepreview.languages import language_for_suffix
from codepreview.runtime.input_coordinator import PendingInputRequest
from codepreview.types.output import OutputLine
from codepreview_lsp.tokens import (
    TOKEN_MODIFIERS,
    TOKEN_TYPES,
    describe,
    encode_semantic_tokens,
    offset_from_position,
    span_at,
)


@dataclass
class DocumentState:
    text: str
    language_id: str


class PreviewLanguageServer(LanguageServer):
    CMD_NAME = "codepreview-ls"
    CMD_RUN = "codepreview.run"
    CMD_SUBMIT = "codepreview.submitInput"
    CMD_STOP = "codepreview.stop"

    def __init__(self):
        super().__init__(self.CMD_NAME, "v0.1", text_document_sync_kind=TextDocumentSyncKind.Full)
        self.documents: Dict[str, DocumentState] = {}
        self.session = Session()
        self.session.sink.listeners.append(self._forward_line)
        self.session.coordinator.listeners.append(self._forward_prompt)

    def _forward_line(self, line: OutputLine) -> None:
        self.send_notification("codepreview/output", {"text": line.text, "kind": line.kind.value})

    def _forward_prompt(self, request: Optional[PendingInputRequest]) -> None:
        payload = None if request is None else {"prompt": request.prompt}
        self.send_notification("codepreview/inputRequest", payload)


ls = PreviewLanguageServer()


def language_for(uri: str, language_id: Optional[str]) -> str:
    if language_id:
        return language_id.lower()
    return language_for_suffix(PurePosixPath(urlparse(uri).path).suffix)


# --- Text sync ---
@ls.feature("textDocument/didOpen")
def did_open(params: DidOpenTextDocumentParams):
    doc = params.text_document
    ls.documents[doc.uri] = DocumentState(text=doc.text or "", language_id=language_for(doc.uri, doc.language_id))


@ls.feature("textDocument/didChange")
def did_change(params: DidChangeTextDocumentParams):
    uri = params.text_document.uri
    state = ls.documents.get(uri) or DocumentState("", language_for(uri, None))
    if params.content_changes:
        state.text = params.content_changes[-1].text
    ls.documents[uri] = state


@ls.feature("textDocument/didClose")
def did_close(params: DidCloseTextDocumentParams):
    ls.documents.pop(params.text_document.uri, None)


# --- Semantic tokens ---
@ls.feature(
    "textDocument/semanticTokens/full",
    SemanticTokensLegend(token_types=TOKEN_TYPES, token_modifiers=TOKEN_MODIFIERS),
)
def on_semantic_tokens(params: SemanticTokensParams) -> SemanticTokens:
    state = ls.documents.get(params.text_document.uri)
    if not state:
        return SemanticTokens(data=[])
    spans = ls.session.classify(state.text, state.language_id)
    return SemanticTokens(data=encode_semantic_tokens(spans, state.text))


# --- Hover ---
@ls.feature("textDocument/hover")
def on_hover(params: HoverParams) -> Optional[Hover]:
    state = ls.documents.get(params.text_document.uri)
    if not state:
        return None
    offset = offset_from_position(state.text, params.position.line, params.position.character)
    span = span_at(ls.session.classify(state.text, state.language_id), offset)
    contents = describe(span, state.language_id) if span else None
    if contents is None:
        return None
    return Hover(contents=MarkupContent(kind=MarkupKind.PlainText, value=contents))


# --- Commands ---
@ls.command(PreviewLanguageServer.CMD_RUN)
async def run_command(arguments: List):
    uri = arguments[0] if arguments else None
    state = ls.documents.get(uri) if uri else None
    if state is None:
        return {"outcome": "failed", "error": f"Unknown document {uri!r}"}
    language = arguments[1] if len(arguments) > 1 and arguments[1] else state.language_id
    result = await ls.session.run(state.text, language)
    return {
        "outcome": result.outcome.value,
        "lines": [{"text": line.text, "kind": line.kind.value} for line in result.lines],
        "document": result.document,
    }


@ls.command(PreviewLanguageServer.CMD_SUBMIT)
def submit_command(arguments: List):
    text = arguments[0] if arguments else ""
    return {"accepted": ls.session.submit(str(text))}


@ls.command(PreviewLanguageServer.CMD_STOP)
def stop_command(arguments: List):
    ls.session.stop()
    return {"running": ls.session.running}


if __name__ == "__main__":
    # Run the language server over stdio
    ls.start_io()
