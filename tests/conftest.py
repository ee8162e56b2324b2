import asyncio

import pytest

from codepreview.config import get_languages_files
from codepreview.interpreter import Session
from codepreview.languages import LanguageRegistry, reset_registry

# Shared fixtures. Async code is driven with asyncio.run() from plain test
# functions; `run_preview` plays the human at the keyboard by answering each
# prompt from a scripted list (running out of answers means pressing Stop).


@pytest.fixture(autouse=True)
def _isolated_config(monkeypatch):
    monkeypatch.delenv("CODEPREVIEW_LANGUAGES_PATH", raising=False)
    monkeypatch.delenv("CODEPREVIEW_INPUT_MODE", raising=False)
    reset_registry()
    yield
    reset_registry()


@pytest.fixture
def registry():
    reg = LanguageRegistry()
    for path in get_languages_files():
        reg.load_file(path)
    return reg


@pytest.fixture
def make_session(registry):
    def factory(**kwargs):
        return Session(registry, **kwargs)
    return factory


async def drive(session, source, language, answers=()):
    loop = asyncio.get_running_loop()
    pending_answers = list(answers)
    prompts = []

    def answer(request):
        if session.coordinator.pending is not request:
            return
        if pending_answers:
            if not session.submit(pending_answers.pop(0)):
                # rejected (blank): the prompt stays open for the next answer
                loop.call_soon(answer, request)
        else:
            session.stop()

    def on_prompt(request):
        if request is not None:
            prompts.append(request.prompt)
            loop.call_soon(answer, request)

    session.coordinator.listeners.append(on_prompt)
    try:
        result = await session.run(source, language)
    finally:
        session.coordinator.listeners.remove(on_prompt)
    return result, prompts


@pytest.fixture
def run_preview(make_session):
    def runner(source, language, answers=(), **session_kwargs):
        session = make_session(**session_kwargs)
        result, prompts = asyncio.run(drive(session, source, language, answers))
        return session, result, prompts
    return runner
