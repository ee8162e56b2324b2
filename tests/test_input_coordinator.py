import asyncio

import pytest

from codepreview.errors import InputProtocolError
from codepreview.runtime import InputCoordinator, InputState


def test_starts_idle():
    coordinator = InputCoordinator()
    assert coordinator.state is InputState.IDLE
    assert coordinator.pending is None
    assert coordinator.prompt is None


def test_submit_resolves_trimmed_value():
    async def scenario():
        coordinator = InputCoordinator()
        task = asyncio.ensure_future(coordinator.request("Enter: "))
        await asyncio.sleep(0)
        assert coordinator.state is InputState.AWAITING_INPUT
        assert coordinator.prompt == "Enter: "
        assert coordinator.submit("  Ada  ")
        assert coordinator.state is InputState.IDLE
        return await task

    assert asyncio.run(scenario()) == "Ada"


@pytest.mark.parametrize("blank", ["", "   ", "\t\n", None])
def test_blank_submission_is_rejected(blank):
    async def scenario():
        coordinator = InputCoordinator()
        task = asyncio.ensure_future(coordinator.request("Name: "))
        await asyncio.sleep(0)
        assert not coordinator.submit(blank)
        assert coordinator.state is InputState.AWAITING_INPUT
        assert not task.done()
        coordinator.submit("ok")
        return await task

    assert asyncio.run(scenario()) == "ok"


def test_submit_while_idle_is_ignored():
    coordinator = InputCoordinator()
    assert not coordinator.submit("stray")
    assert coordinator.state is InputState.IDLE


def test_second_request_is_a_protocol_error():
    async def scenario():
        coordinator = InputCoordinator()
        first = asyncio.ensure_future(coordinator.request("a"))
        await asyncio.sleep(0)
        with pytest.raises(InputProtocolError):
            await coordinator.request("b")
        # the first request is untouched
        assert coordinator.prompt == "a"
        coordinator.submit("x")
        return await first

    assert asyncio.run(scenario()) == "x"


def test_cancel_resolves_with_empty_string():
    async def scenario():
        coordinator = InputCoordinator()
        task = asyncio.ensure_future(coordinator.request("?"))
        await asyncio.sleep(0)
        assert coordinator.cancel()
        assert coordinator.state is InputState.IDLE
        assert not coordinator.cancel()
        return await task

    assert asyncio.run(scenario()) == ""


def test_task_cancellation_leaves_coordinator_idle():
    async def scenario():
        coordinator = InputCoordinator()
        task = asyncio.ensure_future(coordinator.request("?"))
        await asyncio.sleep(0)
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return coordinator

    coordinator = asyncio.run(scenario())
    assert coordinator.state is InputState.IDLE


def test_listeners_see_open_and_close():
    seen = []

    async def scenario():
        coordinator = InputCoordinator()
        coordinator.listeners.append(lambda req: seen.append(None if req is None else req.prompt))
        task = asyncio.ensure_future(coordinator.request("Age: "))
        await asyncio.sleep(0)
        coordinator.submit("3")
        await task

    asyncio.run(scenario())
    assert seen == ["Age: ", None]


def test_failing_listener_does_not_break_request():
    async def scenario():
        coordinator = InputCoordinator()

        def broken(_request):
            raise RuntimeError("listener bug")

        coordinator.listeners.append(broken)
        task = asyncio.ensure_future(coordinator.request("x"))
        await asyncio.sleep(0)
        coordinator.submit("y")
        return await task

    assert asyncio.run(scenario()) == "y"
