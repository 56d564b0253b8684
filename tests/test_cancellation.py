"""
Unit tests for cancellation tokens.
"""

import asyncio

import pytest

from temperature.weather import CancellationToken, OperationCancelledError
from temperature.weather.cancellation import drain


@pytest.mark.asyncio
async def test_cancel_is_idempotent():
    token = CancellationToken()
    first = RuntimeError("first")

    assert token.cancel(first) is True
    assert token.cancel(RuntimeError("second")) is False
    assert token.cancelled
    assert token.reason is first


@pytest.mark.asyncio
async def test_cancel_propagates_to_children():
    parent = CancellationToken()
    child = parent.child()
    grandchild = child.child()

    parent.cancel()

    assert child.cancelled
    assert grandchild.cancelled


@pytest.mark.asyncio
async def test_child_cancel_does_not_touch_parent():
    parent = CancellationToken()
    child = parent.child()

    child.cancel()

    assert not parent.cancelled


@pytest.mark.asyncio
async def test_child_of_cancelled_token_starts_cancelled():
    parent = CancellationToken()
    parent.cancel()

    assert parent.child().cancelled


@pytest.mark.asyncio
async def test_deadline_cancels_with_reason():
    reason = TimeoutError("late")
    token = CancellationToken.with_deadline(0.05, reason)

    assert await asyncio.wait_for(token.wait(), timeout=1.0) is reason
    assert token.cancelled


@pytest.mark.asyncio
async def test_close_disarms_deadline():
    token = CancellationToken.with_deadline(0.05)
    token.close()

    await asyncio.sleep(0.1)

    assert not token.cancelled


@pytest.mark.asyncio
async def test_callbacks_run_once():
    token = CancellationToken()
    seen = []
    token.add_callback(seen.append)

    token.cancel("stop")
    token.cancel("again")

    assert seen == ["stop"]


@pytest.mark.asyncio
async def test_callback_on_cancelled_token_runs_immediately():
    token = CancellationToken()
    token.cancel("done")
    seen = []

    token.add_callback(seen.append)

    assert seen == ["done"]


@pytest.mark.asyncio
async def test_raise_if_cancelled():
    token = CancellationToken()
    token.raise_if_cancelled()

    token.cancel()

    with pytest.raises(OperationCancelledError):
        token.raise_if_cancelled()


@pytest.mark.asyncio
async def test_guard_returns_result():
    token = CancellationToken()

    async def work():
        await asyncio.sleep(0)
        return 42

    assert await token.guard(work()) == 42


@pytest.mark.asyncio
async def test_guard_aborts_wrapped_operation():
    token = CancellationToken()
    aborted = asyncio.Event()

    async def slow():
        try:
            await asyncio.sleep(3600)
        except asyncio.CancelledError:
            aborted.set()
            raise

    asyncio.get_running_loop().call_later(0.05, token.cancel)

    with pytest.raises(OperationCancelledError):
        await asyncio.wait_for(token.guard(slow()), timeout=1.0)
    assert aborted.is_set()


@pytest.mark.asyncio
async def test_guard_on_cancelled_token_does_not_start_work():
    token = CancellationToken()
    token.cancel()
    started = []

    async def work():
        started.append(True)

    with pytest.raises(OperationCancelledError):
        await token.guard(work())
    assert started == []


@pytest.mark.asyncio
async def test_drain_cancels_stragglers_after_grace():
    loop = asyncio.get_running_loop()
    stubborn = asyncio.ensure_future(asyncio.sleep(3600))
    quick = asyncio.ensure_future(asyncio.sleep(0.01))

    started = loop.time()
    await drain([stubborn, quick], grace=0.1)

    assert loop.time() - started < 1.0
    assert stubborn.cancelled()
    assert quick.done() and not quick.cancelled()
