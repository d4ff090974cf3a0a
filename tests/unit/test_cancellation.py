"""Unit tests for cooperative cancellation."""

import asyncio

import pytest

from src.models.errors import PipelineCancelledError
from src.utils.cancellation import CancellationToken, guarded


class TestCancellationToken:
    """Test token state and run() racing."""

    def test_new_token_not_cancelled(self):
        token = CancellationToken()
        assert token.cancelled is False
        token.raise_if_cancelled()  # Should not raise

    def test_cancel_sets_reason_once(self):
        token = CancellationToken()
        token.cancel("first")
        token.cancel("second")

        assert token.cancelled is True
        assert token.reason == "first"
        with pytest.raises(PipelineCancelledError, match="first"):
            token.raise_if_cancelled()

    @pytest.mark.asyncio
    async def test_run_returns_result(self):
        async def work():
            return 42

        assert await CancellationToken().run(work()) == 42

    @pytest.mark.asyncio
    async def test_run_propagates_errors(self):
        async def work():
            raise ValueError("boom")

        with pytest.raises(ValueError, match="boom"):
            await CancellationToken().run(work())

    @pytest.mark.asyncio
    async def test_run_rejects_already_cancelled_token(self):
        token = CancellationToken()
        token.cancel()
        started = []

        async def work():
            started.append(True)

        coro = work()
        with pytest.raises(PipelineCancelledError):
            await token.run(coro)
        coro.close()
        assert started == []

    @pytest.mark.asyncio
    async def test_cancel_abandons_in_flight_call(self):
        token = CancellationToken()
        finished = []

        async def slow():
            await asyncio.sleep(10)
            finished.append(True)

        async def cancel_soon():
            await asyncio.sleep(0.01)
            token.cancel("user gave up")

        canceller = asyncio.create_task(cancel_soon())
        with pytest.raises(PipelineCancelledError, match="user gave up"):
            await token.run(slow())
        await canceller
        assert finished == []


class TestGuarded:
    """Test the guarded() helper."""

    @pytest.mark.asyncio
    async def test_without_token_awaits_directly(self):
        async def work():
            return "done"

        assert await guarded(work(), None) == "done"

    @pytest.mark.asyncio
    async def test_with_cancelled_token_raises(self):
        token = CancellationToken()
        token.cancel()

        async def work():
            return "done"

        coro = work()
        with pytest.raises(PipelineCancelledError):
            await guarded(coro, token)
        coro.close()
