from __future__ import annotations

import asyncio

import pytest

from querykit.cancellation import CancellationToken
from querykit.exceptions import QueryCancelledError


def test_token_fires_once() -> None:
    token = CancellationToken()

    token.raise_if_cancelled()
    assert token.cancel("first") is True
    assert token.cancel("second") is False

    assert token.cancelled
    assert token.reason == "first"
    with pytest.raises(QueryCancelledError, match="first"):
        token.raise_if_cancelled()


@pytest.mark.asyncio
async def test_wait_resolves_with_reason() -> None:
    token = CancellationToken()
    waiter = asyncio.create_task(token.wait())
    await asyncio.sleep(0)
    assert not waiter.done()

    token.cancel("stop")

    assert await asyncio.wait_for(waiter, 1.0) == "stop"


@pytest.mark.asyncio
async def test_wait_after_cancel_returns_immediately() -> None:
    token = CancellationToken()
    token.cancel("late")

    assert await asyncio.wait_for(token.wait(), 1.0) == "late"
