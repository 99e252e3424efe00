"""Awaitable handle returned by ``start_query`` / ``start_mutation``."""

from __future__ import annotations

import asyncio
from collections.abc import Generator
from typing import Any

from querykit.cancellation import CancellationToken
from querykit.models.invocation import MutationInvocation, QueryInvocation
from querykit.models.outcome import InvocationOutcome


class InvocationHandle:
    """A dispatched invocation.

    Await it for the :class:`InvocationOutcome`, or :meth:`unwrap` it for
    the data. :meth:`abort` fires the invocation's cancellation token.
    """

    def __init__(
        self,
        invocation: QueryInvocation | MutationInvocation,
        token: CancellationToken,
        future: asyncio.Future[InvocationOutcome],
    ) -> None:
        self._invocation = invocation
        self._token = token
        self._future = future

    @classmethod
    def resolved(
        cls,
        invocation: QueryInvocation | MutationInvocation,
        token: CancellationToken,
        outcome: InvocationOutcome,
    ) -> InvocationHandle:
        future: asyncio.Future[InvocationOutcome] = asyncio.get_running_loop().create_future()
        future.set_result(outcome)
        return cls(invocation, token, future)

    @property
    def request_id(self) -> str:
        return self._invocation.request_id

    @property
    def invocation(self) -> QueryInvocation | MutationInvocation:
        return self._invocation

    def done(self) -> bool:
        return self._future.done()

    def abort(self, reason: str = "Aborted") -> None:
        """Request cancellation. No-op once the invocation has settled."""
        if not self._future.done():
            self._token.cancel(reason)

    def __await__(self) -> Generator[Any, None, InvocationOutcome]:
        return self._future.__await__()

    async def unwrap(self) -> Any:
        outcome = await self
        return outcome.unwrap()
