"""Cooperative cancellation tokens.

The engine creates one token per invocation and passes it to the base
executor as ``api.signal``. Firing the token makes the invocation resolve
as cancelled; whether the underlying I/O actually stops is up to the
executor, which can poll :attr:`CancellationToken.cancelled`, call
:meth:`CancellationToken.raise_if_cancelled` or await
:meth:`CancellationToken.wait`.
"""

from __future__ import annotations

import asyncio

from querykit.exceptions import QueryCancelledError


class CancellationToken:
    """One-shot cancellation signal."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "Aborted") -> bool:
        """Fire the token. Returns ``False`` if it had already fired."""
        if self._event.is_set():
            return False
        self._reason = reason
        self._event.set()
        return True

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise QueryCancelledError(self._reason or "Aborted")

    async def wait(self) -> str:
        """Block until the token fires; returns the reason."""
        await self._event.wait()
        return self._reason or ""
