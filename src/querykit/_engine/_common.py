"""Shared helpers for the query and mutation executors."""

from __future__ import annotations

import asyncio
import secrets
import time
from typing import Any

from querykit.cancellation import CancellationToken
from querykit.endpoints import BaseExecutor, BaseQueryApi
from querykit.exceptions import QueryCancelledError, RejectedWithValueError, TransportFailureError

TASK_CANCELLED_REASON = "Invocation task cancelled"


def now_ms() -> int:
    """Current epoch timestamp in milliseconds."""
    return int(time.time() * 1000)


def new_request_id() -> str:
    return secrets.token_urlsafe(12)


def serialize_error(error: BaseException) -> Any:
    """Render *error* for a ``rejected`` event.

    Explicit rejections carry their payload untouched. Transport failures are
    reported as the exception the executor actually raised.
    """
    if isinstance(error, RejectedWithValueError):
        return error.payload
    if isinstance(error, TransportFailureError) and error.__cause__ is not None:
        error = error.__cause__
    return {"name": type(error).__name__, "message": str(error)}


def _discard_result(task: asyncio.Future[Any]) -> None:
    # Retrieve the exception of an abandoned call so asyncio does not log it.
    if not task.cancelled():
        task.exception()


async def call_base_executor(
    base_executor: BaseExecutor,
    internal_args: Any,
    *,
    endpoint_name: str,
    token: CancellationToken,
) -> Any:
    """Run the base executor, racing it against *token*.

    Raises :class:`QueryCancelledError` when the token fires first (the
    call is then cancelled and abandoned), :class:`RejectedWithValueError`
    for explicit rejections, and :class:`TransportFailureError` for anything
    else the executor raises. If the awaiting task is itself cancelled the
    token is fired and :class:`asyncio.CancelledError` propagates.
    """
    token.raise_if_cancelled()
    api = BaseQueryApi(signal=token, endpoint=endpoint_name)
    try:
        call = asyncio.ensure_future(base_executor(internal_args, api))
    except Exception as exc:
        raise TransportFailureError(
            f"Base executor failed for {endpoint_name}: {exc}",
            endpoint=endpoint_name,
        ) from exc
    waiter = asyncio.ensure_future(token.wait())
    try:
        await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        token.cancel(TASK_CANCELLED_REASON)
        call.cancel()
        call.add_done_callback(_discard_result)
        raise
    finally:
        waiter.cancel()

    # Cancellation wins even when the call settled in the same loop iteration.
    if token.cancelled:
        call.cancel()
        call.add_done_callback(_discard_result)
        raise QueryCancelledError(token.reason or "Aborted")

    if call.cancelled():
        raise QueryCancelledError("Base executor was cancelled")

    try:
        result = call.result()
    except (RejectedWithValueError, TransportFailureError):
        raise
    except Exception as exc:
        raise TransportFailureError(
            f"Base executor failed for {endpoint_name}: {exc}",
            endpoint=endpoint_name,
        ) from exc

    if isinstance(result, RejectedWithValueError):
        raise result
    return result
