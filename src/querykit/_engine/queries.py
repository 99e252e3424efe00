"""Query executor."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from querykit._engine._common import TASK_CANCELLED_REASON, call_base_executor, new_request_id, serialize_error
from querykit.cancellation import CancellationToken
from querykit.endpoints import EndpointDefinition, EndpointKind
from querykit.exceptions import DedupSkippedError, QueryCancelledError, RejectedWithValueError
from querykit.handle import InvocationHandle
from querykit.models.invocation import InvocationKind, QueryInvocation
from querykit.models.outcome import InvocationOutcome
from querykit.state.events import FulfilledEvent, PendingEvent, RejectedEvent, event_type
from querykit.state.policy import should_execute_query

if TYPE_CHECKING:
    from querykit.engine import QueryEngine

_logger = logging.getLogger(__name__)


def _rejected_event(
    engine: QueryEngine,
    invocation: QueryInvocation,
    error: BaseException,
    **flags: bool,
) -> RejectedEvent:
    return RejectedEvent(
        type=event_type(engine.config.reducer_path, InvocationKind.QUERY, "rejected"),
        kind=InvocationKind.QUERY,
        endpoint_name=invocation.endpoint_name,
        request_id=invocation.request_id,
        cache_key=invocation.cache_key,
        error=serialize_error(error),
        was_cancelled=isinstance(error, QueryCancelledError),
        rejected_with_value=isinstance(error, RejectedWithValueError),
        **flags,
    )


def start_query(
    engine: QueryEngine,
    endpoint_name: str,
    args: Any,
    *,
    force_refetch: bool = False,
) -> InvocationHandle:
    """Dispatch a query.

    Runs synchronously up to the base executor call: the dedup gate and the
    ``pending`` event happen before this function returns, so no other task
    can slip in between them for the same cache key.
    """
    endpoint = engine._require_endpoint(endpoint_name, EndpointKind.QUERY)
    internal_args = endpoint.build_internal_args(args)
    invocation = QueryInvocation(
        request_id=new_request_id(),
        endpoint_name=endpoint_name,
        original_args=args,
        internal_args=internal_args,
        cache_key=engine._serialize_query_args(endpoint_name, internal_args),
        force_refetch=force_refetch,
        started_timestamp=engine._clock(),
    )
    token = CancellationToken()

    entry = engine.store.get_query(invocation.cache_key)
    if entry is not None and not should_execute_query(entry, force_refetch=force_refetch):
        _logger.debug("Query %s skipped (request %s): entry is %s", endpoint_name, invocation.request_id, entry.status)
        error = DedupSkippedError(invocation.cache_key, status=entry.status)
        if engine.config.dispatch_condition_rejection:
            engine._dispatch(_rejected_event(engine, invocation, error, condition=True))
        outcome = InvocationOutcome.rejected(invocation.request_id, error, condition=True, data=entry.data)
        return InvocationHandle.resolved(invocation, token, outcome)

    engine._dispatch(
        PendingEvent(
            type=event_type(engine.config.reducer_path, InvocationKind.QUERY, "pending"),
            kind=InvocationKind.QUERY,
            endpoint_name=endpoint_name,
            request_id=invocation.request_id,
            cache_key=invocation.cache_key,
            started_timestamp=invocation.started_timestamp,
            original_args=args,
            force_refetch=force_refetch,
        )
    )
    task = asyncio.ensure_future(execute_query(engine, endpoint, invocation, token))
    return InvocationHandle(invocation, token, task)


async def execute_query(
    engine: QueryEngine,
    endpoint: EndpointDefinition,
    invocation: QueryInvocation,
    token: CancellationToken,
) -> InvocationOutcome:
    """Run a query whose ``pending`` event has already been emitted."""
    try:
        raw = await call_base_executor(
            engine._base_executor,
            invocation.internal_args,
            endpoint_name=invocation.endpoint_name,
            token=token,
        )
        result = endpoint.transform(raw)
    except asyncio.CancelledError:
        engine._dispatch(_rejected_event(engine, invocation, QueryCancelledError(TASK_CANCELLED_REASON)))
        raise
    except Exception as exc:
        _logger.debug(
            "Query %s failed (request %s): %s",
            invocation.endpoint_name,
            invocation.request_id,
            type(exc).__name__,
        )
        engine._dispatch(_rejected_event(engine, invocation, exc))
        return InvocationOutcome.rejected(invocation.request_id, exc)
    except BaseException as exc:
        # The entry must not stay pending.
        engine._dispatch(_rejected_event(engine, invocation, exc))
        raise

    fulfilled_timestamp = engine._clock()
    engine._dispatch(
        FulfilledEvent(
            type=event_type(engine.config.reducer_path, InvocationKind.QUERY, "fulfilled"),
            kind=InvocationKind.QUERY,
            endpoint_name=invocation.endpoint_name,
            request_id=invocation.request_id,
            cache_key=invocation.cache_key,
            fulfilled_timestamp=fulfilled_timestamp,
            result=result,
        )
    )
    return InvocationOutcome.fulfilled(invocation.request_id, result, fulfilled_timestamp=fulfilled_timestamp)
