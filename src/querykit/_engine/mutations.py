"""Mutation executor.

Mutations are never deduplicated. Each invocation gets a fresh context dict
that the endpoint's hooks share, typically to stash the inverse patches of
an optimistic update in ``on_start`` and replay them in ``on_error``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from querykit._engine._common import TASK_CANCELLED_REASON, call_base_executor, new_request_id, serialize_error
from querykit.cancellation import CancellationToken
from querykit.endpoints import EndpointDefinition, EndpointKind
from querykit.exceptions import MutationRollbackError, QueryCancelledError, RejectedWithValueError
from querykit.handle import InvocationHandle
from querykit.models.invocation import InvocationKind, MutationInvocation
from querykit.models.outcome import InvocationOutcome
from querykit.patches.models import Patch, PatchCollection
from querykit.state.entry import CacheEntry
from querykit.state.events import FulfilledEvent, PendingEvent, RejectedEvent, event_type

if TYPE_CHECKING:
    from querykit.engine import QueryEngine

_logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MutationApi:
    """Second argument of every mutation hook.

    ``context`` is a fresh dict per invocation, shared by ``on_start``,
    ``on_success`` and ``on_error``. The remaining members give hooks access
    to the cache without holding a reference to the engine themselves.
    """

    engine: QueryEngine
    request_id: str
    context: dict[str, Any] = field(default_factory=dict)

    def select_query(self, endpoint_name: str, args: Any) -> CacheEntry:
        return self.engine.select_query(endpoint_name, args)

    def update_query_result(self, endpoint_name: str, args: Any, recipe: Callable[[Any], Any]) -> PatchCollection:
        return self.engine.update_query_result(endpoint_name, args, recipe)

    def patch_query_result(
        self,
        endpoint_name: str,
        args: Any,
        patches: Sequence[Patch | Mapping[str, Any]],
    ) -> None:
        self.engine.patch_query_result(endpoint_name, args, patches)


def _reject(
    engine: QueryEngine,
    invocation: MutationInvocation,
    error: BaseException,
) -> InvocationOutcome:
    engine._dispatch(
        RejectedEvent(
            type=event_type(engine.config.reducer_path, InvocationKind.MUTATION, "rejected"),
            kind=InvocationKind.MUTATION,
            endpoint_name=invocation.endpoint_name,
            request_id=invocation.request_id,
            track=invocation.track,
            error=serialize_error(error),
            was_cancelled=isinstance(error, QueryCancelledError),
            rejected_with_value=isinstance(error, RejectedWithValueError),
        )
    )
    return InvocationOutcome.rejected(invocation.request_id, error)


def _run_on_error(
    endpoint: EndpointDefinition,
    invocation: MutationInvocation,
    api: MutationApi,
    error: BaseException,
) -> BaseException:
    """Give the endpoint a chance to roll back; return the error to surface."""
    if endpoint.on_error is None:
        return error
    try:
        endpoint.on_error(invocation.original_args, api, error)
    except Exception as rollback_exc:
        _logger.debug("on_error hook of %s raised during rollback", invocation.endpoint_name, exc_info=True)
        composite = MutationRollbackError(original=error, rollback_error=rollback_exc)
        composite.__cause__ = rollback_exc
        return composite
    return error


def start_mutation(
    engine: QueryEngine,
    endpoint_name: str,
    args: Any,
    *,
    track: bool = True,
) -> InvocationHandle:
    """Dispatch a mutation.

    ``pending`` is emitted and ``on_start`` runs before this function
    returns, so an optimistic update is visible to the caller immediately.
    An ``on_start`` failure rejects the invocation without calling the base
    executor.
    """
    endpoint = engine._require_endpoint(endpoint_name, EndpointKind.MUTATION)
    invocation = MutationInvocation(
        request_id=new_request_id(),
        endpoint_name=endpoint_name,
        original_args=args,
        internal_args=endpoint.build_internal_args(args),
        track=track,
        started_timestamp=engine._clock(),
    )
    token = CancellationToken()
    api = MutationApi(engine=engine, request_id=invocation.request_id, context={})

    engine._dispatch(
        PendingEvent(
            type=event_type(engine.config.reducer_path, InvocationKind.MUTATION, "pending"),
            kind=InvocationKind.MUTATION,
            endpoint_name=endpoint_name,
            request_id=invocation.request_id,
            track=track,
            started_timestamp=invocation.started_timestamp,
            original_args=args,
        )
    )

    if endpoint.on_start is not None:
        try:
            endpoint.on_start(args, api)
        except Exception as exc:
            _logger.debug("on_start hook of %s raised", endpoint_name, exc_info=True)
            return InvocationHandle.resolved(invocation, token, _reject(engine, invocation, exc))

    task = asyncio.ensure_future(execute_mutation(engine, endpoint, invocation, api, token))
    return InvocationHandle(invocation, token, task)


async def execute_mutation(
    engine: QueryEngine,
    endpoint: EndpointDefinition,
    invocation: MutationInvocation,
    api: MutationApi,
    token: CancellationToken,
) -> InvocationOutcome:
    """Run a mutation whose ``pending`` event and ``on_start`` hook have already run."""
    try:
        raw = await call_base_executor(
            engine._base_executor,
            invocation.internal_args,
            endpoint_name=invocation.endpoint_name,
            token=token,
        )
        result = endpoint.transform(raw)
        if endpoint.on_success is not None:
            endpoint.on_success(invocation.original_args, api, result)
    except asyncio.CancelledError:
        error = _run_on_error(endpoint, invocation, api, QueryCancelledError(TASK_CANCELLED_REASON))
        if isinstance(error, MutationRollbackError):
            _logger.warning(
                "Rollback of %s failed while its task was cancelled",
                invocation.endpoint_name,
                exc_info=error,
            )
        _reject(engine, invocation, error)
        raise
    except Exception as exc:
        _logger.debug("Mutation %s failed: %s", invocation.endpoint_name, type(exc).__name__)
        return _reject(engine, invocation, _run_on_error(endpoint, invocation, api, exc))
    except BaseException as exc:
        _reject(engine, invocation, _run_on_error(endpoint, invocation, api, exc))
        raise

    fulfilled_timestamp = engine._clock()
    engine._dispatch(
        FulfilledEvent(
            type=event_type(engine.config.reducer_path, InvocationKind.MUTATION, "fulfilled"),
            kind=InvocationKind.MUTATION,
            endpoint_name=invocation.endpoint_name,
            request_id=invocation.request_id,
            track=invocation.track,
            fulfilled_timestamp=fulfilled_timestamp,
            result=result,
        )
    )
    return InvocationOutcome.fulfilled(invocation.request_id, result, fulfilled_timestamp=fulfilled_timestamp)
