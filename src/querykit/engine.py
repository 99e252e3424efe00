"""High-level async engine for deduplicated queries and optimistic mutations."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import Any

from querykit._engine import mutations as _mutations
from querykit._engine import patching as _patching
from querykit._engine import queries as _queries
from querykit._engine._common import now_ms
from querykit._engine.mutations import MutationApi
from querykit._redact import summarize_for_log
from querykit.config import EngineConfig
from querykit.endpoints import BaseExecutor, EndpointDefinition, EndpointKind
from querykit.exceptions import EndpointKindError, EndpointNotFoundError
from querykit.handle import InvocationHandle
from querykit.models.outcome import InvocationOutcome
from querykit.patches.models import Patch, PatchCollection
from querykit.serialize import SerializeQueryArgs, default_serialize_query_args
from querykit.state.entry import CacheEntry
from querykit.state.events import FulfilledEvent, LifecycleEvent, PatchedEvent, PendingEvent
from querykit.state.store import CacheStore, QueryCacheStore

_logger = logging.getLogger(__name__)

__all__ = ["MutationApi", "QueryEngine"]


class QueryEngine:
    """Executes queries and mutations against a base executor.

    The engine holds no cache state of its own: every transition is emitted
    as a lifecycle event into ``store``, and the dedup gate reads back from
    it.

    Usage::

        engine = QueryEngine(
            {"getTodo": query_endpoint(), "renameTodo": mutation_endpoint(on_start=..., on_error=...)},
            base_executor,
        )
        todo = await engine.query("getTodo", 1)
        todo.unwrap()
    """

    def __init__(
        self,
        endpoints: Mapping[str, EndpointDefinition],
        base_executor: BaseExecutor,
        store: CacheStore | None = None,
        *,
        config: EngineConfig | None = None,
        serialize_query_args: SerializeQueryArgs = default_serialize_query_args,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._endpoints = dict(endpoints)
        self._base_executor = base_executor
        self.store: CacheStore = store if store is not None else QueryCacheStore()
        self._config = config if config is not None else EngineConfig()
        self._serialize_query_args = serialize_query_args
        self._clock = clock

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def endpoints(self) -> Mapping[str, EndpointDefinition]:
        return dict(self._endpoints)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require_endpoint(self, endpoint_name: str, kind: EndpointKind) -> EndpointDefinition:
        endpoint = self._endpoints.get(endpoint_name)
        if endpoint is None:
            raise EndpointNotFoundError(endpoint_name)
        if endpoint.kind != kind:
            raise EndpointKindError(endpoint_name, expected=kind, actual=endpoint.kind)
        return endpoint

    def _dispatch(self, event: LifecycleEvent) -> None:
        """Hand one event to the store; the only write path of the engine.

        Cache keys embed the serialized args and are never logged. Args and
        results are logged only with ``log_payloads`` on, and then only in
        their redacted summary form.
        """
        if isinstance(event, PatchedEvent):
            _logger.debug("%s endpoint=%s patches=%d", event.type, event.endpoint_name, len(event.patches))
        else:
            _logger.debug("%s endpoint=%s request_id=%s", event.type, event.endpoint_name, event.request_id)
        if self._config.log_payloads:
            self._log_payload(event)
        self.store.apply(event)

    def _log_payload(self, event: LifecycleEvent) -> None:
        payload: Any
        if isinstance(event, PendingEvent):
            payload = event.original_args
        elif isinstance(event, FulfilledEvent):
            payload = event.result
        elif isinstance(event, PatchedEvent):
            payload = [patch.model_dump() for patch in event.patches]
        elif event.condition:
            # The skip message carries the cache key.
            return
        else:
            payload = event.error
        summary = summarize_for_log(payload, max_string=self._config.max_log_string)
        _logger.debug("%s payload=%s", event.type, summary)

    # ------------------------------------------------------------------
    # Selectors
    # ------------------------------------------------------------------

    def cache_key_for(self, endpoint_name: str, args: Any) -> str:
        """Cache key of ``endpoint_name(args)``, derived from the internal args."""
        endpoint = self._require_endpoint(endpoint_name, EndpointKind.QUERY)
        return self._serialize_query_args(endpoint_name, endpoint.build_internal_args(args))

    def select_query(self, endpoint_name: str, args: Any) -> CacheEntry:
        """Current cache entry for ``endpoint_name(args)``; ``uninitialized`` if absent."""
        entry = self.store.get_query(self.cache_key_for(endpoint_name, args))
        return entry if entry is not None else CacheEntry()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def start_query(self, endpoint_name: str, args: Any = None, *, force_refetch: bool = False) -> InvocationHandle:
        """Dispatch a query and return its handle without waiting for it.

        Must be called from a running event loop.
        """
        return _queries.start_query(self, endpoint_name, args, force_refetch=force_refetch)

    async def query(self, endpoint_name: str, args: Any = None, *, force_refetch: bool = False) -> InvocationOutcome:
        """Dispatch a query and wait for its outcome."""
        return await self.start_query(endpoint_name, args, force_refetch=force_refetch)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def start_mutation(self, endpoint_name: str, args: Any = None, *, track: bool = True) -> InvocationHandle:
        """Dispatch a mutation and return its handle without waiting for it.

        Must be called from a running event loop.
        """
        return _mutations.start_mutation(self, endpoint_name, args, track=track)

    async def mutate(self, endpoint_name: str, args: Any = None, *, track: bool = True) -> InvocationOutcome:
        """Dispatch a mutation and wait for its outcome."""
        return await self.start_mutation(endpoint_name, args, track=track)

    # ------------------------------------------------------------------
    # Patches
    # ------------------------------------------------------------------

    def patch_query_result(
        self,
        endpoint_name: str,
        args: Any,
        patches: Sequence[Patch | Mapping[str, Any]],
    ) -> None:
        """Apply *patches* to the cached result of ``endpoint_name(args)``."""
        _patching.patch_query_result(self, endpoint_name, args, patches)

    def update_query_result(self, endpoint_name: str, args: Any, recipe: Callable[[Any], Any]) -> PatchCollection:
        """Optimistically update a cached result; returns the patches and their inverse."""
        return _patching.update_query_result(self, endpoint_name, args, recipe)
