"""Deterministic in-memory cache store.

The engine only talks to stores through :class:`CacheStore`. This
implementation folds lifecycle events into query and mutation entries and
is what :class:`querykit.engine.QueryEngine` uses when no store is given.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Protocol

from querykit.models.invocation import InvocationKind
from querykit.patches.apply import apply_patches
from querykit.state.entry import CacheEntry, QueryStatus
from querykit.state.events import FulfilledEvent, LifecycleEvent, PatchedEvent, PendingEvent, RejectedEvent
from querykit.state.policy import is_current_request

_logger = logging.getLogger(__name__)

Listener = Callable[[LifecycleEvent], None]


class CacheStore(Protocol):
    """Structural store interface consumed by the engine.

    ``apply`` must process the event synchronously: the dedup gate relies on
    a ``pending`` event being visible to the very next ``get_query`` call.
    """

    def apply(self, event: LifecycleEvent) -> None: ...

    def get_query(self, cache_key: str) -> CacheEntry | None: ...


class QueryCacheStore:
    """In-memory store for query and mutation entries.

    Given the same sequence of events it always produces the same entries.
    """

    def __init__(self) -> None:
        self._queries: dict[str, CacheEntry] = {}
        self._mutations: dict[str, CacheEntry] = {}
        self._listeners: list[Listener] = []

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_query(self, cache_key: str) -> CacheEntry | None:
        return self._queries.get(cache_key)

    def get_mutation(self, request_id: str) -> CacheEntry | None:
        return self._mutations.get(request_id)

    def queries(self) -> dict[str, CacheEntry]:
        return dict(self._queries)

    def mutations(self) -> dict[str, CacheEntry]:
        return dict(self._mutations)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* after every applied event. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, event: LifecycleEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _logger.debug("Store listener failed for %s", event.type, exc_info=True)

    # ------------------------------------------------------------------
    # Event folding
    # ------------------------------------------------------------------

    def apply(self, event: LifecycleEvent) -> None:
        """Fold one lifecycle event into the store."""
        if isinstance(event, PatchedEvent):
            self._apply_patched(event)
        elif event.kind == InvocationKind.QUERY:
            self._apply_query(event)
        elif event.track:
            self._apply_mutation(event)
        self._notify(event)

    def _apply_patched(self, event: PatchedEvent) -> None:
        entry = self._queries.get(event.cache_key)
        if entry is None or not event.patches:
            return
        self._queries[event.cache_key] = entry.model_copy(update={"data": apply_patches(entry.data, event.patches)})

    def _apply_query(self, event: PendingEvent | FulfilledEvent | RejectedEvent) -> None:
        if event.cache_key is None:
            _logger.debug("Dropping query event without cache key: %s", event.type)
            return
        folded = self._fold(self._queries.get(event.cache_key), event)
        if folded is not None:
            self._queries[event.cache_key] = folded

    def _apply_mutation(self, event: PendingEvent | FulfilledEvent | RejectedEvent) -> None:
        folded = self._fold(self._mutations.get(event.request_id), event)
        if folded is not None:
            self._mutations[event.request_id] = folded

    @staticmethod
    def _fold(
        entry: CacheEntry | None,
        event: PendingEvent | FulfilledEvent | RejectedEvent,
    ) -> CacheEntry | None:
        if isinstance(event, PendingEvent):
            base = entry if entry is not None else CacheEntry()
            # A refetch keeps the previous data visible while pending.
            return base.model_copy(
                update={
                    "status": QueryStatus.PENDING,
                    "request_id": event.request_id,
                    "started_timestamp": event.started_timestamp,
                    "endpoint_name": event.endpoint_name,
                    "original_args": event.original_args,
                }
            )

        if isinstance(event, RejectedEvent) and event.condition:
            return entry

        if not is_current_request(entry, event.request_id):
            _logger.debug("Ignoring %s for superseded request %s", event.type, event.request_id)
            return entry

        assert entry is not None  # noqa: S101
        if isinstance(event, FulfilledEvent):
            return entry.model_copy(
                update={
                    "status": QueryStatus.FULFILLED,
                    "data": event.result,
                    "error": None,
                    "fulfilled_timestamp": event.fulfilled_timestamp,
                }
            )
        return entry.model_copy(update={"status": QueryStatus.REJECTED, "error": event.error})
