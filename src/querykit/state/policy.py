"""Deterministic gate and supersession rules.

Kept free of store internals so the executors and the store agree on the
same rules.
"""

from __future__ import annotations

from querykit.state.entry import CacheEntry, QueryStatus


def should_execute_query(entry: CacheEntry | None, *, force_refetch: bool) -> bool:
    """Dedup gate, evaluated before any suspension.

    - pending: skip, the in-flight request will populate the entry.
    - fulfilled: skip unless the caller forces a refetch.
    - uninitialized / rejected / missing: execute.
    """
    if entry is None:
        return True
    if entry.status == QueryStatus.PENDING:
        return False
    return not (entry.status == QueryStatus.FULFILLED and not force_refetch)


def is_current_request(entry: CacheEntry | None, request_id: str) -> bool:
    """Whether a terminal event for *request_id* may still update *entry*.

    A newer dispatch for the same cache key replaces ``request_id``; results
    of the superseded request must not overwrite it.
    """
    return entry is not None and entry.request_id == request_id
