"""Patch dispatch and optimistic cache updates."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from querykit.endpoints import EndpointKind
from querykit.patches.apply import coerce_patch
from querykit.patches.diff import produce_with_patches
from querykit.patches.models import Patch, PatchCollection
from querykit.state.events import PatchedEvent, patched_event_type

if TYPE_CHECKING:
    from querykit.engine import QueryEngine

_logger = logging.getLogger(__name__)


def patch_query_result(
    engine: QueryEngine,
    endpoint_name: str,
    args: Any,
    patches: Sequence[Patch | Mapping[str, Any]],
) -> None:
    """Emit a ``patched`` event for the cache entry of ``endpoint_name(args)``."""
    cache_key = engine.cache_key_for(endpoint_name, args)
    engine._dispatch(
        PatchedEvent(
            type=patched_event_type(engine.config.reducer_path),
            endpoint_name=endpoint_name,
            cache_key=cache_key,
            patches=[coerce_patch(patch) for patch in patches],
        )
    )


def update_query_result(
    engine: QueryEngine,
    endpoint_name: str,
    args: Any,
    recipe: Callable[[Any], Any],
) -> PatchCollection:
    """Apply *recipe* to the cached value and dispatch the resulting patches.

    Returns the full collection so the caller can keep ``inverse_patches``
    for a later rollback. An ``uninitialized`` entry has nothing to patch:
    nothing is dispatched and the collection is empty.
    """
    engine._require_endpoint(endpoint_name, EndpointKind.QUERY)
    entry = engine.select_query(endpoint_name, args)
    collection = PatchCollection()
    if entry.is_uninitialized:
        return collection

    if entry.has_data:
        _, collection = produce_with_patches(entry.data, recipe)
    else:
        _logger.debug("update_query_result on %s without data; nothing to diff", endpoint_name)

    patch_query_result(engine, endpoint_name, args, collection.patches)
    return collection
