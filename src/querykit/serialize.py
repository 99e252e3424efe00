"""Default cache key derivation."""

from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

SerializeQueryArgs = Callable[[str, Any], str]


def _json_fallback(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    if isinstance(value, tuple):
        return list(value)
    raise TypeError(f"Cannot derive a cache key from {type(value).__name__}")


def default_serialize_query_args(endpoint_name: str, query_args: Any) -> str:
    """Return ``"<endpoint>(<canonical JSON of args>)"``, e.g. ``getTodo(1)``.

    Mapping keys are sorted so equal arguments always produce the same key.
    """
    encoded = json.dumps(query_args, sort_keys=True, separators=(",", ":"), default=_json_fallback)
    return f"{endpoint_name}({encoded})"
