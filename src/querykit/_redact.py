"""Helpers for safe debug logging of query arguments and results.

Query arguments routinely carry credentials (auth headers, tokens) and
results can be arbitrarily large. Everything the engine logs at DEBUG goes
through :func:`summarize_for_log` first.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "token",
        "accesstoken",
        "refreshtoken",
        "apikey",
        "xapikey",
        "authorization",
        "cookie",
        "setcookie",
    }
)

_MAX_DEPTH = 8
_MAX_ITEMS = 20


def _normalize_key(key: Any) -> str:
    return str(key).lower().replace("-", "").replace("_", "")


def summarize_for_log(value: Any, *, max_string: int = 256, _depth: int = 0) -> Any:
    """Return a redacted, size-bounded copy of *value* for DEBUG logs."""
    if _depth > _MAX_DEPTH:
        return "<max-depth>"

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}…<+{len(value) - max_string} chars>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<bytes:{len(value)}b>"

    if isinstance(value, Mapping):
        summary: dict[str, Any] = {}
        for index, (key, item) in enumerate(value.items()):
            if index >= _MAX_ITEMS:
                summary["…"] = f"<+{len(value) - _MAX_ITEMS} keys>"
                break
            name = str(key)
            if _normalize_key(key) in _SENSITIVE_KEYS:
                summary[name] = "<redacted>"
            else:
                summary[name] = summarize_for_log(item, max_string=max_string, _depth=_depth + 1)
        return summary

    if isinstance(value, Sequence):
        items = [summarize_for_log(item, max_string=max_string, _depth=_depth + 1) for item in value[:_MAX_ITEMS]]
        if len(value) > _MAX_ITEMS:
            items.append(f"<+{len(value) - _MAX_ITEMS} items>")
        return items

    return repr(value)
