"""Patch application."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import ValidationError

from querykit.exceptions import PatchApplicationError
from querykit.patches.models import Patch, PatchOp, PathSegment


def coerce_patch(patch: Patch | Mapping[str, Any]) -> Patch:
    if isinstance(patch, Patch):
        return patch
    try:
        return Patch.model_validate(patch)
    except ValidationError as exc:
        raise PatchApplicationError(f"Invalid patch: {exc.error_count()} validation error(s)") from exc


def _list_index(container: list[Any], segment: PathSegment, path: tuple[PathSegment, ...], *, allow_end: bool) -> int:
    if not isinstance(segment, int) or isinstance(segment, bool):
        raise PatchApplicationError(f"List index must be an integer, got {segment!r}", path=path)
    upper = len(container) if allow_end else len(container) - 1
    if not 0 <= segment <= upper:
        raise PatchApplicationError(f"List index {segment} out of range", path=path)
    return segment


def _resolve_parent(root: Any, path: tuple[PathSegment, ...]) -> Any:
    node = root
    for depth, segment in enumerate(path[:-1]):
        if isinstance(node, dict):
            if segment not in node:
                raise PatchApplicationError(f"Missing key {segment!r}", path=path[: depth + 1])
            node = node[segment]
        elif isinstance(node, list):
            node = node[_list_index(node, segment, path[: depth + 1], allow_end=False)]
        else:
            raise PatchApplicationError(f"Cannot descend into {type(node).__name__}", path=path[: depth + 1])
    return node


def _apply_one(root: Any, patch: Patch) -> Any:
    if not patch.path:
        if patch.op == PatchOp.REMOVE:
            raise PatchApplicationError("Cannot remove the root value")
        return copy.deepcopy(patch.value)

    parent = _resolve_parent(root, patch.path)
    key = patch.path[-1]

    if isinstance(parent, dict):
        if patch.op == PatchOp.REMOVE:
            if key not in parent:
                raise PatchApplicationError(f"Missing key {key!r}", path=patch.path)
            del parent[key]
        else:
            parent[key] = copy.deepcopy(patch.value)
    elif isinstance(parent, list):
        if patch.op == PatchOp.ADD:
            parent.insert(_list_index(parent, key, patch.path, allow_end=True), copy.deepcopy(patch.value))
        elif patch.op == PatchOp.REPLACE:
            parent[_list_index(parent, key, patch.path, allow_end=False)] = copy.deepcopy(patch.value)
        else:
            del parent[_list_index(parent, key, patch.path, allow_end=False)]
    else:
        raise PatchApplicationError(f"Cannot patch into {type(parent).__name__}", path=patch.path)
    return root


def apply_patches(value: Any, patches: Iterable[Patch | Mapping[str, Any]]) -> Any:
    """Return a copy of *value* with *patches* applied in order.

    Plain mappings such as ``{"op": "replace", "path": ["text"], "value": "b"}``
    are accepted alongside :class:`Patch` instances. *value* is not mutated.
    """
    result = copy.deepcopy(value)
    for patch in patches:
        result = _apply_one(result, coerce_patch(patch))
    return result
