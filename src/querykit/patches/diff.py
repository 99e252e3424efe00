"""Snapshot-and-diff patch generation.

The recipe runs against a deep copy of the baseline. Once it returns, both
trees are walked side by side and every difference is recorded as a forward
patch together with the patch that undoes it. Inverses are collected in
application order and reversed at the end, so applying them in sequence
walks V' back to V.
"""

from __future__ import annotations

import copy
from collections.abc import Callable
from typing import Any

from querykit.exceptions import PatchApplicationError
from querykit.patches.models import Patch, PatchCollection, PatchOp, PathSegment

Recipe = Callable[[Any], Any]
_Path = tuple[PathSegment, ...]


def is_draftable(value: Any) -> bool:
    """Return ``True`` for values the structural differ can walk."""
    return isinstance(value, (dict, list))


def _check_path(path: _Path) -> None:
    for segment in path:
        if not isinstance(segment, (str, int)):
            raise PatchApplicationError(
                f"Unsupported path segment {segment!r}; only str and int keys can be patched",
                path=path,
            )


def _same_leaf(base: Any, result: Any) -> bool:
    # 1 == True and 1 == 1.0 in Python; a type change is still an edit.
    return base is result or (type(base) is type(result) and base == result)


class _PatchRecorder:
    def __init__(self) -> None:
        self.patches: list[Patch] = []
        self.inverse: list[Patch] = []

    def record(self, forward: Patch, inverse: Patch) -> None:
        self.patches.append(forward)
        self.inverse.append(inverse)

    def replace(self, path: _Path, old: Any, new: Any) -> None:
        _check_path(path)
        self.record(
            Patch(op=PatchOp.REPLACE, path=path, value=copy.deepcopy(new)),
            Patch(op=PatchOp.REPLACE, path=path, value=copy.deepcopy(old)),
        )

    def add(self, path: _Path, new: Any) -> None:
        _check_path(path)
        self.record(
            Patch(op=PatchOp.ADD, path=path, value=copy.deepcopy(new)),
            Patch(op=PatchOp.REMOVE, path=path),
        )

    def remove(self, path: _Path, old: Any) -> None:
        _check_path(path)
        self.record(
            Patch(op=PatchOp.REMOVE, path=path),
            Patch(op=PatchOp.ADD, path=path, value=copy.deepcopy(old)),
        )

    def collection(self) -> PatchCollection:
        return PatchCollection(patches=self.patches, inverse_patches=list(reversed(self.inverse)))


def _diff_node(base: Any, result: Any, path: _Path, recorder: _PatchRecorder) -> None:
    if isinstance(base, dict) and isinstance(result, dict):
        _diff_dict(base, result, path, recorder)
    elif isinstance(base, list) and isinstance(result, list):
        _diff_list(base, result, path, recorder)
    elif not _same_leaf(base, result):
        recorder.replace(path, base, result)


def _diff_dict(base: dict[Any, Any], result: dict[Any, Any], path: _Path, recorder: _PatchRecorder) -> None:
    for key, old in base.items():
        if key not in result:
            recorder.remove((*path, key), old)
    for key, new in result.items():
        if key in base:
            _diff_node(base[key], new, (*path, key), recorder)
        else:
            recorder.add((*path, key), new)


def _diff_list(base: list[Any], result: list[Any], path: _Path, recorder: _PatchRecorder) -> None:
    common = min(len(base), len(result))
    for index in range(common):
        _diff_node(base[index], result[index], (*path, index), recorder)
    # Growth appends in ascending order; shrinking removes from the tail so
    # earlier indices stay valid while the patches are applied in sequence.
    for index in range(common, len(result)):
        recorder.add((*path, index), result[index])
    for index in reversed(range(common, len(base))):
        recorder.remove((*path, index), base[index])


def compute_patches(base: Any, result: Any) -> PatchCollection:
    """Diff two values and return the patches that turn *base* into *result*."""
    recorder = _PatchRecorder()
    _diff_node(base, result, (), recorder)
    return recorder.collection()


def produce_with_patches(base: Any, recipe: Recipe) -> tuple[Any, PatchCollection]:
    """Run *recipe* against *base* and return ``(result, patches)``.

    Draftable values (dicts and lists) are deep-copied and handed to the
    recipe, which may mutate the copy in place or return a replacement.
    Anything else is opaque: the recipe's return value replaces the root.
    *base* itself is never mutated.
    """
    if not is_draftable(base):
        result = recipe(base)
        return result, PatchCollection(
            patches=[Patch(op=PatchOp.REPLACE, path=(), value=result)],
            inverse_patches=[Patch(op=PatchOp.REPLACE, path=(), value=base)],
        )

    draft = copy.deepcopy(base)
    returned = recipe(draft)
    result = draft if returned is None else returned
    return result, compute_patches(base, result)
