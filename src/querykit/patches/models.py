"""Patch value types."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

PathSegment = str | int


class PatchOp(StrEnum):
    REPLACE = "replace"
    ADD = "add"
    REMOVE = "remove"


class Patch(BaseModel):
    """One structural edit.

    ``path`` addresses the edited node from the root: string segments index
    dicts, integer segments index lists. An empty path targets the root.
    Dict keys of any other type cannot be addressed.
    ``value`` is ignored for ``remove``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    op: PatchOp
    path: tuple[PathSegment, ...] = ()
    value: Any = None


class PatchCollection(BaseModel):
    """Forward patches and the inverse patches that undo them.

    Applying ``patches`` to V yields V'; applying ``inverse_patches`` to V'
    yields a value equal to V.
    """

    model_config = ConfigDict(extra="forbid")

    patches: list[Patch] = Field(default_factory=list)
    inverse_patches: list[Patch] = Field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.patches or self.inverse_patches)
