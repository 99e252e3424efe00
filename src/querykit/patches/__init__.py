"""Structural patches for optimistic cache updates.

:func:`produce_with_patches` runs a recipe against a snapshot of a cached
value and returns forward patches plus their exact inverse;
:func:`apply_patches` folds a patch list into a value.
"""

from querykit.patches.apply import apply_patches
from querykit.patches.diff import compute_patches, is_draftable, produce_with_patches
from querykit.patches.models import Patch, PatchCollection, PatchOp

__all__ = [
    "Patch",
    "PatchCollection",
    "PatchOp",
    "apply_patches",
    "compute_patches",
    "is_draftable",
    "produce_with_patches",
]
