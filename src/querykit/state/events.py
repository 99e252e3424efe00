"""Lifecycle events.

Executors describe every state transition as one of these events. Only the
store folds them into cache entries.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from querykit.models.invocation import InvocationKind
from querykit.patches.models import Patch

Phase = Literal["pending", "fulfilled", "rejected", "patched"]

_KIND_ACTION: dict[InvocationKind, str] = {
    InvocationKind.QUERY: "executeQuery",
    InvocationKind.MUTATION: "executeMutation",
}


def event_type(reducer_path: str, kind: InvocationKind, phase: Phase) -> str:
    """Return e.g. ``"api/executeQuery/pending"``."""
    return f"{reducer_path}/{_KIND_ACTION[kind]}/{phase}"


def patched_event_type(reducer_path: str) -> str:
    return f"{reducer_path}/queryResultPatched"


class _EventBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str = Field(..., description="Namespaced event type")
    endpoint_name: str
    observed_at: datetime = Field(default_factory=lambda: datetime.now(UTC))


class _InvocationEvent(_EventBase):
    kind: InvocationKind
    request_id: str
    cache_key: str | None = Field(default=None, description="Set for queries only")
    track: bool = Field(default=True, description="False for mutations the store must not record")


class PendingEvent(_InvocationEvent):
    phase: Literal["pending"] = "pending"
    started_timestamp: int
    original_args: Any = None
    force_refetch: bool = False


class FulfilledEvent(_InvocationEvent):
    phase: Literal["fulfilled"] = "fulfilled"
    fulfilled_timestamp: int
    result: Any = None


class RejectedEvent(_InvocationEvent):
    phase: Literal["rejected"] = "rejected"
    error: Any = Field(default=None, description="Serialized error, or the explicit rejection payload")
    was_cancelled: bool = False
    rejected_with_value: bool = False
    condition: bool = Field(default=False, description="True when the dedup gate skipped the query")


class PatchedEvent(_EventBase):
    phase: Literal["patched"] = "patched"
    cache_key: str
    patches: list[Patch] = Field(default_factory=list)


LifecycleEvent = PendingEvent | FulfilledEvent | RejectedEvent | PatchedEvent
