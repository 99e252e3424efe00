"""Cache entry snapshots."""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class QueryStatus(StrEnum):
    UNINITIALIZED = "uninitialized"
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


class CacheEntry(BaseModel):
    """State of one cache key (queries) or one request id (mutations).

    Entries are frozen; the store replaces them on every transition. A
    missing entry reads as ``CacheEntry()`` (``uninitialized``).
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    status: QueryStatus = QueryStatus.UNINITIALIZED
    data: Any = None
    error: Any = None
    fulfilled_timestamp: int | None = None
    started_timestamp: int | None = None
    request_id: str | None = Field(default=None, description="Request that owns the current transition")
    endpoint_name: str | None = None
    original_args: Any = None

    @property
    def has_data(self) -> bool:
        """Whether ``data`` holds a result (``None`` can be a real result)."""
        return self.fulfilled_timestamp is not None

    @property
    def is_uninitialized(self) -> bool:
        return self.status == QueryStatus.UNINITIALIZED

    @property
    def is_pending(self) -> bool:
        return self.status == QueryStatus.PENDING

    @property
    def is_fulfilled(self) -> bool:
        return self.status == QueryStatus.FULFILLED

    @property
    def is_rejected(self) -> bool:
        return self.status == QueryStatus.REJECTED
