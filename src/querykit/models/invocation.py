"""Invocation records created at dispatch time.

One record per dispatched query or mutation. They are immutable and are
discarded once the terminal lifecycle event has been emitted.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class InvocationKind(StrEnum):
    QUERY = "query"
    MUTATION = "mutation"


class _InvocationBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    request_id: str = Field(..., description="Random id, unique per dispatch")
    endpoint_name: str
    original_args: Any = Field(default=None, description="Arguments as passed by the caller")
    internal_args: Any = Field(default=None, description="Arguments handed to the base executor")
    started_timestamp: int = Field(..., description="Dispatch time, epoch milliseconds")


class QueryInvocation(_InvocationBase):
    cache_key: str
    force_refetch: bool = False

    @property
    def kind(self) -> InvocationKind:
        return InvocationKind.QUERY


class MutationInvocation(_InvocationBase):
    track: bool = Field(default=True, description="Record the mutation's lifecycle in the store")

    @property
    def kind(self) -> InvocationKind:
        return InvocationKind.MUTATION
