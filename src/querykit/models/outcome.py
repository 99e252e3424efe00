"""Terminal result of one invocation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class OutcomeStatus(StrEnum):
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


@dataclass(frozen=True, slots=True)
class InvocationOutcome:
    """What an awaited :class:`querykit.handle.InvocationHandle` resolves to.

    Outcomes never raise on their own; :meth:`unwrap` does. A query skipped
    by the dedup gate is a rejected outcome with ``condition=True`` whose
    ``data`` is whatever the cache entry already held.
    """

    request_id: str
    status: OutcomeStatus
    data: Any = None
    error: BaseException | None = None
    fulfilled_timestamp: int | None = None
    condition: bool = False

    @classmethod
    def fulfilled(cls, request_id: str, data: Any, *, fulfilled_timestamp: int) -> InvocationOutcome:
        return cls(
            request_id=request_id,
            status=OutcomeStatus.FULFILLED,
            data=data,
            fulfilled_timestamp=fulfilled_timestamp,
        )

    @classmethod
    def rejected(
        cls,
        request_id: str,
        error: BaseException,
        *,
        condition: bool = False,
        data: Any = None,
    ) -> InvocationOutcome:
        return cls(
            request_id=request_id,
            status=OutcomeStatus.REJECTED,
            error=error,
            condition=condition,
            data=data,
        )

    @property
    def is_fulfilled(self) -> bool:
        return self.status == OutcomeStatus.FULFILLED

    @property
    def skipped(self) -> bool:
        return self.condition

    def unwrap(self) -> Any:
        """Return the data, or raise the error of a rejected outcome."""
        if self.status == OutcomeStatus.REJECTED:
            assert self.error is not None  # noqa: S101
            raise self.error
        return self.data
