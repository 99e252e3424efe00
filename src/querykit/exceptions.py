"""Custom exception hierarchy for querykit."""

from __future__ import annotations

from typing import Any


class QueryKitError(Exception):
    """Base exception for all querykit errors."""


class QueryKitConfigError(QueryKitError):
    """Invalid or missing configuration."""


class EndpointNotFoundError(QueryKitError):
    """No endpoint is registered under the requested name."""

    def __init__(self, endpoint: str) -> None:
        self.endpoint = endpoint
        super().__init__(f"Unknown endpoint: {endpoint!r}")


class EndpointKindError(QueryKitError):
    """A query was dispatched to a mutation endpoint, or vice versa."""

    def __init__(self, endpoint: str, *, expected: str, actual: str) -> None:
        self.endpoint = endpoint
        self.expected = expected
        self.actual = actual
        super().__init__(f"Endpoint {endpoint!r} is a {actual} endpoint, not a {expected} endpoint")


class DedupSkippedError(QueryKitError):
    """Query not issued: an equivalent request is pending or already fulfilled.

    This is *not* a failure of the underlying operation. The engine never
    retries a skipped query; callers decide whether to force a refetch.
    """

    def __init__(self, cache_key: str, *, status: str) -> None:
        self.cache_key = cache_key
        self.status = status
        super().__init__(f"Query {cache_key} skipped (entry is {status})")


class TransportFailureError(QueryKitError):
    """The base executor raised instead of returning a value.

    The original exception is available as ``__cause__``.
    """

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        self.endpoint = endpoint
        super().__init__(message)


class RejectedWithValueError(QueryKitError):
    """The base executor produced an explicit, typed rejection payload.

    Base executors obtain instances through ``api.reject_with_value(payload)``
    and may either return or raise them.
    """

    def __init__(self, payload: Any) -> None:
        self.payload = payload
        super().__init__(f"Rejected with value: {payload!r}")


class QueryCancelledError(QueryKitError):
    """The invocation's cancellation token fired before the request completed."""

    def __init__(self, reason: str = "Aborted") -> None:
        self.reason = reason
        super().__init__(reason)


class MutationRollbackError(QueryKitError):
    """A mutation failed and its ``on_error`` hook failed too.

    Both causes are kept: ``original`` is the failure that triggered the
    rollback, ``rollback_error`` is what the hook raised.
    """

    def __init__(self, *, original: BaseException, rollback_error: BaseException) -> None:
        self.original = original
        self.rollback_error = rollback_error
        super().__init__(f"Rollback failed ({rollback_error!r}) while handling {original!r}")


class PatchApplicationError(QueryKitError):
    """A patch is malformed or its path does not resolve against the target value."""

    def __init__(self, message: str, *, path: tuple[str | int, ...] = ()) -> None:
        self.path = path
        super().__init__(message)
