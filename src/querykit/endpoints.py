"""Endpoint descriptors and the base executor contract."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Protocol

from querykit.cancellation import CancellationToken
from querykit.exceptions import QueryKitConfigError, RejectedWithValueError

if TYPE_CHECKING:
    from querykit._engine.mutations import MutationApi


class EndpointKind(StrEnum):
    QUERY = "query"
    MUTATION = "mutation"


@dataclass(frozen=True, slots=True)
class BaseQueryApi:
    """Second argument of every base executor call."""

    signal: CancellationToken
    endpoint: str

    def reject_with_value(self, payload: Any) -> RejectedWithValueError:
        """Build a typed rejection. Return it or raise it; both reject the invocation."""
        return RejectedWithValueError(payload)


class BaseExecutor(Protocol):
    def __call__(self, args: Any, api: BaseQueryApi) -> Awaitable[Any]: ...


StartHook = Callable[[Any, "MutationApi"], None]
SuccessHook = Callable[[Any, "MutationApi", Any], None]
ErrorHook = Callable[[Any, "MutationApi", BaseException], None]


def _identity(value: Any) -> Any:
    return value


@dataclass(frozen=True, slots=True)
class EndpointDefinition:
    """Behaviour of one named endpoint.

    ``query`` maps caller arguments to the base executor's arguments and
    ``transform_response`` maps the executor's result to the cached value;
    both default to identity. The hooks are mutation-only.
    """

    kind: EndpointKind
    query: Callable[[Any], Any] | None = None
    transform_response: Callable[[Any], Any] | None = None
    on_start: StartHook | None = None
    on_success: SuccessHook | None = None
    on_error: ErrorHook | None = None

    def __post_init__(self) -> None:
        if self.kind == EndpointKind.QUERY and (
            self.on_start is not None or self.on_success is not None or self.on_error is not None
        ):
            raise QueryKitConfigError("Lifecycle hooks are only supported on mutation endpoints")

    def build_internal_args(self, args: Any) -> Any:
        return (self.query or _identity)(args)

    def transform(self, result: Any) -> Any:
        return (self.transform_response or _identity)(result)


def query_endpoint(
    *,
    query: Callable[[Any], Any] | None = None,
    transform_response: Callable[[Any], Any] | None = None,
) -> EndpointDefinition:
    return EndpointDefinition(kind=EndpointKind.QUERY, query=query, transform_response=transform_response)


def mutation_endpoint(
    *,
    query: Callable[[Any], Any] | None = None,
    transform_response: Callable[[Any], Any] | None = None,
    on_start: StartHook | None = None,
    on_success: SuccessHook | None = None,
    on_error: ErrorHook | None = None,
) -> EndpointDefinition:
    return EndpointDefinition(
        kind=EndpointKind.MUTATION,
        query=query,
        transform_response=transform_response,
        on_start=on_start,
        on_success=on_success,
        on_error=on_error,
    )
