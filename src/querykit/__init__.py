"""querykit - Async query/mutation engine with dedup and optimistic patches."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("querykit")
except PackageNotFoundError:
    __version__ = "0+local"
from querykit.cancellation import CancellationToken
from querykit.config import EngineConfig
from querykit.endpoints import (
    BaseExecutor,
    BaseQueryApi,
    EndpointDefinition,
    EndpointKind,
    mutation_endpoint,
    query_endpoint,
)
from querykit.engine import MutationApi, QueryEngine
from querykit.exceptions import (
    DedupSkippedError,
    EndpointKindError,
    EndpointNotFoundError,
    MutationRollbackError,
    PatchApplicationError,
    QueryCancelledError,
    QueryKitConfigError,
    QueryKitError,
    RejectedWithValueError,
    TransportFailureError,
)
from querykit.handle import InvocationHandle
from querykit.models import (
    HttpRequest,
    InvocationKind,
    InvocationOutcome,
    MutationInvocation,
    OutcomeStatus,
    QueryInvocation,
)
from querykit.patches import Patch, PatchCollection, PatchOp, apply_patches, produce_with_patches
from querykit.serialize import default_serialize_query_args
from querykit.state.entry import CacheEntry, QueryStatus
from querykit.state.events import FulfilledEvent, LifecycleEvent, PatchedEvent, PendingEvent, RejectedEvent
from querykit.state.store import CacheStore, QueryCacheStore
from querykit.transport import HttpBaseExecutor

__all__ = [
    "__version__",
    "BaseExecutor",
    "BaseQueryApi",
    "CacheEntry",
    "CacheStore",
    "CancellationToken",
    "DedupSkippedError",
    "EndpointDefinition",
    "EndpointKind",
    "EndpointKindError",
    "EndpointNotFoundError",
    "EngineConfig",
    "FulfilledEvent",
    "HttpBaseExecutor",
    "HttpRequest",
    "InvocationHandle",
    "InvocationKind",
    "InvocationOutcome",
    "LifecycleEvent",
    "MutationApi",
    "MutationInvocation",
    "MutationRollbackError",
    "OutcomeStatus",
    "Patch",
    "PatchApplicationError",
    "PatchCollection",
    "PatchOp",
    "PatchedEvent",
    "PendingEvent",
    "QueryCacheStore",
    "QueryCancelledError",
    "QueryEngine",
    "QueryInvocation",
    "QueryKitConfigError",
    "QueryKitError",
    "QueryStatus",
    "RejectedEvent",
    "RejectedWithValueError",
    "TransportFailureError",
    "apply_patches",
    "default_serialize_query_args",
    "mutation_endpoint",
    "produce_with_patches",
    "query_endpoint",
]
