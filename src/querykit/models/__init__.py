"""Value types shared by the executors."""

from querykit.models.invocation import InvocationKind, MutationInvocation, QueryInvocation
from querykit.models.outcome import InvocationOutcome, OutcomeStatus
from querykit.models.requests import HttpRequest

__all__ = [
    "HttpRequest",
    "InvocationKind",
    "InvocationOutcome",
    "MutationInvocation",
    "OutcomeStatus",
    "QueryInvocation",
]
