"""Typed request arguments for the HTTP base executor."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class HttpRequest(BaseModel):
    """One HTTP call, as produced by an endpoint's ``query`` mapping.

    A bare string is shorthand for ``GET <url>``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str
    method: str = "GET"
    params: dict[str, Any] | None = None
    body: Any = Field(default=None, description="JSON-encoded into the request body when set")
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("method")
    @classmethod
    def _normalize_method(cls, value: str) -> str:
        method = value.strip().upper()
        if not method:
            raise ValueError("method must be non-empty")
        return method

    @classmethod
    def from_args(cls, args: Any) -> HttpRequest:
        if isinstance(args, HttpRequest):
            return args
        if isinstance(args, str):
            return cls(url=args)
        if isinstance(args, Mapping):
            return cls.model_validate(dict(args))
        raise TypeError(f"Cannot build an HTTP request from {type(args).__name__}")
