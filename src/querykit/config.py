"""Engine configuration for querykit."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from querykit.exceptions import QueryKitConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _env_int(name: str, value: str) -> int:
    try:
        return int(value)
    except ValueError as exc:
        raise QueryKitConfigError(f"{name} must be an integer, got {value!r}") from exc


@dataclasses.dataclass(frozen=True)
class EngineConfig:
    """Engine configuration.

    Parameters
    ----------
    reducer_path : str
        Prefix for lifecycle event types (``"<reducer_path>/executeQuery/pending"``).
    dispatch_condition_rejection : bool
        Emit a ``rejected`` event with ``condition=True`` when a query is
        skipped by the dedup gate. Stores ignore these; they exist for
        observers that want to see every dispatch.
    log_payloads : bool
        Include (redacted, truncated) arguments and results in DEBUG logs.
    max_log_string : int
        Maximum length of a single string value in DEBUG logs.
    """

    reducer_path: str = "api"
    dispatch_condition_rejection: bool = True
    log_payloads: bool = False
    max_log_string: int = 256

    def __post_init__(self) -> None:
        if not self.reducer_path.strip():
            raise QueryKitConfigError("reducer_path must be non-empty")
        if self.max_log_string <= 0:
            raise QueryKitConfigError("max_log_string must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> EngineConfig:
        """Create configuration from ``QUERYKIT_*`` environment variables.

        Explicit keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        reducer_path = env.get("QUERYKIT_REDUCER_PATH")
        if reducer_path is not None:
            config_kwargs["reducer_path"] = reducer_path

        if "dispatch_condition_rejection" not in overrides:
            config_kwargs["dispatch_condition_rejection"] = _env_bool(
                env.get("QUERYKIT_DISPATCH_CONDITION_REJECTION"),
                True,
            )

        if "log_payloads" not in overrides:
            config_kwargs["log_payloads"] = _env_bool(env.get("QUERYKIT_LOG_PAYLOADS"), False)

        max_string_env = env.get("QUERYKIT_MAX_LOG_STRING")
        if max_string_env is not None and "max_log_string" not in overrides:
            config_kwargs["max_log_string"] = _env_int("QUERYKIT_MAX_LOG_STRING", max_string_env)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
