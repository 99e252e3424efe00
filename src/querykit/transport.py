"""aiohttp-backed base executor.

Maps HTTP onto the base executor contract: a 2xx response resolves with the
decoded body, any other status rejects with ``{"status", "data"}`` and a
network-level failure raises :class:`TransportFailureError`.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

import aiohttp

from querykit.endpoints import BaseQueryApi
from querykit.exceptions import QueryKitError, TransportFailureError
from querykit.models.requests import HttpRequest

_logger = logging.getLogger(__name__)


def _decode_body(text: str, content_type: str, url: str) -> Any:
    if not text:
        return None
    if content_type == "application/json" or content_type.endswith("+json"):
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise TransportFailureError(f"Invalid JSON from {url}: {text[:200]}", endpoint=url) from exc
    return text


class HttpBaseExecutor:
    """Base executor that performs one HTTP request per invocation.

    Usage::

        async with HttpBaseExecutor("https://api.example.com") as http:
            engine = QueryEngine(endpoints, http)
    """

    def __init__(
        self,
        base_url: str,
        *,
        session: aiohttp.ClientSession | None = None,
        headers: Mapping[str, str] | None = None,
        timeout: float | None = 30.0,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._external_session = session is not None
        self._http = session
        self._headers = dict(headers or {})
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def __aenter__(self) -> HttpBaseExecutor:
        if self._http is None:
            self._http = aiohttp.ClientSession()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        if not self._external_session and self._http is not None:
            await self._http.close()
            self._http = None

    def _require_session(self) -> aiohttp.ClientSession:
        if self._http is None:
            raise QueryKitError("HttpBaseExecutor not initialized. Use 'async with HttpBaseExecutor(...)'")
        return self._http

    def _build_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}/{path.lstrip('/')}"

    async def __call__(self, args: Any, api: BaseQueryApi) -> Any:
        request = HttpRequest.from_args(args)
        http = self._require_session()
        api.signal.raise_if_cancelled()

        url = self._build_url(request.url)
        headers = {**self._headers, **request.headers}
        _logger.debug("%s %s", request.method, url)

        try:
            async with http.request(
                request.method,
                url,
                params=request.params,
                json=request.body,
                headers=headers,
                timeout=self._timeout,
            ) as resp:
                text = await resp.text()
                status = resp.status
                content_type = resp.content_type
        except aiohttp.ClientError as exc:
            raise TransportFailureError(f"Request to {url} failed: {exc}", endpoint=api.endpoint) from exc

        data = _decode_body(text, content_type, url)
        if not 200 <= status < 300:
            _logger.debug("%s %s -> HTTP %d", request.method, url, status)
            return api.reject_with_value({"status": status, "data": data})
        return data
