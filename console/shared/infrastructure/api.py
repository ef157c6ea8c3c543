"""Request collaborator for console pages.

The state core only needs something with async ``get/put/post/delete`` that
eventually returns a value or raises. ``ApiClient`` provides that over
``httpx``; tests and alternative transports can supply anything matching
``RequestClient``.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional, Protocol

import httpx

from console.shared.core.configuration import ApiConfig
from console.shared.core.errors import AsyncOperationError

logger = logging.getLogger(__name__)

DEFAULT_ERROR_TEXT = ApiConfig().fallback_error_message


class RequestClient(Protocol):
    """Capability the orchestrator drives; each verb resolves or raises."""

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any: ...

    async def post(self, path: str, data: Any = None) -> Any: ...

    async def put(self, path: str, data: Any = None) -> Any: ...

    async def delete(self, path: str) -> Any: ...


class ApiClient:
    """JSON request client on top of ``httpx.AsyncClient``.

    Non-2xx responses raise ``httpx.HTTPStatusError``; transport problems raise
    ``httpx.RequestError``. ``get_error_text`` turns either into display text.
    """

    def __init__(
        self,
        config: Optional[ApiConfig] = None,
        *,
        headers: Optional[Mapping[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.config = config or ApiConfig()
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            headers=dict(headers or {}),
            transport=transport,
        )

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        logger.debug(f"ApiClient: {method} {path}")
        response = await self._client.request(method, path, **kwargs)
        response.raise_for_status()

        if not response.content:
            return None
        if "json" in response.headers.get("content-type", ""):
            return response.json()
        return response.text

    async def get(self, path: str, params: Optional[Mapping[str, Any]] = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post(self, path: str, data: Any = None) -> Any:
        return await self._request("POST", path, json=data)

    async def put(self, path: str, data: Any = None) -> Any:
        return await self._request("PUT", path, json=data)

    async def delete(self, path: str) -> Any:
        return await self._request("DELETE", path)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()


def _message_from_body(body: Any) -> Optional[str]:
    if isinstance(body, str):
        return body.strip() or None
    if not isinstance(body, Mapping):
        return None

    message = body.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()

    error = body.get("error")
    if isinstance(error, Mapping):
        return _message_from_body(error)
    if isinstance(error, str) and error.strip():
        return error.strip()

    text = body.get("text")
    if isinstance(text, str) and text.strip():
        return text.strip()
    return None


def _response_text(response: httpx.Response) -> Optional[str]:
    try:
        message = _message_from_body(response.json())
    except ValueError:
        message = None
    if message:
        return message

    text = response.text.strip()
    if text:
        return text
    return f"{response.status_code} {response.reason_phrase}".strip()


def get_error_text(err: Any, fallback: str = DEFAULT_ERROR_TEXT) -> str:
    """Produce a short human-readable message from a collaborator error.

    Unrecognized shapes map to ``fallback``.
    """
    if isinstance(err, AsyncOperationError):
        return err.message or fallback

    if isinstance(err, httpx.HTTPStatusError):
        return _response_text(err.response) or fallback

    if isinstance(err, httpx.RequestError):
        return str(err).strip() or fallback

    if isinstance(err, Mapping):
        # {"responseJSON": {"message": ...}} as produced by the legacy REST layer
        message = _message_from_body(err.get("responseJSON"))
        return message or _message_from_body(err) or fallback

    if isinstance(err, str):
        return err.strip() or fallback

    if isinstance(err, BaseException):
        return str(err).strip() or fallback

    return fallback
