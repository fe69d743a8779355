"""
HTTP client for the transaction management backend.

Thin wrapper over ``httpx.AsyncClient`` that:
- attaches the bearer token (token authority first, then the session token)
- cancels the in-flight call when its abort signal fires
- maps failed responses onto the client error taxonomy
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx

from workflow_client.core.abort import AbortSignal
from workflow_client.core.auth import TokenAuthority
from workflow_client.core.config import ApiConfig, get_settings
from workflow_client.core.errors import (
    ApiError,
    RequestAbortedError,
    TransportError,
    error_for_status,
)
from workflow_client.core.session import SessionStore

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "An unexpected error occurred"
AUTHENTICATION_REQUIRED_MSG = "Authentication required"
PERMISSION_DENIED_MSG = "You do not have permission to perform this action"


def _outer_task_cancelling() -> bool:
    task = asyncio.current_task()
    return task is not None and task.cancelling() > 0


def decode_error_payload(payload: Any) -> tuple[str | None, str | None, dict[str, Any] | None]:
    """Pull ``(message, code, errors)`` out of an error body.

    Tolerates ``{"message": ...}``, FastAPI's ``{"detail": "..."}`` and
    ``{"detail": [...]}`` validation lists, and non-dict bodies.
    """
    if not isinstance(payload, dict):
        return None, None, None

    message = payload.get("message")
    detail = payload.get("detail")
    errors = payload.get("errors")

    if not isinstance(message, str) or not message:
        message = detail if isinstance(detail, str) and detail else None
    if isinstance(detail, list) and errors is None:
        errors = {"detail": detail}
        message = message or "Request validation failed"
    if errors is not None and not isinstance(errors, dict):
        errors = {"errors": errors}

    code = payload.get("code")
    return message, code if isinstance(code, str) else None, errors


class HttpClient:
    """Async request capability consumed by the synchronizers."""

    def __init__(
        self,
        config: ApiConfig | None = None,
        *,
        session: SessionStore | None = None,
        authority: TokenAuthority | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config or get_settings().api
        self.session = session
        self.authority = authority
        self._client = httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=httpx.Timeout(self.config.timeout),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    async def __aenter__(self) -> HttpClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if not self._client.is_closed:
            await self._client.aclose()

    async def _auth_headers(self) -> dict[str, str]:
        token: str | None = None
        if self.authority is not None and self.authority.config.enabled:
            token = await self.authority.get_access_token()
        elif self.session is not None:
            token = self.session.token

        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def request(
        self,
        method: str,
        url: str,
        *,
        body: Any = None,
        params: dict[str, Any] | None = None,
        signal: AbortSignal | None = None,
    ) -> Any:
        """Send a request and return the decoded JSON body (None when empty)."""
        if signal is not None and signal.aborted:
            raise RequestAbortedError()

        headers = await self._auth_headers()
        send = asyncio.ensure_future(
            self._client.request(method, url, json=body, params=params, headers=headers)
        )
        remove_listener = signal.add_listener(send.cancel) if signal is not None else None

        try:
            response = await send
        except asyncio.CancelledError:
            if signal is not None and signal.aborted and not _outer_task_cancelling():
                raise RequestAbortedError() from None
            raise
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {url} timed out")
            raise TransportError("Request timed out", details={"url": url}) from e
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise TransportError(str(e) or "Network error", details={"url": url}) from e
        finally:
            if remove_listener is not None:
                remove_listener()

        if signal is not None and signal.aborted:
            raise RequestAbortedError()

        if response.is_error:
            raise self._to_error(response)

        return self._decode(response)

    def _decode(self, response: httpx.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return response.text

    def _to_error(self, response: httpx.Response) -> ApiError:
        try:
            payload = response.json()
        except ValueError:
            payload = None

        message, code, errors = decode_error_payload(payload)
        status = response.status_code

        if status == 401:
            # The backend rejected the token; drop it so the next request is anonymous
            if self.session is not None:
                self.session.clear_token()
            logger.info("Session token rejected by backend; cleared")
            message = AUTHENTICATION_REQUIRED_MSG
        elif status == 403:
            message = PERMISSION_DENIED_MSG

        return error_for_status(status, message or DEFAULT_ERROR_MESSAGE, code=code, errors=errors)

    async def get(
        self,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        signal: AbortSignal | None = None,
    ) -> Any:
        return await self.request("GET", url, params=params, signal=signal)

    async def post(
        self,
        url: str,
        body: Any = None,
        *,
        params: dict[str, Any] | None = None,
        signal: AbortSignal | None = None,
    ) -> Any:
        return await self.request("POST", url, body=body, params=params, signal=signal)

    async def patch(
        self,
        url: str,
        body: Any = None,
        *,
        params: dict[str, Any] | None = None,
        signal: AbortSignal | None = None,
    ) -> Any:
        return await self.request("PATCH", url, body=body, params=params, signal=signal)

    async def delete(self, url: str, *, signal: AbortSignal | None = None) -> Any:
        return await self.request("DELETE", url, signal=signal)
