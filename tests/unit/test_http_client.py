"""Unit tests for HttpClient against httpx.MockTransport."""

import asyncio
import json
from unittest.mock import AsyncMock

import httpx
import pytest

from workflow_client.api.http_client import HttpClient, decode_error_payload
from workflow_client.core.abort import AbortController
from workflow_client.core.auth import AuthenticatedUser, TokenAuthority
from workflow_client.core.config import ApiConfig, AuthorityConfig
from workflow_client.core.errors import (
    ApiError,
    ForbiddenError,
    NotFoundError,
    RequestAbortedError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)

API_CONFIG = ApiConfig(base_url="http://backend.test", timeout=5)


def make_client(handler, **kwargs) -> HttpClient:
    return HttpClient(API_CONFIG, transport=httpx.MockTransport(handler), **kwargs)


class TestDecodeErrorPayload:
    """Tests for decode_error_payload."""

    def test_message_field(self):
        assert decode_error_payload({"message": "Nope", "code": "E1"}) == ("Nope", "E1", None)

    def test_detail_string(self):
        """Test the backend's {"detail": ..., "errors": ...} shape."""
        message, code, errors = decode_error_payload(
            {"detail": "Invalid status transition", "errors": {"current_status": "CLOSED"}}
        )
        assert message == "Invalid status transition"
        assert code is None
        assert errors == {"current_status": "CLOSED"}

    def test_detail_validation_list(self):
        message, _, errors = decode_error_payload({"detail": [{"loc": ["body"], "msg": "bad"}]})
        assert message == "Request validation failed"
        assert errors == {"detail": [{"loc": ["body"], "msg": "bad"}]}

    def test_non_dict_body(self):
        assert decode_error_payload("oops") == (None, None, None)


class TestHttpClient:
    """Tests for HttpClient requests and error mapping."""

    @pytest.mark.asyncio
    async def test_get_decodes_json_and_sends_params(self):
        """Test a successful GET returns the decoded body."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            return httpx.Response(200, json={"items": [], "total": 0})

        async with make_client(handler) as client:
            body = await client.get("/api/v1/worklist", params={"limit": "10"})

        assert body == {"items": [], "total": 0}
        assert seen["url"] == "http://backend.test/api/v1/worklist?limit=10"

    @pytest.mark.asyncio
    async def test_post_sends_json_body(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["body"] = json.loads(request.content)
            seen["method"] = request.method
            return httpx.Response(201, json={"id": "n1"})

        async with make_client(handler) as client:
            body = await client.post("/api/v1/x", {"note_content": "hi"})

        assert body == {"id": "n1"}
        assert seen == {"body": {"note_content": "hi"}, "method": "POST"}

    @pytest.mark.asyncio
    async def test_empty_response_is_none(self):
        async with make_client(lambda request: httpx.Response(204)) as client:
            assert await client.delete("/api/v1/x") is None

    @pytest.mark.asyncio
    async def test_session_token_is_sent(self, session_store):
        """Test the session token is attached when there is no authority."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={})

        session_store.login(AuthenticatedUser(user_id="u1"), token="session-token")
        async with make_client(handler, session=session_store) as client:
            await client.get("/api/v1/x")

        assert seen["auth"] == "Bearer session-token"

    @pytest.mark.asyncio
    async def test_authority_token_takes_precedence(self, session_store):
        """Test an enabled authority supplies the bearer token."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(200, json={})

        authority = TokenAuthority(
            access_token_provider=AsyncMock(return_value="access-token"),
            config=AuthorityConfig(enabled=True, domain="tenant.test"),
        )
        session_store.login(AuthenticatedUser(user_id="u1"), token="session-token")
        async with make_client(handler, session=session_store, authority=authority) as client:
            await client.get("/api/v1/x")

        assert seen["auth"] == "Bearer access-token"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status,error_cls",
        [
            (400, ValidationError),
            (404, NotFoundError),
            (422, ValidationError),
            (500, ApiError),
        ],
    )
    async def test_error_status_mapping(self, status, error_cls):
        """Test non-2xx responses raise the mapped error with the backend message."""
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(status, json={"detail": "Backend says no"})

        async with make_client(handler) as client:
            with pytest.raises(error_cls) as exc_info:
                await client.get("/api/v1/x")

        assert exc_info.value.status == status
        assert exc_info.value.message == "Backend says no"

    @pytest.mark.asyncio
    async def test_401_clears_session_token(self, session_store):
        """Test a rejected token is dropped from the session."""
        session_store.login(AuthenticatedUser(user_id="u1"), token="stale")
        handler = lambda request: httpx.Response(401, json={"detail": "expired"})  # noqa: E731

        async with make_client(handler, session=session_store) as client:
            with pytest.raises(UnauthorizedError) as exc_info:
                await client.get("/api/v1/x")

        assert exc_info.value.message == "Authentication required"
        assert session_store.token is None
        assert session_store.user is not None

    @pytest.mark.asyncio
    async def test_403_has_fixed_message(self):
        handler = lambda request: httpx.Response(403, json={"detail": "role missing"})  # noqa: E731

        async with make_client(handler) as client:
            with pytest.raises(ForbiddenError) as exc_info:
                await client.get("/api/v1/x")

        assert exc_info.value.message == "You do not have permission to perform this action"

    @pytest.mark.asyncio
    async def test_error_without_body_uses_default_message(self):
        async with make_client(lambda request: httpx.Response(502)) as client:
            with pytest.raises(ApiError) as exc_info:
                await client.get("/api/v1/x")

        assert exc_info.value.message == "An unexpected error occurred"

    @pytest.mark.asyncio
    async def test_network_error_becomes_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(TransportError):
                await client.get("/api/v1/x")

    @pytest.mark.asyncio
    async def test_timeout_becomes_transport_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        async with make_client(handler) as client:
            with pytest.raises(TransportError, match="timed out"):
                await client.get("/api/v1/x")


class TestHttpClientCancellation:
    """Tests for abort-signal handling."""

    @pytest.mark.asyncio
    async def test_already_aborted_signal_never_sends(self):
        handler_calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            handler_calls.append(request)
            return httpx.Response(200, json={})

        controller = AbortController()
        controller.abort()
        async with make_client(handler) as client:
            with pytest.raises(RequestAbortedError):
                await client.get("/api/v1/x", signal=controller.signal)

        assert handler_calls == []

    @pytest.mark.asyncio
    async def test_abort_cancels_in_flight_request(self):
        """Test aborting the signal cancels the pending call with RequestAbortedError."""
        started = asyncio.Event()

        async def handler(request: httpx.Request) -> httpx.Response:
            started.set()
            await asyncio.sleep(10)
            return httpx.Response(200, json={})

        controller = AbortController()
        async with make_client(handler) as client:
            task = asyncio.create_task(client.get("/api/v1/x", signal=controller.signal))
            await started.wait()
            controller.abort()

            with pytest.raises(RequestAbortedError):
                await task
