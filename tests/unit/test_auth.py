"""Unit tests for the auth module."""

import asyncio
import logging

import httpx
import pytest

from webclient_filters.auth import (
    AttemptState,
    BasicCredentials,
    BearerTokenFilter,
    UnauthorizedRetryFilter,
    basic_authentication,
    basic_if_needed,
    bearer_token,
    encode_basic,
    refresh_token_if_needed,
)
from webclient_filters.errors import BodyConsumedError, TokenRefreshError
from webclient_filters.filters import compose, compose_async
from webclient_filters.models import Request, Response

# =============================================================================
# Credential Tests
# =============================================================================


class TestCredentials:
    """Tests for the credential strategies."""

    def test_encode_basic(self):
        assert encode_basic("rob", "rob") == "Basic cm9iOnJvYg=="

    def test_encode_basic_utf8(self):
        assert encode_basic("user", "pässword") == "Basic dXNlcjpww6Rzc3dvcmQ="

    def test_basic_credentials_hide_password_in_repr(self):
        credentials = BasicCredentials("rob", "hunter2")

        assert "hunter2" not in repr(credentials)
        assert credentials.header_value() == encode_basic("rob", "hunter2")


# =============================================================================
# Attachment Filter Tests
# =============================================================================


class TestBasicAuthentication:
    """Tests for the unconditional Basic filter."""

    def test_sets_basic_header(self, recording_exchange, get_request):
        terminal = recording_exchange(Response(200))

        compose([basic_authentication("rob", "rob")], terminal)(get_request)

        assert terminal.authorization_headers() == ["Basic cm9iOnJvYg=="]


class TestBearerToken:
    """Tests for the Bearer attachment filter."""

    def test_sets_bearer_header(self, recording_exchange, get_request):
        terminal = recording_exchange(Response(200))

        compose([bearer_token("token")], terminal)(get_request)

        assert terminal.authorization_headers() == ["Bearer token"]

    def test_overwrites_existing_authorization(self, recording_exchange):
        terminal = recording_exchange(Response(200))
        request = Request.create("GET", "/", headers={"authorization": "Basic abc"})

        compose([bearer_token("token")], terminal)(request)

        assert terminal.requests[0].headers.get_list("Authorization") == ["Bearer token"]

    def test_idempotent_when_reapplied(self, get_request):
        once = bearer_token("token").apply(get_request)
        twice = bearer_token("token").apply(once)

        assert once == twice

    def test_does_not_change_original_request(self, get_request):
        bearer_token("token").apply(get_request)

        assert "Authorization" not in get_request.headers

    def test_token_supplier_is_read_per_request(self, recording_exchange, get_request):
        tokens = iter(["first", "second"])
        terminal = recording_exchange(Response(200), Response(200))
        exchange = compose([BearerTokenFilter(lambda: next(tokens))], terminal)

        exchange(get_request)
        exchange(get_request)

        assert terminal.authorization_headers() == ["Bearer first", "Bearer second"]

    def test_supplier_without_token_leaves_request_alone(self, recording_exchange, get_request):
        terminal = recording_exchange(Response(200))

        compose([BearerTokenFilter(lambda: None)], terminal)(get_request)

        assert terminal.authorization_headers() == [None]


# =============================================================================
# Basic If Needed Tests
# =============================================================================


class TestBasicIfNeeded:
    """Tests for the conditional Basic filter."""

    def test_not_needed_returns_first_response(self, recording_exchange, get_request):
        first = Response(200, content=b"OK")
        terminal = recording_exchange(first)

        response = compose([basic_if_needed("rob", "rob")], terminal)(get_request)

        assert response is first
        assert response.read() == b"OK"
        assert terminal.authorization_headers() == [None]

    def test_needed_retries_with_basic(self, recording_exchange, get_request):
        first = Response(401, {"WWW-Authenticate": 'Basic realm="Test"'})
        second = Response(200, content=b"OK")
        terminal = recording_exchange(first, second)

        response = compose([basic_if_needed("rob", "rob")], terminal)(get_request)

        assert response is second
        assert terminal.authorization_headers() == [None, "Basic cm9iOnJvYg=="]

    def test_retry_sends_the_original_request(self, recording_exchange):
        request = Request.create("POST", "/items", headers={"X-Trace": "7"}, content=b"{}")
        terminal = recording_exchange(Response(401), Response(201))

        compose([basic_if_needed("rob", "rob")], terminal)(request)

        retried = terminal.requests[1]
        assert retried.method == "POST"
        assert retried.url == "/items"
        assert retried.content == b"{}"
        assert retried.headers["X-Trace"] == "7"

    def test_first_response_is_released_before_retry(self, recording_exchange, get_request):
        first = Response(401, content=b"denied")
        terminal = recording_exchange(first, Response(200))

        compose([basic_if_needed("rob", "rob")], terminal)(get_request)

        assert first.is_consumed
        with pytest.raises(BodyConsumedError):
            first.read()

    def test_retries_at_most_once(self, recording_exchange, get_request):
        second = Response(401)
        terminal = recording_exchange(Response(401), second)

        response = compose([basic_if_needed("rob", "rob")], terminal)(get_request)

        assert response is second
        assert len(terminal.requests) == 2

    @pytest.mark.parametrize("status_code", [400, 403, 404, 407, 500, 503])
    def test_other_errors_pass_through(self, recording_exchange, get_request, status_code):
        first = Response(status_code)
        terminal = recording_exchange(first)

        response = compose([basic_if_needed("rob", "rob")], terminal)(get_request)

        assert response is first
        assert len(terminal.requests) == 1

    def test_transport_error_on_first_attempt_is_not_retried(
        self, recording_exchange, get_request
    ):
        terminal = recording_exchange(httpx.ConnectError("refused"))

        with pytest.raises(httpx.ConnectError):
            compose([basic_if_needed("rob", "rob")], terminal)(get_request)

        assert len(terminal.requests) == 1

    def test_transport_error_on_retry_propagates(self, recording_exchange, get_request):
        first = Response(401)
        terminal = recording_exchange(first, httpx.ReadTimeout("timed out"))

        with pytest.raises(httpx.ReadTimeout):
            compose([basic_if_needed("rob", "rob")], terminal)(get_request)

        assert first.is_consumed

    def test_subclass_must_supply_credential_filter(self):
        class NoUpgrade(UnauthorizedRetryFilter):
            pass

        with pytest.raises(TypeError, match="credential_filter"):
            NoUpgrade()

    def test_no_state_leaks_between_calls(self, recording_exchange, get_request):
        terminal = recording_exchange(Response(200), Response(200))
        exchange = compose([basic_if_needed("rob", "rob")], terminal)

        exchange(get_request)
        first_run = terminal.authorization_headers()
        exchange(get_request)

        assert terminal.authorization_headers() == first_run * 2

    def test_logs_state_transitions(self, recording_exchange, get_request, caplog):
        caplog.set_level(logging.DEBUG, logger="webclient_filters")
        terminal = recording_exchange(Response(401), Response(200))

        compose([basic_if_needed("rob", "rob")], terminal)(get_request)

        states = [
            state.name
            for state in AttemptState
            if f": {state.name}" in caplog.text
        ]
        assert states == [
            "INITIAL",
            "FIRST_ATTEMPT_SENT",
            "UNAUTHORIZED",
            "CREDENTIAL_UPGRADE",
            "RETRY_ATTEMPT_SENT",
        ]
        assert "rob" not in caplog.text

    async def test_async_needed_retries_with_basic(self, async_recording_exchange, get_request):
        terminal = async_recording_exchange(Response(401), Response(200))

        response = await compose_async([basic_if_needed("rob", "rob")], terminal)(get_request)

        assert response.status_code == 200
        assert terminal.authorization_headers() == [None, "Basic cm9iOnJvYg=="]

    async def test_async_not_needed(self, async_recording_exchange, get_request):
        first = Response(200)
        terminal = async_recording_exchange(first)

        response = await compose_async([basic_if_needed("rob", "rob")], terminal)(get_request)

        assert response is first
        assert len(terminal.requests) == 1


# =============================================================================
# Refresh Token If Needed Tests
# =============================================================================


class TestRefreshTokenIfNeeded:
    """Tests for the conditional bearer refresh filter."""

    def test_refreshes_and_retries_on_401(self, recording_exchange, get_request):
        second = Response(200, content=b'{"message": "ok"}')
        terminal = recording_exchange(Response(401), second)
        exchange = compose(
            [bearer_token("token"), refresh_token_if_needed(lambda: "new_token")], terminal
        )

        response = exchange(get_request)

        assert response is second
        assert terminal.authorization_headers() == ["Bearer token", "Bearer new_token"]

    def test_refresh_not_called_when_authorized(self, recording_exchange, get_request):
        calls = []
        terminal = recording_exchange(Response(200))

        def refresh():
            calls.append(1)
            return "new_token"

        compose([refresh_token_if_needed(refresh)], terminal)(get_request)

        assert calls == []
        assert len(terminal.requests) == 1

    def test_refresh_called_once_even_if_retry_is_unauthorized(
        self, recording_exchange, get_request
    ):
        calls = []
        terminal = recording_exchange(Response(401), Response(401))

        def refresh():
            calls.append(1)
            return f"token-{len(calls)}"

        response = compose([refresh_token_if_needed(refresh)], terminal)(get_request)

        assert response.status_code == 401
        assert calls == [1]
        assert terminal.authorization_headers() == [None, "Bearer token-1"]

    def test_refresh_failure_propagates(self, recording_exchange, get_request):
        first = Response(401)
        terminal = recording_exchange(first)

        def refresh():
            raise TokenRefreshError("Token request failed (400): invalid_grant", status_code=400)

        with pytest.raises(TokenRefreshError, match="invalid_grant"):
            compose([refresh_token_if_needed(refresh)], terminal)(get_request)

        assert len(terminal.requests) == 1
        assert first.is_consumed

    def test_async_refresher_rejected_by_blocking_chain(self, recording_exchange, get_request):
        terminal = recording_exchange(Response(401))

        async def refresh():
            return "new_token"

        with pytest.raises(TypeError, match="async client"):
            compose([refresh_token_if_needed(refresh)], terminal)(get_request)

    async def test_async_refresher(self, async_recording_exchange, get_request):
        terminal = async_recording_exchange(Response(401), Response(200))

        async def refresh():
            return "new_token"

        exchange = compose_async(
            [bearer_token("token"), refresh_token_if_needed(refresh)], terminal
        )
        response = await exchange(get_request)

        assert response.status_code == 200
        assert terminal.authorization_headers() == ["Bearer token", "Bearer new_token"]

    async def test_sync_refresher_in_async_chain(self, async_recording_exchange, get_request):
        terminal = async_recording_exchange(Response(401), Response(200))

        await compose_async([refresh_token_if_needed(lambda: "new_token")], terminal)(get_request)

        assert terminal.authorization_headers() == [None, "Bearer new_token"]

    async def test_cancel_before_retry_prevents_second_exchange(
        self, async_recording_exchange, get_request
    ):
        refreshing = asyncio.Event()
        first = Response(401, content=b"expired")
        terminal = async_recording_exchange(first, Response(200))

        async def refresh():
            refreshing.set()
            await asyncio.Event().wait()

        exchange = compose_async([refresh_token_if_needed(refresh)], terminal)
        task = asyncio.create_task(exchange(get_request))
        await refreshing.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert len(terminal.requests) == 1
        assert first.is_consumed

    async def test_async_refresh_failure_propagates(self, async_recording_exchange, get_request):
        terminal = async_recording_exchange(Response(401))

        async def refresh():
            raise TokenRefreshError("Token request failed (401): invalid_client", status_code=401)

        with pytest.raises(TokenRefreshError):
            await compose_async([refresh_token_if_needed(refresh)], terminal)(get_request)

        assert len(terminal.requests) == 1
