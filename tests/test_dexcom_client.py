from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from glucose_proxy.clients.dexcom import (
    DexcomAPIError,
    DexcomClient,
    OAuthTokenExchangeError,
)
from glucose_proxy.core.config import DexcomSettings


def _settings() -> DexcomSettings:
    return DexcomSettings(
        client_id="client",
        client_secret="secret",
        redirect_uri="https://example.com/auth/callback",
        base_url="https://sandbox-api.dexcom.com/",
        scopes="offline_access,egv",
    )


class RecordingHandler:
    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response


def _client(handler: RecordingHandler) -> DexcomClient:
    return DexcomClient(_settings(), transport=httpx.MockTransport(handler))


def _form(request: httpx.Request) -> dict[str, str]:
    return {key: values[0] for key, values in parse_qs(request.content.decode()).items()}


def test_build_authorization_url() -> None:
    client = DexcomClient(_settings())

    url = urlparse(client.build_authorization_url(state="abc"))
    query = parse_qs(url.query)

    assert f"{url.scheme}://{url.netloc}{url.path}" == (
        "https://sandbox-api.dexcom.com/v2/oauth2/login"
    )
    assert query["client_id"] == ["client"]
    assert query["redirect_uri"] == ["https://example.com/auth/callback"]
    assert query["response_type"] == ["code"]
    assert query["scope"] == ["offline_access egv"]
    assert query["state"] == ["abc"]


@pytest.mark.asyncio
async def test_exchange_authorization_code_posts_form() -> None:
    handler = RecordingHandler(
        httpx.Response(
            200,
            json={"access_token": "access", "refresh_token": "refresh", "expires_in": 7200},
        )
    )

    result = await _client(handler).exchange_authorization_code("auth-code")

    assert result == ("access", "refresh", 7200)
    request = handler.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/v2/oauth2/token"
    form = _form(request)
    assert form["grant_type"] == "authorization_code"
    assert form["code"] == "auth-code"
    assert form["client_id"] == "client"
    assert form["client_secret"] == "secret"
    assert form["redirect_uri"] == "https://example.com/auth/callback"


@pytest.mark.asyncio
async def test_exchange_authorization_code_rejects_error_response() -> None:
    handler = RecordingHandler(httpx.Response(400, json={"error": "invalid_grant"}))

    with pytest.raises(OAuthTokenExchangeError):
        await _client(handler).exchange_authorization_code("bad-code")


@pytest.mark.asyncio
async def test_refresh_token_uses_refresh_grant() -> None:
    handler = RecordingHandler(
        httpx.Response(200, json={"access_token": "fresh", "expires_in": "600"})
    )

    result = await _client(handler).refresh_token("stored-refresh")

    assert result == ("fresh", None, 600)
    form = _form(handler.requests[0])
    assert form["grant_type"] == "refresh_token"
    assert form["refresh_token"] == "stored-refresh"


@pytest.mark.asyncio
async def test_refresh_token_rejects_incomplete_payload() -> None:
    handler = RecordingHandler(httpx.Response(200, json={"token_type": "Bearer"}))

    with pytest.raises(OAuthTokenExchangeError):
        await _client(handler).refresh_token("stored-refresh")


@pytest.mark.asyncio
async def test_fetch_egvs_sends_bearer_and_date_range() -> None:
    records = [{"value": 120, "systemTime": "2024-01-01T00:00:00"}]
    handler = RecordingHandler(httpx.Response(200, json={"records": records}))

    result = await _client(handler).fetch_egvs(
        access_token="access", start_date="2024-01-01T00:00:00", end_date="2024-01-02T00:00:00"
    )

    assert result == records
    request = handler.requests[0]
    assert request.url.path == "/v2/users/self/egvs"
    assert request.headers["Authorization"] == "Bearer access"
    assert request.url.params["startDate"] == "2024-01-01T00:00:00"
    assert request.url.params["endDate"] == "2024-01-02T00:00:00"


@pytest.mark.asyncio
async def test_fetch_egvs_accepts_v2_payload_shape() -> None:
    egvs = [{"value": 98}]
    handler = RecordingHandler(httpx.Response(200, json={"egvs": egvs}))

    result = await _client(handler).fetch_egvs(
        access_token="access", start_date="a", end_date="b"
    )

    assert result == egvs


@pytest.mark.asyncio
async def test_fetch_egvs_raises_with_upstream_details() -> None:
    handler = RecordingHandler(httpx.Response(401, json={"fault": "invalid token"}))

    with pytest.raises(DexcomAPIError) as excinfo:
        await _client(handler).fetch_egvs(access_token="bad", start_date="a", end_date="b")

    assert excinfo.value.status_code == 401
    assert excinfo.value.details == {"fault": "invalid token"}


@pytest.mark.asyncio
async def test_transport_errors_become_dexcom_api_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    client = DexcomClient(_settings(), transport=httpx.MockTransport(handler))

    with pytest.raises(DexcomAPIError):
        await client.fetch_egvs(access_token="a", start_date="a", end_date="b")


@pytest.mark.asyncio
async def test_fetch_egvs_rejects_non_json_success_body() -> None:
    handler = RecordingHandler(httpx.Response(200, content=b"not json"))

    with pytest.raises(DexcomAPIError) as excinfo:
        await _client(handler).fetch_egvs(access_token="a", start_date="a", end_date="b")

    assert excinfo.value.status_code == 200
    assert excinfo.value.details == "not json"


@pytest.mark.asyncio
async def test_fetch_egvs_rejects_list_body() -> None:
    handler = RecordingHandler(httpx.Response(200, json=[]))

    with pytest.raises(DexcomAPIError) as excinfo:
        await _client(handler).fetch_egvs(access_token="a", start_date="a", end_date="b")

    assert excinfo.value.details == []


@pytest.mark.asyncio
async def test_fetch_egvs_rejects_records_that_are_not_a_list() -> None:
    handler = RecordingHandler(httpx.Response(200, json={"records": {"value": 100}}))

    with pytest.raises(DexcomAPIError):
        await _client(handler).fetch_egvs(access_token="a", start_date="a", end_date="b")
