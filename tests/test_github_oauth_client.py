try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json
import logging
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

try:
    from ._fakes import TOKEN_FIELDS, FakeTokenEndpoint
except Exception:  # pragma: no cover
    from _fakes import TOKEN_FIELDS, FakeTokenEndpoint  # type: ignore

from token_bridge.clients.github_oauth import (
    GitHubOAuthClient,
    OAuthTokenExchangeError,
    parse_token_response,
)
from token_bridge.core.config import GitHubSettings
from token_bridge.models import REQUIRED_FIELDS

EXPECTED = {
    "access_token": "tok_1",
    "expires_in": 3600,
    "refresh_token": "ref_1",
    "refresh_token_expires_in": 604800,
    "scope": "read",
    "token_type": "bearer",
}


def _settings() -> GitHubSettings:
    return GitHubSettings(
        GITHUB_CLIENT_ID="client",
        GITHUB_CLIENT_SECRET="secret",
        REDIRECT_URL="https://bridge.example.com/callback",
    )


def _form(fields: dict) -> str:
    return "&".join(f"{key}={value}" for key, value in fields.items())


def test_parses_form_encoded_body() -> None:
    bundle = parse_token_response(_form(TOKEN_FIELDS), "application/x-www-form-urlencoded")
    assert bundle.model_dump() == EXPECTED


def test_parses_json_body() -> None:
    body = json.dumps(EXPECTED)
    bundle = parse_token_response(body, "application/json; charset=utf-8")
    assert bundle.model_dump() == EXPECTED


def test_json_detected_without_content_type() -> None:
    bundle = parse_token_response(json.dumps(EXPECTED))
    assert bundle.model_dump() == EXPECTED


def test_unknown_form_keys_are_logged_and_skipped(caplog: pytest.LogCaptureFixture) -> None:
    body = _form({**TOKEN_FIELDS, "installation": "42"})
    with caplog.at_level(logging.INFO, logger="token_bridge.clients.github_oauth"):
        bundle = parse_token_response(body)

    assert bundle.model_dump() == EXPECTED
    assert "installation" in caplog.text


@pytest.mark.parametrize("missing", REQUIRED_FIELDS)
def test_missing_field_fails_form(missing: str) -> None:
    fields = {key: value for key, value in TOKEN_FIELDS.items() if key != missing}
    with pytest.raises(OAuthTokenExchangeError, match=missing):
        parse_token_response(_form(fields))


@pytest.mark.parametrize("missing", REQUIRED_FIELDS)
def test_missing_field_fails_json(missing: str) -> None:
    payload = {key: value for key, value in EXPECTED.items() if key != missing}
    with pytest.raises(OAuthTokenExchangeError):
        parse_token_response(json.dumps(payload), "application/json")


def test_empty_value_counts_as_missing() -> None:
    with pytest.raises(OAuthTokenExchangeError, match="scope"):
        parse_token_response(_form({**TOKEN_FIELDS, "scope": ""}))


@pytest.mark.parametrize("field", ["expires_in", "refresh_token_expires_in"])
def test_non_integer_expiry_fails(field: str) -> None:
    with pytest.raises(OAuthTokenExchangeError, match=field):
        parse_token_response(_form({**TOKEN_FIELDS, field: "soon"}))


def test_error_body_is_reported() -> None:
    body = "error=bad_verification_code&error_description=The+code+is+incorrect"
    with pytest.raises(OAuthTokenExchangeError, match="bad_verification_code"):
        parse_token_response(body)


def test_authorization_url_contains_client_and_redirect() -> None:
    url = GitHubOAuthClient(_settings()).build_authorization_url(state="xyz")
    parsed = urlparse(url)
    params = parse_qs(parsed.query)

    assert parsed.netloc == "github.com"
    assert params["client_id"] == ["client"]
    assert params["redirect_uri"] == ["https://bridge.example.com/callback"]
    assert params["state"] == ["xyz"]


@pytest.mark.anyio
async def test_exchange_sends_credentials_as_query_parameters() -> None:
    endpoint = FakeTokenEndpoint()
    client = GitHubOAuthClient(_settings(), transport=endpoint.transport)

    bundle = await client.exchange_authorization_code("abc123")

    assert bundle.model_dump() == EXPECTED
    assert len(endpoint.requests) == 1
    request = endpoint.requests[0]
    assert request.method == "POST"
    assert request.url.path == "/login/oauth/access_token"
    assert dict(request.url.params) == {
        "client_id": "client",
        "client_secret": "secret",
        "code": "abc123",
        "redirect_uri": "https://bridge.example.com/callback",
    }
    assert request.content == b""


@pytest.mark.anyio
async def test_exchange_accepts_json_response() -> None:
    endpoint = FakeTokenEndpoint(body=json.dumps(EXPECTED), content_type="application/json")
    client = GitHubOAuthClient(_settings(), transport=endpoint.transport)

    bundle = await client.exchange_authorization_code("abc123")

    assert bundle.access_token == "tok_1"


@pytest.mark.anyio
@pytest.mark.parametrize("status_code", [400, 401, 500, 503])
async def test_exchange_non_success_status_is_terminal(status_code: int) -> None:
    endpoint = FakeTokenEndpoint(status_code=status_code)
    client = GitHubOAuthClient(_settings(), transport=endpoint.transport)

    with pytest.raises(OAuthTokenExchangeError, match=str(status_code)):
        await client.exchange_authorization_code("abc123")

    assert len(endpoint.requests) == 1


@pytest.mark.anyio
async def test_exchange_transport_error_is_wrapped() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = GitHubOAuthClient(_settings(), transport=httpx.MockTransport(handler))

    with pytest.raises(OAuthTokenExchangeError, match="unreachable"):
        await client.exchange_authorization_code("abc123")


@pytest.mark.anyio
async def test_exchange_rejects_empty_code() -> None:
    endpoint = FakeTokenEndpoint()
    client = GitHubOAuthClient(_settings(), transport=endpoint.transport)

    with pytest.raises(OAuthTokenExchangeError):
        await client.exchange_authorization_code("")

    assert endpoint.requests == []
