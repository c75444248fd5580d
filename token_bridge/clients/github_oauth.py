"""
GitHub OAuth utilities.

Builds the consent URL and exchanges authorization codes for token bundles.
The exchange is never retried: GitHub consumes the code on first use, so a
second attempt would fail the same way.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional
from urllib.parse import parse_qsl, urlencode

import httpx
from pydantic import ValidationError

from token_bridge.core.config import GitHubSettings
from token_bridge.models import REQUIRED_FIELDS, TokenBundle

logger = logging.getLogger(__name__)

_INTEGER_FIELDS = ("expires_in", "refresh_token_expires_in")


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint fails or returns an unusable payload."""


def _parse_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise OAuthTokenExchangeError(f"Field {name!r} is not an integer.")
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError as exc:
        raise OAuthTokenExchangeError(f"Field {name!r} is not an integer.") from exc


def _parse_form_body(body: str) -> Dict[str, str]:
    fields: Dict[str, str] = {}
    for key, value in parse_qsl(body, keep_blank_values=True):
        if key not in REQUIRED_FIELDS and key != "error":
            logger.info("Ignoring unexpected token response field %r", key)
            continue
        fields[key] = value
    return fields


def _parse_json_body(body: str) -> Dict[str, Any]:
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as exc:
        raise OAuthTokenExchangeError("Token response is not valid JSON.") from exc
    if not isinstance(payload, dict):
        raise OAuthTokenExchangeError("Token response JSON is not an object.")
    return payload


def parse_token_response(body: str, content_type: str = "") -> TokenBundle:
    """
    Build a ``TokenBundle`` from a token endpoint response body.

    GitHub answers with ``application/x-www-form-urlencoded`` unless asked for
    JSON. The content type decides the parser; a body that starts with ``{``
    is treated as JSON regardless, since some proxies drop the header.
    """
    stripped = body.strip()
    if "json" in content_type.lower() or stripped.startswith("{"):
        fields: Mapping[str, Any] = _parse_json_body(stripped)
    else:
        fields = _parse_form_body(stripped)

    if "error" in fields and "access_token" not in fields:
        raise OAuthTokenExchangeError(
            f"Token endpoint returned error {fields.get('error')!r}."
        )

    missing = [
        name for name in REQUIRED_FIELDS if fields.get(name) in (None, "")
    ]
    if missing:
        raise OAuthTokenExchangeError(
            f"Token response is missing required fields: {', '.join(missing)}."
        )

    values = {name: fields[name] for name in REQUIRED_FIELDS}
    for name in _INTEGER_FIELDS:
        values[name] = _parse_int(name, values[name])

    try:
        return TokenBundle(**values)
    except ValidationError as exc:
        raise OAuthTokenExchangeError("Token response failed validation.") from exc


class GitHubOAuthClient:
    """Build GitHub authorization URLs and exchange authorization codes."""

    def __init__(
        self,
        github_settings: GitHubSettings,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._github = github_settings
        self._timeout = timeout
        self._transport = transport

    def build_authorization_url(self, state: Optional[str] = None) -> str:
        """Construct the GitHub consent URL."""
        params = {
            "client_id": self._github.client_id,
            "redirect_uri": str(self._github.redirect_uri),
        }
        if state:
            params["state"] = state
        return f"{self._github.authorize_url}?{urlencode(params)}"

    async def exchange_authorization_code(self, code: str) -> TokenBundle:
        """Exchange an authorization code for a token bundle."""
        if not code:
            raise OAuthTokenExchangeError("Authorization code must not be empty.")

        params = {
            "client_id": self._github.client_id,
            "client_secret": self._github.client_secret,
            "code": code,
            "redirect_uri": str(self._github.redirect_uri),
        }

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(str(self._github.token_url), params=params)
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError(f"Token endpoint unreachable: {exc}") from exc

        if not response.is_success:
            raise OAuthTokenExchangeError(
                f"Token endpoint returned HTTP {response.status_code}: {response.text}"
            )

        return parse_token_response(
            response.text, response.headers.get("content-type", "")
        )


__all__ = [
    "GitHubOAuthClient",
    "OAuthTokenExchangeError",
    "parse_token_response",
]
