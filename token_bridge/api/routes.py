"""
FastAPI routes for the token bridge.
"""

from __future__ import annotations

import hmac
import html
import logging
from http import HTTPStatus
from typing import Annotated, Any, NoReturn

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, RedirectResponse

from token_bridge.clients import (
    GitHubOAuthClient,
    RedisTokenStore,
    DurableRecordNotFoundError,
    DurableStoreUnavailableError,
    OAuthTokenExchangeError,
)
from token_bridge.core.config import AppSettings
from token_bridge.dependencies import (
    get_app_settings,
    get_durable_store,
    get_github_oauth_client,
    get_link_service,
    get_lookup_service,
)
from token_bridge.models import TokenSerializationError
from token_bridge.schemas import TelegramUpdate
from token_bridge.services import (
    GatedLookupService,
    HandleNotFoundError,
    LookupRejectedError,
    TokenLinkService,
)

router = APIRouter()
logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

API_PREFIX = "/api"
CALLBACK_PATH = "/auth/github/callback"

_START_COMMAND = "/start"


def _fail(status: HTTPStatus, detail: str) -> NoReturn:
    raise HTTPException(status_code=status, detail=detail, headers=NO_CACHE_HEADERS)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> Response:
    """FastAPI's 422 response, with the same no-cache headers as every other reply."""
    response = await request_validation_exception_handler(request, exc)
    response.headers.update(NO_CACHE_HEADERS)
    return response


def _render_page(title: str, body: str, status: HTTPStatus = HTTPStatus.OK) -> HTMLResponse:
    content = (
        "<!doctype html><html><head><meta charset=\"utf-8\">"
        f"<title>{html.escape(title)}</title></head><body>{body}</body></html>"
    )
    return HTMLResponse(content=content, status_code=status, headers=NO_CACHE_HEADERS)


def _render_handle_page(handle: str, bot_username: str | None) -> HTMLResponse:
    escaped = html.escape(handle)
    if bot_username:
        link = f"https://t.me/{html.escape(bot_username)}?start={escaped}"
        body = (
            "<h1>GitHub connected</h1>"
            f"<p><a id=\"telegram-link\" href=\"{link}\">Open Telegram to finish linking</a></p>"
            f"<p>Or send <code>{_START_COMMAND} {escaped}</code> to the bot.</p>"
        )
    else:
        body = (
            "<h1>GitHub connected</h1>"
            f"<p>Send <code>{_START_COMMAND} {escaped}</code> to the bot to finish linking.</p>"
        )
    return _render_page("GitHub connected", body)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(
    durable_store: Annotated[RedisTokenStore, Depends(get_durable_store)],
) -> dict:
    """Report whether Redis answers."""
    if not await durable_store.ping():
        _fail(HTTPStatus.SERVICE_UNAVAILABLE, "Durable store unavailable.")
    return {"status": "ok"}


@router.get("/auth/github/authorize", status_code=HTTPStatus.OK)
async def start_github_oauth_flow(
    request: Request,
    oauth_client: Annotated[GitHubOAuthClient, Depends(get_github_oauth_client)],
    state: str | None = Query(default=None, description="Opaque value echoed back by GitHub."),
    redirect: bool = Query(
        default=False,
        description="When true, respond with a redirect to the GitHub consent screen.",
    ),
) -> Any:
    """Return the GitHub consent URL, or redirect browsers straight to it."""
    authorization_url = oauth_client.build_authorization_url(state=state)

    accept_header = request.headers.get("accept", "")
    wants_html = "text/html" in accept_header.lower()
    if redirect or wants_html:
        return RedirectResponse(url=authorization_url, status_code=HTTPStatus.TEMPORARY_REDIRECT)

    return {"authorization_url": authorization_url}


@router.get(CALLBACK_PATH, response_class=HTMLResponse)
async def handle_github_oauth_callback(
    oauth_client: Annotated[GitHubOAuthClient, Depends(get_github_oauth_client)],
    link_service: Annotated[TokenLinkService, Depends(get_link_service)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    code: str = Query(..., min_length=1, description="Authorization code returned by GitHub."),
) -> HTMLResponse:
    """Exchange the code, park the tokens under a fresh handle and show it."""
    try:
        bundle = await oauth_client.exchange_authorization_code(code)
    except OAuthTokenExchangeError as exc:
        logger.error("GitHub code exchange failed: %s", exc)
        return _render_page(
            "Connection failed",
            "<h1>Connection failed</h1><p>Could not complete the GitHub sign-in. Please try again.</p>",
            status=HTTPStatus.BAD_GATEWAY,
        )

    handle = await link_service.issue_handle(bundle)
    return _render_handle_page(handle, settings.telegram.bot_username)


@router.get("/link", response_class=PlainTextResponse)
async def link_handle(
    link_service: Annotated[TokenLinkService, Depends(get_link_service)],
    handle: str = Query(..., min_length=1, description="Handle issued by the callback page."),
    identity: str = Query(..., min_length=1, description="Messaging platform user identifier."),
) -> PlainTextResponse:
    """Move the bundle held under ``handle`` into Redis under ``identity``."""
    try:
        await link_service.link(handle=handle, identity=identity)
    except HandleNotFoundError:
        logger.warning("Link attempt for identity %s used an unknown handle", identity)
        _fail(HTTPStatus.NOT_FOUND, "Handle not found.")
    except DurableStoreUnavailableError:
        _fail(HTTPStatus.SERVICE_UNAVAILABLE, "Storage unavailable.")
    except TokenSerializationError:
        logger.exception("Failed to serialize token bundle for identity %s", identity)
        _fail(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal error.")

    return PlainTextResponse("linked", headers=NO_CACHE_HEADERS)


@router.get("/tokens")
async def lookup_tokens(
    request: Request,
    lookup_service: Annotated[GatedLookupService, Depends(get_lookup_service)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    identity: str = Query(..., min_length=1, description="Messaging platform user identifier."),
) -> Response:
    """Return the stored record for ``identity`` to callers holding the shared secret."""
    presented = request.headers.get(settings.security.lookup_secret_header)
    try:
        record = await lookup_service.fetch(identity=identity, presented_secret=presented)
    except LookupRejectedError:
        _fail(HTTPStatus.FORBIDDEN, "Forbidden.")
    except DurableRecordNotFoundError:
        logger.info("No stored tokens for identity %s", identity)
        _fail(HTTPStatus.NOT_FOUND, "Not found.")
    except DurableStoreUnavailableError:
        _fail(HTTPStatus.SERVICE_UNAVAILABLE, "Storage unavailable.")
    except TokenSerializationError:
        logger.exception("Stored record for identity %s is unreadable", identity)
        _fail(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal error.")

    # The record is already JSON text; returning it through JSONResponse would
    # encode it a second time.
    return PlainTextResponse(
        record, media_type="application/json", headers=NO_CACHE_HEADERS
    )


@router.post("/integrations/telegram/webhook", status_code=HTTPStatus.OK)
async def telegram_webhook(
    update: TelegramUpdate,
    link_service: Annotated[TokenLinkService, Depends(get_link_service)],
    settings: Annotated[AppSettings, Depends(get_app_settings)],
    token: str | None = Query(None, description="Webhook token for verification."),
) -> JSONResponse:
    """Link a handle sent as ``/start <handle>`` to the Telegram sender."""
    expected_token = settings.telegram.webhook_token
    if expected_token and not hmac.compare_digest(
        (token or "").encode("utf-8"), expected_token.encode("utf-8")
    ):
        _fail(HTTPStatus.FORBIDDEN, "Invalid token")

    message = update.message
    text = ((message.text if message else None) or "").strip()
    command, _, handle = text.partition(" ")
    handle = handle.strip()
    if not message or command.split("@")[0] != _START_COMMAND or not handle:
        return JSONResponse({"status": "ignored"}, headers=NO_CACHE_HEADERS)

    identity = message.sender_id
    if not identity:
        return JSONResponse({"status": "ignored"}, headers=NO_CACHE_HEADERS)

    try:
        await link_service.link(handle=handle, identity=identity)
        reply = "Your GitHub account is now linked."
    except HandleNotFoundError:
        logger.warning("Telegram user %s sent an unknown handle", identity)
        reply = "This link has expired or was already used. Please sign in with GitHub again."
    except DurableStoreUnavailableError:
        # Non-2xx makes Telegram redeliver the update; the handle is still valid.
        _fail(HTTPStatus.SERVICE_UNAVAILABLE, "Storage unavailable.")
    except TokenSerializationError:
        logger.exception("Failed to serialize token bundle for Telegram user %s", identity)
        _fail(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal error.")

    return JSONResponse(
        {
            "method": "sendMessage",
            "chat_id": message.chat.get("id"),
            "text": reply,
        },
        headers=NO_CACHE_HEADERS,
    )


__all__ = [
    "API_PREFIX",
    "CALLBACK_PATH",
    "NO_CACHE_HEADERS",
    "router",
    "validation_error_handler",
]
