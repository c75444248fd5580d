try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import httpx
import pytest

try:
    from ._fakes import build_test_app, make_bundle
except Exception:  # pragma: no cover
    from _fakes import build_test_app, make_bundle  # type: ignore

from token_bridge import dependencies
from token_bridge.clients import DurableStoreUnavailableError

WEBHOOK = "/api/integrations/telegram/webhook"


def _update(text: str | None, *, chat_id: int = 4242, user_id: int | None = 42) -> dict:
    message = {
        "message_id": 1,
        "date": 1_700_000_000,
        "chat": {"id": chat_id, "type": "private"},
    }
    if text is not None:
        message["text"] = text
    if user_id is not None:
        message["from"] = {"id": user_id, "is_bot": False, "first_name": "Ada"}
    return {"update_id": 10, "message": message}


def _client(app) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app), base_url="http://testserver"
    )


class RecordingLinkService:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list[tuple[str, str]] = []
        self.error = error

    async def link(self, *, handle: str, identity: str) -> None:
        self.calls.append((handle, identity))
        if self.error:
            raise self.error


@pytest.mark.anyio
async def test_start_command_links_handle_to_sender() -> None:
    app, container, redis, _ = build_test_app()
    bundle = make_bundle()
    await container.handle_store.insert("h0000000000000000001", bundle)

    async with _client(app) as client:
        response = await client.post(WEBHOOK, json=_update("/start h0000000000000000001"))

    assert response.status_code == 200
    body = response.json()
    assert body["method"] == "sendMessage"
    assert body["chat_id"] == 4242
    assert "linked" in body["text"]
    assert redis.data["42"] == bundle.to_record()
    assert await container.handle_store.get("h0000000000000000001") is None


@pytest.mark.anyio
async def test_unknown_handle_gets_a_retry_hint() -> None:
    app, _, redis, _ = build_test_app()

    async with _client(app) as client:
        response = await client.post(WEBHOOK, json=_update("/start h0000000000000000009"))

    assert response.status_code == 200
    assert "expired" in response.json()["text"]
    assert redis.data == {}


@pytest.mark.anyio
@pytest.mark.parametrize("text", [None, "hello", "/start", "/help h0000000000000000001"])
async def test_other_messages_are_ignored(text: str | None) -> None:
    app, _, _, _ = build_test_app()
    service = RecordingLinkService()
    app.dependency_overrides[dependencies.get_link_service] = lambda: service

    async with _client(app) as client:
        response = await client.post(WEBHOOK, json=_update(text))

    assert response.json() == {"status": "ignored"}
    assert service.calls == []


@pytest.mark.anyio
async def test_bot_mention_suffix_is_accepted() -> None:
    app, _, _, _ = build_test_app()
    service = RecordingLinkService()
    app.dependency_overrides[dependencies.get_link_service] = lambda: service

    async with _client(app) as client:
        await client.post(WEBHOOK, json=_update("/start@bridge_bot abc", user_id=None))

    # Without a "from" block the chat id identifies the user.
    assert service.calls == [("abc", "4242")]


@pytest.mark.anyio
async def test_webhook_token_is_enforced() -> None:
    app, container, _, _ = build_test_app()
    container.settings.telegram.webhook_token = "hook-secret"

    async with _client(app) as client:
        rejected = await client.post(WEBHOOK, json=_update("/start abc"))
        wrong = await client.post(
            WEBHOOK, params={"token": "hook-guess"}, json=_update("/start abc")
        )
        accepted = await client.post(
            WEBHOOK, params={"token": "hook-secret"}, json=_update("/start abc")
        )

    assert rejected.status_code == 403
    assert wrong.status_code == 403
    assert accepted.status_code == 200


@pytest.mark.anyio
async def test_store_outage_asks_telegram_to_redeliver() -> None:
    app, _, _, _ = build_test_app()
    service = RecordingLinkService(error=DurableStoreUnavailableError("down"))
    app.dependency_overrides[dependencies.get_link_service] = lambda: service

    async with _client(app) as client:
        response = await client.post(WEBHOOK, json=_update("/start abc"))

    assert response.status_code == 503
    assert service.calls == [("abc", "42")]
