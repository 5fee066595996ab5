from __future__ import annotations

import json

import httpx
import pytest

import chatbridge.plugins.telegram as telegram_module
from chatbridge.plugins.discord import DiscordPlugin
from chatbridge.plugins.instagram import InstagramPlugin
from chatbridge.plugins.messenger import MessengerPlugin
from chatbridge.plugins.telegram import TelegramPlugin
from chatbridge.plugins.whatsapp import WhatsAppPlugin

WHATSAPP_CONFIG = {
    "phoneNumberId": "123456789012345",
    "accessToken": "EAAG-test-access-token",
    "apiVersion": "v17.0",
    "verifyToken": "verify-me",
    "businessName": "Acme",
}
MESSENGER_CONFIG = {"pageId": "998877", "accessToken": "page-token-123", "verifyToken": "page-verify"}
TELEGRAM_CONFIG = {"botToken": "123456:ABCDEFGHIJKLMNOPQRSTUVWXYZ", "botUsername": "acme_bot"}
DISCORD_CONFIG = {"botToken": "discord-bot-token", "applicationId": "123456789012345678"}


def _whatsapp_payload(message: dict) -> dict:
    return {
        "object": "whatsapp_business_account",
        "entry": [
            {
                "changes": [
                    {
                        "value": {
                            "contacts": [{"profile": {"name": "Jane"}, "wa_id": "15550001111"}],
                            "messages": [message],
                        }
                    }
                ]
            }
        ],
    }


# ── WhatsApp ───────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_whatsapp_parses_text_message():
    payload = _whatsapp_payload(
        {"from": "15550001111", "id": "wamid.1", "timestamp": "1700000000", "type": "text", "text": {"body": "Hi"}}
    )
    message = await WhatsAppPlugin().handle_webhook(payload)
    assert message.content == "Hi"
    assert message.user_id == "15550001111"
    assert message.user_name == "Jane"
    assert message.direction == "incoming"
    assert message.agent_id == 1
    assert message.metadata == {"messageId": "wamid.1", "timestamp": "1700000000", "type": "text"}


@pytest.mark.asyncio
async def test_whatsapp_parses_interactive_reply():
    payload = _whatsapp_payload(
        {
            "from": "15550001111",
            "type": "interactive",
            "interactive": {"type": "button_reply", "button_reply": {"id": "b1", "title": "Yes please"}},
        }
    )
    message = await WhatsAppPlugin().handle_webhook(payload)
    assert message.content == "Yes please"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"entry": []},
        {"entry": [{"changes": [{"value": {"statuses": [{"id": "x"}]}}]}]},
        {"entry": "garbage"},
    ],
)
async def test_whatsapp_ignores_payloads_without_messages(payload):
    assert await WhatsAppPlugin().handle_webhook(payload) is None


@pytest.mark.asyncio
async def test_whatsapp_send_posts_to_cloud_api(ok_http, recorded_requests):
    plugin = WhatsAppPlugin(http_client=ok_http)
    assert await plugin.initialize(WHATSAPP_CONFIG)

    sent = await plugin.send_message(plugin.create_outgoing_message(1, "Hello there", "15550001111"))

    assert sent is True
    request = recorded_requests[-1]
    assert request.method == "POST"
    assert request.url.path == "/v17.0/123456789012345/messages"
    assert request.headers["Authorization"] == "Bearer EAAG-test-access-token"
    body = json.loads(request.content)
    assert body["to"] == "15550001111"
    assert body["text"]["body"] == "Hello there"


@pytest.mark.asyncio
async def test_whatsapp_send_reports_platform_rejection(make_http):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "GET":
            return httpx.Response(200, json={"display_phone_number": "+1 555"})
        return httpx.Response(400, json={"error": {"message": "bad recipient"}})

    plugin = WhatsAppPlugin(http_client=make_http(handler))
    assert await plugin.initialize(WHATSAPP_CONFIG)
    assert await plugin.send_message(plugin.create_outgoing_message(1, "x", "bad")) is False


@pytest.mark.asyncio
async def test_whatsapp_verify_accepts_stored_token():
    plugin = WhatsAppPlugin()
    params = {"hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "1158201444"}
    assert await plugin.verify_webhook(params, [{"verifyToken": "verify-me"}]) == "1158201444"
    assert await plugin.verify_webhook(params, [{"verifyToken": "other"}]) is None
    assert await plugin.verify_webhook({**params, "hub.mode": "unsubscribe"}, [{"verifyToken": "verify-me"}]) is None


# ── Messenger / Instagram ─────────────────────────────────────────────────


def _graph_payload(obj: str) -> dict:
    return {
        "object": obj,
        "entry": [
            {
                "messaging": [
                    {
                        "sender": {"id": "4455"},
                        "recipient": {"id": "998877"},
                        "timestamp": 1700000000,
                        "message": {"mid": "m_1", "text": "Where is my order?"},
                    }
                ]
            }
        ],
    }


@pytest.mark.asyncio
async def test_messenger_parses_page_messages_only():
    message = await MessengerPlugin().handle_webhook(_graph_payload("page"))
    assert message.content == "Where is my order?"
    assert message.user_id == "4455"
    assert message.metadata["messageId"] == "m_1"
    assert await MessengerPlugin().handle_webhook(_graph_payload("instagram")) is None


@pytest.mark.asyncio
async def test_instagram_parses_instagram_object():
    message = await InstagramPlugin().handle_webhook(_graph_payload("instagram"))
    assert message.platform == "instagram"
    assert message.user_id == "4455"


@pytest.mark.asyncio
async def test_messenger_send_uses_page_node(ok_http, recorded_requests):
    plugin = MessengerPlugin(http_client=ok_http)
    assert await plugin.initialize(MESSENGER_CONFIG)
    assert await plugin.send_message(plugin.create_outgoing_message(1, "Shipped!", "4455"))

    request = recorded_requests[-1]
    assert request.url.path == "/v19.0/998877/messages"
    assert request.url.params["access_token"] == "page-token-123"
    assert json.loads(request.content)["recipient"] == {"id": "4455"}


@pytest.mark.asyncio
async def test_messenger_verify_uses_own_config_when_enabled(ok_http):
    plugin = MessengerPlugin(http_client=ok_http)
    assert await plugin.initialize(MESSENGER_CONFIG)
    params = {"hub.mode": "subscribe", "hub.verify_token": "page-verify", "hub.challenge": "abc"}
    assert await plugin.verify_webhook(params) == "abc"


def test_messenger_page_id_must_be_digits():
    result = MessengerPlugin().validate_config({**MESSENGER_CONFIG, "pageId": "my-page"})
    assert result.errors == {"pageId": "Page ID should contain only digits"}


# ── Telegram ──────────────────────────────────────────────────────────────


class _FakeUser:
    id = 42
    username = "acme_bot"


class _FakeBot:
    sent: list[dict] = []

    def __init__(self, token: str) -> None:
        self.token = token

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def get_me(self):
        return _FakeUser()

    async def send_message(self, chat_id, text):
        self.sent.append({"token": self.token, "chat_id": chat_id, "text": text})


@pytest.fixture()
def fake_bot(monkeypatch):
    _FakeBot.sent = []
    monkeypatch.setattr(telegram_module, "Bot", _FakeBot)
    return _FakeBot


def test_telegram_token_format_is_checked():
    result = TelegramPlugin().validate_config({"botToken": "not-a-token"})
    assert "botToken" in result.errors


@pytest.mark.asyncio
async def test_telegram_parses_update():
    update = {
        "update_id": 10,
        "message": {
            "message_id": 5,
            "date": 1700000000,
            "from": {"id": 777, "first_name": "Ann", "last_name": "Lee"},
            "chat": {"id": 777, "type": "private"},
            "text": "/start",
        },
    }
    message = await TelegramPlugin().handle_webhook(update)
    assert message.content == "/start"
    assert message.user_id == "777"
    assert message.user_name == "Ann Lee"
    assert message.metadata["chatId"] == 777


@pytest.mark.asyncio
async def test_telegram_ignores_updates_without_text():
    update = {"update_id": 11, "message": {"chat": {"id": 1}, "from": {"id": 1}, "sticker": {}}}
    assert await TelegramPlugin().handle_webhook(update) is None
    assert await TelegramPlugin().handle_webhook({"update_id": 12, "callback_query": {}}) is None


@pytest.mark.asyncio
async def test_telegram_send_goes_through_bot(fake_bot):
    plugin = TelegramPlugin()
    assert await plugin.initialize(TELEGRAM_CONFIG)
    message = plugin.create_outgoing_message(1, "Welcome", "777", metadata={"chatId": 777})
    assert await plugin.send_message(message) is True
    assert fake_bot.sent == [{"token": TELEGRAM_CONFIG["botToken"], "chat_id": 777, "text": "Welcome"}]

    status = await plugin.get_connection_status()
    assert status.connected is True
    assert status.details["username"] == "acme_bot"


# ── Discord ───────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_discord_parses_slash_command():
    interaction = {
        "id": "int-1",
        "type": 2,
        "channel_id": "555",
        "guild_id": "666",
        "member": {"user": {"id": "111", "username": "kim"}},
        "data": {"name": "ask", "options": [{"name": "question", "value": "What is up?"}]},
    }
    message = await DiscordPlugin().handle_webhook(interaction)
    assert message.content == "/ask What is up?"
    assert message.user_id == "111"
    assert message.metadata["channelId"] == "555"


@pytest.mark.asyncio
async def test_discord_ignores_ping():
    assert await DiscordPlugin().handle_webhook({"type": 1}) is None


@pytest.mark.asyncio
async def test_discord_send_posts_to_channel(ok_http, recorded_requests):
    plugin = DiscordPlugin(http_client=ok_http)
    assert await plugin.initialize(DISCORD_CONFIG)
    message = plugin.create_outgoing_message(1, "pong", "111", metadata={"channelId": "555"})
    assert await plugin.send_message(message) is True

    request = recorded_requests[-1]
    assert request.url.path == "/api/v10/channels/555/messages"
    assert request.headers["Authorization"] == "Bot discord-bot-token"


def test_discord_application_id_must_be_snowflake():
    result = DiscordPlugin().validate_config({**DISCORD_CONFIG, "applicationId": "abc"})
    assert result.errors == {"applicationId": "Application ID should be a Discord snowflake id"}
