"""
Telegram bot plugin.

Outbound calls go through python-telegram-bot's ``Bot``; inbound updates
arrive on the generic webhook route (setWebhook pointed at
/api/webhooks/telegram) and are parsed from the raw Update JSON.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from telegram import Bot
from telegram.error import TelegramError

from chatbridge.plugins.base import (
    BasePlugin,
    ChatMessage,
    ConnectionStatus,
    PlatformConfig,
    PluginConfigField,
    PluginError,
)

logger = logging.getLogger(__name__)

_BOT_TOKEN = re.compile(r"^\d+:[A-Za-z0-9_-]{20,}$")
_MAX_TEXT = 4096


class TelegramConfig(PlatformConfig):
    bot_token: str
    bot_username: str | None = None


class TelegramPlugin(BasePlugin):
    id = "telegram"
    name = "Telegram"
    platform = "telegram"
    version = "1.0.0"
    config_model = TelegramConfig
    config_schema = [
        PluginConfigField(
            key="botToken",
            label="Bot Token",
            type="password",
            required=True,
            placeholder="123456789:AA...",
            description="Token issued by @BotFather",
        ),
        PluginConfigField(key="botUsername", label="Bot Username", type="string"),
    ]

    def on_validate_config(self, config: Mapping[str, Any]) -> dict[str, str]:
        token = config.get("botToken")
        if token and not _BOT_TOKEN.match(str(token)):
            return {"botToken": "Bot Token should look like <bot id>:<secret>"}
        return {}

    def _bot(self) -> Bot:
        return Bot(self.config.bot_token)  # type: ignore[union-attr]

    async def _get_me(self) -> dict[str, Any]:
        try:
            async with self._bot() as bot:
                me = await bot.get_me()
        except TelegramError as exc:
            raise PluginError(f"Telegram API error: {exc}") from exc
        return {"id": me.id, "username": me.username}

    async def on_initialize(self) -> None:
        me = await self._get_me()
        logger.info("Telegram plugin ready for @%s", me["username"])

    async def on_send_message(self, message: ChatMessage) -> bool:
        chat_id = message.metadata.get("chatId") or message.user_id
        try:
            async with self._bot() as bot:
                await bot.send_message(chat_id=chat_id, text=message.content[:_MAX_TEXT])
        except TelegramError as exc:
            logger.error("Telegram send error: %s", exc)
            return False
        return True

    def parse_webhook(self, payload: Mapping[str, Any]) -> ChatMessage | None:
        message = payload.get("message") or payload.get("edited_message")
        if not message:
            return None
        text = message.get("text") or message.get("caption")
        if not text:
            return None

        sender = message.get("from") or {}
        chat = message["chat"]
        user_name = sender.get("username") or " ".join(
            part for part in (sender.get("first_name"), sender.get("last_name")) if part
        )
        return self.create_incoming_message(
            agent_id=self.agent_id_from(payload),
            content=text,
            user_id=str(sender.get("id", chat["id"])),
            user_name=user_name or None,
            metadata={
                "chatId": chat["id"],
                "messageId": message.get("message_id"),
                "updateId": payload.get("update_id"),
                "timestamp": message.get("date"),
            },
        )

    async def on_get_connection_status(self) -> ConnectionStatus:
        me = await self._get_me()
        return ConnectionStatus(
            connected=True,
            last_connected=datetime.now(timezone.utc),
            details={"botId": me["id"], "username": me["username"]},
        )
