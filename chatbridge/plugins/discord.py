"""
Discord plugin over the HTTP interactions model.

Slash-command interactions (type 2) are normalized into incoming messages;
replies are posted to the channel through the REST API with the bot token.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from chatbridge.plugins.base import (
    BasePlugin,
    ChatMessage,
    ConnectionStatus,
    PlatformConfig,
    PluginConfigField,
    PluginError,
)

logger = logging.getLogger(__name__)

DISCORD_API_BASE = "https://discord.com/api/v10"
_APPLICATION_COMMAND = 2
_SNOWFLAKE = re.compile(r"^\d{15,21}$")


class DiscordConfig(PlatformConfig):
    bot_token: str
    application_id: str
    default_channel_id: str | None = None


class DiscordPlugin(BasePlugin):
    id = "discord"
    name = "Discord"
    platform = "discord"
    version = "1.0.0"
    config_model = DiscordConfig
    config_schema = [
        PluginConfigField(key="botToken", label="Bot Token", type="password", required=True),
        PluginConfigField(key="applicationId", label="Application ID", type="string", required=True),
        PluginConfigField(
            key="defaultChannelId",
            label="Default Channel ID",
            type="string",
            description="Channel used when an outgoing message names no channel",
        ),
    ]

    def on_validate_config(self, config: Mapping[str, Any]) -> dict[str, str]:
        errors: dict[str, str] = {}
        for key, label in (("applicationId", "Application ID"), ("defaultChannelId", "Default Channel ID")):
            value = config.get(key)
            if value and not _SNOWFLAKE.match(str(value)):
                errors[key] = f"{label} should be a Discord snowflake id"
        return errors

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bot {self.config.bot_token}"}  # type: ignore[union-attr]

    async def _get_me(self) -> dict[str, Any]:
        async with self.http() as client:
            resp = await client.get(f"{DISCORD_API_BASE}/users/@me", headers=self._headers())
        if resp.status_code >= 400:
            raise PluginError(f"Discord API error {resp.status_code}: {resp.text[:200]}")
        return resp.json()

    async def on_initialize(self) -> None:
        me = await self._get_me()
        logger.info("Discord plugin ready as %s", me.get("username"))

    async def on_send_message(self, message: ChatMessage) -> bool:
        cfg: DiscordConfig = self.config  # type: ignore[assignment]
        channel_id = message.metadata.get("channelId") or cfg.default_channel_id or message.user_id
        async with self.http() as client:
            resp = await client.post(
                f"{DISCORD_API_BASE}/channels/{channel_id}/messages",
                headers=self._headers(),
                json={"content": message.content[:2000]},
            )
        if resp.status_code >= 400:
            logger.error("Discord send error: %s %s", resp.status_code, resp.text[:200])
            return False
        return True

    def parse_webhook(self, payload: Mapping[str, Any]) -> ChatMessage | None:
        if payload.get("type") != _APPLICATION_COMMAND:
            return None
        data = payload.get("data") or {}
        options = " ".join(str(opt.get("value", "")) for opt in data.get("options") or [])
        content = f"/{data['name']} {options}".strip()

        user = (payload.get("member") or {}).get("user") or payload.get("user") or {}
        return self.create_incoming_message(
            agent_id=self.agent_id_from(payload),
            content=content,
            user_id=str(user["id"]),
            user_name=user.get("global_name") or user.get("username"),
            metadata={
                "interactionId": payload.get("id"),
                "channelId": payload.get("channel_id"),
                "guildId": payload.get("guild_id"),
                "command": data["name"],
            },
        )

    async def on_get_connection_status(self) -> ConnectionStatus:
        me = await self._get_me()
        return ConnectionStatus(
            connected=True,
            last_connected=datetime.now(timezone.utc),
            details={"applicationId": self.config.application_id, "botUser": me.get("username")},  # type: ignore[union-attr]
        )
