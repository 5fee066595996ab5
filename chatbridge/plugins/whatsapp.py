"""
WhatsApp Business Cloud API plugin.

Inbound messages arrive as Meta webhooks (entry[].changes[].value.messages[]);
outbound messages go to POST /{api_version}/{phone_number_id}/messages.
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
from chatbridge.plugins.meta import GRAPH_API_BASE, MetaWebhookMixin

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"^\d+$")


class WhatsAppConfig(PlatformConfig):
    phone_number_id: str
    access_token: str
    api_version: str = "v17.0"
    verify_token: str
    business_name: str


class WhatsAppPlugin(MetaWebhookMixin, BasePlugin):
    id = "whatsapp"
    name = "WhatsApp Business"
    platform = "whatsapp"
    version = "1.0.0"
    config_model = WhatsAppConfig
    config_schema = [
        PluginConfigField(
            key="phoneNumberId",
            label="Phone Number ID",
            type="string",
            required=True,
            placeholder="123456789012345",
            description="The phone number ID from the WhatsApp Business dashboard",
        ),
        PluginConfigField(
            key="accessToken",
            label="Access Token",
            type="password",
            required=True,
            description="Permanent access token for the WhatsApp Business API",
        ),
        PluginConfigField(key="apiVersion", label="API Version", type="string", required=True, default="v17.0"),
        PluginConfigField(
            key="verifyToken",
            label="Webhook Verify Token",
            type="string",
            required=True,
            description="Token Meta sends back when verifying the webhook subscription",
        ),
        PluginConfigField(key="businessName", label="Business Name", type="string", required=True),
    ]

    def on_validate_config(self, config: Mapping[str, Any]) -> dict[str, str]:
        errors: dict[str, str] = {}
        phone_number_id = config.get("phoneNumberId")
        if phone_number_id and not _DIGITS.match(str(phone_number_id)):
            errors["phoneNumberId"] = "Phone Number ID should contain only digits"
        access_token = config.get("accessToken")
        if access_token and len(str(access_token)) < 10:
            errors["accessToken"] = "Access Token appears to be invalid"
        return errors

    def _messages_url(self) -> str:
        cfg: WhatsAppConfig = self.config  # type: ignore[assignment]
        return f"{GRAPH_API_BASE}/{cfg.api_version}/{cfg.phone_number_id}/messages"

    def _auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.config.access_token}"}  # type: ignore[union-attr]

    async def _fetch_phone_number(self) -> dict[str, Any]:
        cfg: WhatsAppConfig = self.config  # type: ignore[assignment]
        async with self.http() as client:
            resp = await client.get(
                f"{GRAPH_API_BASE}/{cfg.api_version}/{cfg.phone_number_id}",
                params={"fields": "display_phone_number,verified_name"},
                headers=self._auth_headers(),
            )
        if resp.status_code >= 400:
            raise PluginError(f"WhatsApp API error {resp.status_code}: {resp.text[:200]}")
        return resp.json()

    async def on_initialize(self) -> None:
        await self._fetch_phone_number()
        logger.info("WhatsApp plugin ready for %s", self.config.business_name)  # type: ignore[union-attr]

    async def on_send_message(self, message: ChatMessage) -> bool:
        payload: dict[str, Any] = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": message.user_id,
            "type": "text",
            "text": {"preview_url": False, "body": message.content[:4096]},
        }
        async with self.http() as client:
            resp = await client.post(self._messages_url(), json=payload, headers=self._auth_headers())
        if resp.status_code >= 400:
            logger.error("WhatsApp send error: %s %s", resp.status_code, resp.text[:200])
            return False
        return True

    def parse_webhook(self, payload: Mapping[str, Any]) -> ChatMessage | None:
        entries = payload.get("entry") or []
        if not entries or not entries[0].get("changes"):
            return None

        value = entries[0]["changes"][0].get("value") or {}
        messages = value.get("messages") or []
        if not messages:
            return None
        message = messages[0]

        msg_type = message.get("type", "text")
        if msg_type == "text":
            content = message.get("text", {}).get("body", "")
        elif msg_type == "interactive":
            interactive = message.get("interactive", {})
            reply = interactive.get("button_reply") or interactive.get("list_reply") or {}
            content = reply.get("title", "")
        else:
            content = (message.get(msg_type) or {}).get("caption", "")

        contacts = value.get("contacts") or [{}]
        return self.create_incoming_message(
            agent_id=self.agent_id_from(payload),
            content=content,
            user_id=str(message["from"]),
            user_name=(contacts[0].get("profile") or {}).get("name"),
            message_type="image" if msg_type == "image" else "text",
            metadata={
                "messageId": message.get("id"),
                "timestamp": message.get("timestamp"),
                "type": msg_type,
            },
        )

    async def on_get_connection_status(self) -> ConnectionStatus:
        number = await self._fetch_phone_number()
        cfg: WhatsAppConfig = self.config  # type: ignore[assignment]
        return ConnectionStatus(
            connected=True,
            last_connected=datetime.now(timezone.utc),
            details={
                "phoneNumberId": cfg.phone_number_id,
                "businessName": cfg.business_name,
                "displayPhoneNumber": number.get("display_phone_number"),
            },
        )
