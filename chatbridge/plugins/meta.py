"""
Shared pieces for Meta-family platforms (WhatsApp Cloud API, Messenger, Instagram).

All three use the Graph API for outbound calls and the same
hub.mode / hub.verify_token / hub.challenge subscription handshake.
"""
from __future__ import annotations

import hmac
import logging
from abc import abstractmethod
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from chatbridge.plugins.base import BasePlugin, ChatMessage, ConnectionStatus, PluginError

logger = logging.getLogger(__name__)

GRAPH_API_BASE = "https://graph.facebook.com"
DEFAULT_GRAPH_VERSION = "v19.0"


class MetaWebhookMixin:
    """Hub challenge verification against the plugin's own or any stored verify token."""

    verify_token_key = "verifyToken"

    async def verify_webhook(
        self, params: Mapping[str, str], stored_configs: Sequence[Mapping[str, Any]] = ()
    ) -> str | dict[str, Any] | None:
        mode = params.get("hub.mode")
        token = params.get("hub.verify_token")
        challenge = params.get("hub.challenge")
        if mode != "subscribe" or not token or challenge is None:
            return None

        known: set[str] = set()
        own = getattr(self, "config", None)
        if getattr(self, "enabled", False) and own is not None:
            known.add(getattr(own, "verify_token", ""))
        for stored in stored_configs:
            value = stored.get(self.verify_token_key)
            if value:
                known.add(str(value))

        if any(hmac.compare_digest(token.encode(), c.encode()) for c in known if c):
            return challenge
        logger.warning("Webhook verification token mismatch for %s", getattr(self, "platform", "?"))
        return None


class GraphMessagingPlugin(MetaWebhookMixin, BasePlugin):
    """Messenger-style send API: POST /{node_id}/messages with a recipient id."""

    webhook_object: str = "page"

    @abstractmethod
    def node_id(self) -> str: ...

    def _access_token(self) -> str:
        return self.config.access_token  # type: ignore[union-attr]

    def _graph_url(self, path: str) -> str:
        return f"{GRAPH_API_BASE}/{DEFAULT_GRAPH_VERSION}/{path.lstrip('/')}"

    async def on_initialize(self) -> None:
        await self._fetch_node()

    async def _fetch_node(self) -> dict[str, Any]:
        async with self.http() as client:
            resp = await client.get(
                self._graph_url(self.node_id()),
                params={"fields": "id,name", "access_token": self._access_token()},
            )
        if resp.status_code >= 400:
            raise PluginError(f"{self.name} Graph API error {resp.status_code}: {resp.text[:200]}")
        return resp.json()

    async def on_send_message(self, message: ChatMessage) -> bool:
        payload = {
            "recipient": {"id": message.user_id},
            "messaging_type": "RESPONSE",
            "message": {"text": message.content[:2000]},
        }
        async with self.http() as client:
            resp = await client.post(
                self._graph_url(f"{self.node_id()}/messages"),
                params={"access_token": self._access_token()},
                json=payload,
            )
        if resp.status_code >= 400:
            logger.error("%s send error: %s %s", self.name, resp.status_code, resp.text[:200])
            return False
        return True

    async def on_get_connection_status(self) -> ConnectionStatus:
        node = await self._fetch_node()
        return ConnectionStatus(
            connected=True,
            last_connected=datetime.now(timezone.utc),
            details={"id": node.get("id", self.node_id()), "name": node.get("name")},
        )

    def parse_webhook(self, payload: Mapping[str, Any]) -> ChatMessage | None:
        if payload.get("object") != self.webhook_object:
            return None
        entries = payload.get("entry") or []
        if not entries or not entries[0].get("messaging"):
            return None
        event = entries[0]["messaging"][0]
        message = event.get("message") or {}
        text = message.get("text")
        if not text:
            return None
        return self.create_incoming_message(
            agent_id=self.agent_id_from(payload),
            content=text,
            user_id=str(event["sender"]["id"]),
            metadata={
                "messageId": message.get("mid"),
                "recipientId": (event.get("recipient") or {}).get("id"),
                "timestamp": event.get("timestamp"),
            },
        )
