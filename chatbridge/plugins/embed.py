from __future__ import annotations

import logging
from abc import abstractmethod

from chatbridge.plugins.base import BasePlugin, ChatMessage

logger = logging.getLogger(__name__)


class EmbedPlugin(BasePlugin):
    """Website widgets: no push channel, replies ride back on the embed chat response."""

    async def on_send_message(self, message: ChatMessage) -> bool:
        logger.info(
            "Embed reply for agent %s user %s returned inline (%d chars)",
            message.agent_id,
            message.user_id,
            len(message.content),
            extra={"plugin_id": self.id},
        )
        return True

    @abstractmethod
    def generate_embed_code(self, agent_id: int, user_id: str, base_url: str) -> str: ...

    @property
    def embed_instructions(self) -> str:
        return "Paste this snippet before the closing </body> tag of every page that should show the chatbot."
