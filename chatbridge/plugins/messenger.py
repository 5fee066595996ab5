from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from chatbridge.plugins.base import PlatformConfig, PluginConfigField
from chatbridge.plugins.meta import GraphMessagingPlugin

_DIGITS = re.compile(r"^\d+$")


class MessengerConfig(PlatformConfig):
    page_id: str
    access_token: str
    verify_token: str


class MessengerPlugin(GraphMessagingPlugin):
    """Facebook Messenger via a Page access token."""

    id = "messenger"
    name = "Facebook Messenger"
    platform = "messenger"
    version = "1.0.0"
    webhook_object = "page"
    config_model = MessengerConfig
    config_schema = [
        PluginConfigField(key="pageId", label="Page ID", type="string", required=True),
        PluginConfigField(key="accessToken", label="Page Access Token", type="password", required=True),
        PluginConfigField(key="verifyToken", label="Webhook Verify Token", type="string", required=True),
    ]

    def node_id(self) -> str:
        return self.config.page_id  # type: ignore[union-attr]

    def on_validate_config(self, config: Mapping[str, Any]) -> dict[str, str]:
        page_id = config.get("pageId")
        if page_id and not _DIGITS.match(str(page_id)):
            return {"pageId": "Page ID should contain only digits"}
        return {}
