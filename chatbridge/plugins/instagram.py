from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from chatbridge.plugins.base import PlatformConfig, PluginConfigField
from chatbridge.plugins.meta import GraphMessagingPlugin

_DIGITS = re.compile(r"^\d+$")


class InstagramConfig(PlatformConfig):
    account_id: str
    access_token: str
    verify_token: str


class InstagramPlugin(GraphMessagingPlugin):
    """Instagram Direct messages for a professional account linked to a Page."""

    id = "instagram"
    name = "Instagram Direct"
    platform = "instagram"
    version = "1.0.0"
    webhook_object = "instagram"
    config_model = InstagramConfig
    config_schema = [
        PluginConfigField(
            key="accountId",
            label="Instagram Account ID",
            type="string",
            required=True,
            description="Instagram professional account ID (not the username)",
        ),
        PluginConfigField(key="accessToken", label="Access Token", type="password", required=True),
        PluginConfigField(key="verifyToken", label="Webhook Verify Token", type="string", required=True),
    ]

    def node_id(self) -> str:
        return self.config.account_id  # type: ignore[union-attr]

    def on_validate_config(self, config: Mapping[str, Any]) -> dict[str, str]:
        account_id = config.get("accountId")
        if account_id and not _DIGITS.match(str(account_id)):
            return {"accountId": "Instagram Account ID should contain only digits"}
        return {}
