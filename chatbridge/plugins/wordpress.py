from __future__ import annotations

import json
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from chatbridge.plugins.base import ChatMessage, ConnectionStatus, PlatformConfig, PluginConfigField, PluginError
from chatbridge.plugins.embed import EmbedPlugin

_SITE_URL = re.compile(r"^https?://.+")

EMBED_LOCATIONS = {"all": "All Pages", "front": "Front Page Only", "specific": "Specific Pages"}


class WordPressConfig(PlatformConfig):
    site_url: str
    api_key: str
    api_secret: str
    embed_location: str = "all"
    specific_pages: str | None = None


class WordPressPlugin(EmbedPlugin):
    id = "wordpress"
    name = "WordPress"
    platform = "wordpress"
    version = "1.0.0"
    config_model = WordPressConfig
    config_schema = [
        PluginConfigField(
            key="siteUrl",
            label="WordPress Site URL",
            type="string",
            required=True,
            placeholder="https://example.com",
        ),
        PluginConfigField(key="apiKey", label="API Key", type="password", required=True),
        PluginConfigField(key="apiSecret", label="API Secret", type="password", required=True),
        PluginConfigField(
            key="embedLocation",
            label="Embed Location",
            type="select",
            required=True,
            default="all",
            options=[{"label": label, "value": value} for value, label in EMBED_LOCATIONS.items()],
        ),
        PluginConfigField(
            key="specificPages",
            label="Specific Pages",
            type="string",
            placeholder="about, contact, pricing",
            description="Comma-separated page slugs; used when Embed Location is Specific Pages",
        ),
    ]

    def on_validate_config(self, config: Mapping[str, Any]) -> dict[str, str]:
        errors: dict[str, str] = {}
        site_url = config.get("siteUrl")
        if isinstance(site_url, str) and site_url and not _SITE_URL.match(site_url):
            errors["siteUrl"] = "Site URL must start with http:// or https://"
        if config.get("embedLocation") == "specific" and not config.get("specificPages"):
            errors["specificPages"] = "Specific Pages is required when Embed Location is Specific Pages"
        return errors

    async def _fetch_site(self) -> dict[str, Any]:
        cfg: WordPressConfig = self.config  # type: ignore[assignment]
        async with self.http() as client:
            resp = await client.get(f"{cfg.site_url.rstrip('/')}/wp-json/")
        if resp.status_code >= 400:
            raise PluginError(f"WordPress REST API error {resp.status_code} at {cfg.site_url}")
        return resp.json()

    async def on_initialize(self) -> None:
        await self._fetch_site()

    def parse_webhook(self, payload: Mapping[str, Any]) -> ChatMessage | None:
        user_id = payload.get("user_id")
        message = payload.get("message")
        if not user_id or not message:
            return None
        return self.create_incoming_message(
            agent_id=self.agent_id_from(payload),
            content=str(message),
            user_id=str(user_id),
            user_name=payload.get("user_name"),
            metadata=dict(payload.get("metadata") or {}),
        )

    async def on_get_connection_status(self) -> ConnectionStatus:
        site = await self._fetch_site()
        cfg: WordPressConfig = self.config  # type: ignore[assignment]
        return ConnectionStatus(
            connected=True,
            last_connected=datetime.now(timezone.utc),
            details={"siteUrl": cfg.site_url, "siteName": site.get("name"), "embedLocation": cfg.embed_location},
        )

    def generate_embed_code(self, agent_id: int, user_id: str, base_url: str) -> str:
        cfg: WordPressConfig = self.config  # type: ignore[assignment]
        pages = [p.strip() for p in (cfg.specific_pages or "").split(",") if p.strip()]
        options = json.dumps(
            {
                "agentId": agent_id,
                "userId": user_id,
                "apiKey": cfg.api_key,
                "embedLocation": cfg.embed_location,
                "pages": pages,
            },
            indent=2,
        )
        return (
            "<!-- AI Chatbot Widget -->\n"
            f"<script src=\"{base_url}/api/embed/chatbot.js\" async></script>\n"
            "<script>\n"
            "  window.ChatbotWidgetQueue = window.ChatbotWidgetQueue || [];\n"
            f"  window.ChatbotWidgetQueue.push(['init', {options}]);\n"
            "</script>\n"
            "<!-- End AI Chatbot Widget -->"
        )

    @property
    def embed_instructions(self) -> str:
        return (
            "Add this code to your WordPress site's footer using a plugin like "
            "'Insert Headers and Footers' or by editing your theme's footer.php file."
        )
