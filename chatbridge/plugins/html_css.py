from __future__ import annotations

import json
import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from pydantic import Field

from chatbridge.plugins.base import ChatMessage, ConnectionStatus, PlatformConfig, PluginConfigField, PluginError
from chatbridge.plugins.embed import EmbedPlugin

_DOMAIN = re.compile(r"^[a-zA-Z0-9][a-zA-Z0-9-]{0,61}[a-zA-Z0-9](?:\.[a-zA-Z]{2,})+$")
_HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")

POSITIONS = ("bottom-right", "bottom-left", "top-right", "top-left")


def split_domains(value: str) -> list[str]:
    return [d.strip() for d in value.split(",") if d.strip()]


class HtmlCssConfig(PlatformConfig):
    allowed_domains: str
    chatbot_title: str = "Chat with us"
    primary_color: str = "#0084ff"
    secondary_color: str = "#ffffff"
    position: str = "bottom-right"
    custom_css: str | None = Field(default=None, alias="customCSS")
    auto_open: bool = False
    show_on_mobile: bool = True


class HtmlCssPlugin(EmbedPlugin):
    """Generic JavaScript widget for any website."""

    id = "html-css"
    name = "HTML & CSS Embed"
    platform = "html-css"
    version = "1.0.0"
    config_model = HtmlCssConfig
    config_schema = [
        PluginConfigField(
            key="allowedDomains",
            label="Allowed Domains",
            type="string",
            required=True,
            placeholder="example.com, shop.example.com",
            description="Comma-separated list of domains allowed to load the widget",
        ),
        PluginConfigField(key="chatbotTitle", label="Chatbot Title", type="string", required=True, default="Chat with us"),
        PluginConfigField(key="primaryColor", label="Primary Color", type="string", required=True, default="#0084ff"),
        PluginConfigField(key="secondaryColor", label="Secondary Color", type="string", default="#ffffff"),
        PluginConfigField(
            key="position",
            label="Widget Position",
            type="select",
            default="bottom-right",
            options=[{"label": p.replace("-", " ").title(), "value": p} for p in POSITIONS],
        ),
        PluginConfigField(key="customCSS", label="Custom CSS", type="string"),
        PluginConfigField(key="autoOpen", label="Auto Open", type="boolean", default=False),
        PluginConfigField(key="showOnMobile", label="Show on Mobile", type="boolean", default=True),
    ]

    def on_validate_config(self, config: Mapping[str, Any]) -> dict[str, str]:
        errors: dict[str, str] = {}
        domains = config.get("allowedDomains")
        if isinstance(domains, str) and domains:
            invalid = [d for d in split_domains(domains) if not _DOMAIN.match(d)]
            if invalid:
                errors["allowedDomains"] = f"Invalid domain(s): {', '.join(invalid)}"
        for key, label in (("primaryColor", "Primary Color"), ("secondaryColor", "Secondary Color")):
            color = config.get(key)
            if isinstance(color, str) and color and not _HEX_COLOR.match(color):
                errors[key] = f"{label} must be a valid hex color (e.g., #0084ff)"
        return errors

    async def on_initialize(self) -> None:
        if not split_domains(self.config.allowed_domains):  # type: ignore[union-attr]
            raise PluginError("At least one allowed domain is required")

    def parse_webhook(self, payload: Mapping[str, Any]) -> ChatMessage | None:
        user_id = payload.get("userId")
        message = payload.get("message")
        if not user_id or not message:
            return None
        return self.create_incoming_message(
            agent_id=self.agent_id_from(payload, "agentId", "agent_id"),
            content=str(message),
            user_id=str(user_id),
            user_name=payload.get("userName") or "Website Visitor",
            metadata=dict(payload.get("metadata") or {}),
        )

    async def on_get_connection_status(self) -> ConnectionStatus:
        return ConnectionStatus(
            connected=True,
            last_connected=datetime.now(timezone.utc),
            details={"allowedDomains": split_domains(self.config.allowed_domains)},  # type: ignore[union-attr]
        )

    def generate_embed_code(self, agent_id: int, user_id: str, base_url: str) -> str:
        cfg: HtmlCssConfig = self.config  # type: ignore[assignment]
        options = json.dumps(
            {
                "agentId": agent_id,
                "userId": user_id,
                "primaryColor": cfg.primary_color,
                "secondaryColor": cfg.secondary_color,
                "position": cfg.position,
                "title": cfg.chatbot_title,
                "autoOpen": cfg.auto_open,
                "showOnMobile": cfg.show_on_mobile,
            },
            indent=2,
        )
        return (
            "<!-- Chatbot Widget Embed Code -->\n"
            "<script>\n"
            "  (function(w, d, s, o, f, js, fjs) {\n"
            "    w['ChatbotWidget'] = o;\n"
            "    w[o] = w[o] || function() { (w[o].q = w[o].q || []).push(arguments) };\n"
            "    js = d.createElement(s), fjs = d.getElementsByTagName(s)[0];\n"
            "    js.id = o; js.src = f; js.async = 1;\n"
            "    fjs.parentNode.insertBefore(js, fjs);\n"
            f"  }}(window, document, 'script', 'chatbot', '{base_url}/api/embed/chatbot.js'));\n"
            f"  chatbot('init', {options});\n"
            "</script>\n"
            "<!-- End Chatbot Widget Embed Code -->"
        )
