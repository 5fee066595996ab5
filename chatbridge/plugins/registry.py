from __future__ import annotations

import logging
from datetime import datetime, timezone

import httpx

from chatbridge.plugins.base import BasePlugin
from chatbridge.plugins.discord import DiscordPlugin
from chatbridge.plugins.html_css import HtmlCssPlugin
from chatbridge.plugins.instagram import InstagramPlugin
from chatbridge.plugins.messenger import MessengerPlugin
from chatbridge.plugins.telegram import TelegramPlugin
from chatbridge.plugins.whatsapp import WhatsAppPlugin
from chatbridge.plugins.wordpress import WordPressPlugin

logger = logging.getLogger(__name__)

# Registration order is dispatch order: for a platform claimed by several
# plugins, the webhook dispatcher offers the payload to them in this order.
PLUGIN_CLASSES: tuple[type[BasePlugin], ...] = (
    WordPressPlugin,
    WhatsAppPlugin,
    HtmlCssPlugin,
    MessengerPlugin,
    InstagramPlugin,
    TelegramPlugin,
    DiscordPlugin,
)


class PluginRegistry:
    """Plugin id -> instance, kept in registration order."""

    def __init__(self) -> None:
        self._plugins: dict[str, BasePlugin] = {}
        self._registered_at: dict[str, datetime] = {}

    def register_plugin(self, plugin: BasePlugin) -> None:
        if plugin.id in self._plugins:
            logger.warning("Plugin %s is already registered, replacing it", plugin.id)
            # Re-registration moves the plugin to the end of dispatch order
            del self._plugins[plugin.id]
        self._plugins[plugin.id] = plugin
        self._registered_at[plugin.id] = datetime.now(timezone.utc)
        logger.info("Registered plugin %s (%s)", plugin.id, plugin.platform, extra={"plugin_id": plugin.id})

    def unregister_plugin(self, plugin_id: str) -> bool:
        self._registered_at.pop(plugin_id, None)
        return self._plugins.pop(plugin_id, None) is not None

    def get_plugin(self, plugin_id: str) -> BasePlugin | None:
        return self._plugins.get(plugin_id)

    def get_all_plugins(self) -> list[BasePlugin]:
        return list(self._plugins.values())

    def get_plugins_by_platform(self, platform: str) -> list[BasePlugin]:
        return [p for p in self._plugins.values() if p.platform == platform]

    def registered_at(self, plugin_id: str) -> datetime | None:
        return self._registered_at.get(plugin_id)

    def __len__(self) -> int:
        return len(self._plugins)


def register_all_plugins(registry: PluginRegistry, http_client: httpx.AsyncClient | None = None) -> PluginRegistry:
    """Register every bundled plugin, in PLUGIN_CLASSES order."""
    for plugin_cls in PLUGIN_CLASSES:
        registry.register_plugin(plugin_cls(http_client=http_client))
    return registry
