"""
WebhookDispatcher: one ingress for every platform's webhooks.

Inbound payloads are offered to each plugin registered for the platform in
registration order; the first plugin that returns a message claims it.
A plugin that raises is logged and skipped. Platforms must get a 2xx back
whenever plugins exist, so "nobody claimed it" is a normal outcome, not an error.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from chatbridge.errors import NotFoundError
from chatbridge.monitoring.metrics import WEBHOOK_DISPATCH
from chatbridge.plugins.base import BasePlugin, ChatMessage
from chatbridge.plugins.registry import PluginRegistry

logger = logging.getLogger(__name__)

StoredConfigLoader = Callable[[str], Sequence[Mapping[str, Any]]]


@dataclass
class DispatchResult:
    platform: str
    plugin_id: str | None = None
    message: ChatMessage | None = None

    @property
    def handled(self) -> bool:
        return self.message is not None


class WebhookDispatcher:
    def __init__(self, registry: PluginRegistry) -> None:
        self.registry = registry

    def _plugins_for(self, platform: str) -> list[BasePlugin]:
        plugins = self.registry.get_plugins_by_platform(platform)
        if not plugins:
            raise NotFoundError(f"No plugins found for platform: {platform}")
        return plugins

    async def dispatch(self, platform: str, payload: Mapping[str, Any]) -> DispatchResult:
        plugins = self._plugins_for(platform)
        enriched = {**payload, "platform": platform}

        for plugin in plugins:
            try:
                message = await plugin.handle_webhook(enriched)
            except Exception as exc:
                logger.error(
                    "Plugin %s failed on %s webhook: %s",
                    plugin.id,
                    platform,
                    exc,
                    exc_info=True,
                    extra={"platform": platform, "plugin_id": plugin.id},
                )
                continue
            if message is not None:
                logger.info(
                    "Webhook message from %s for agent %s: %s",
                    message.user_id,
                    message.agent_id,
                    message.content[:80],
                    extra={"platform": platform, "plugin_id": plugin.id},
                )
                WEBHOOK_DISPATCH.labels(platform=platform, outcome="handled").inc()
                return DispatchResult(platform=platform, plugin_id=plugin.id, message=message)

        logger.info("No plugin claimed %s webhook", platform, extra={"platform": platform})
        WEBHOOK_DISPATCH.labels(platform=platform, outcome="unhandled").inc()
        return DispatchResult(platform=platform)

    async def verify(
        self,
        platform: str,
        params: Mapping[str, str],
        load_stored_configs: StoredConfigLoader,
    ) -> str | dict[str, Any] | None:
        for plugin in self._plugins_for(platform):
            try:
                result = await plugin.verify_webhook(params, load_stored_configs(plugin.id))
            except Exception as exc:
                logger.error(
                    "Plugin %s failed webhook verification: %s",
                    plugin.id,
                    exc,
                    extra={"platform": platform, "plugin_id": plugin.id},
                )
                continue
            if result is not None:
                WEBHOOK_DISPATCH.labels(platform=platform, outcome="verified").inc()
                return result
        return None
