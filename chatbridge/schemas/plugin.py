from typing import Any

from chatbridge.schemas.common import CamelModel


class PluginConfigIn(CamelModel):
    plugin_id: str | None = None
    agent_id: int | None = None
    config: dict[str, Any] | None = None
    enabled: bool | None = None


class PluginConfigUpdate(CamelModel):
    config_id: int | None = None
    config: dict[str, Any] | None = None
    enabled: bool | None = None


class PluginConfigPatch(CamelModel):
    config: dict[str, Any] | None = None
    enabled: bool | None = None
