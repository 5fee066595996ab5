"""
Plugin discovery and per-agent plugin configuration.

  GET    /api/plugins?agentId&platform   registry plugins merged with the caller's configs
  POST   /api/plugins                    upsert config for (pluginId, caller, agentId)
  PUT    /api/plugins                    update config by configId
  GET    /api/plugins/{id}               one config with its plugin description
  PUT    /api/plugins/{id}               update config / enabled flag
  DELETE /api/plugins/{id}
  GET    /api/plugins/{id}/embed         embed snippet for website widget plugins
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from chatbridge.api.deps import get_registry
from chatbridge.auth.deps import get_current_user_id
from chatbridge.config.settings import get_settings
from chatbridge.errors import ForbiddenError, NotFoundError, PersistenceError, ValidationError
from chatbridge.persistence.database import get_db
from chatbridge.persistence.models import PluginConfig
from chatbridge.plugins.base import BasePlugin
from chatbridge.plugins.embed import EmbedPlugin
from chatbridge.plugins.registry import PluginRegistry
from chatbridge.schemas.plugin import PluginConfigIn, PluginConfigPatch, PluginConfigUpdate
from chatbridge.services.plugin_config_service import PluginConfigService, decode_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/plugins", tags=["plugins"])


def _validate_or_raise(plugin: BasePlugin, config: dict[str, Any]) -> None:
    result = plugin.validate_config(config)
    if not result.valid:
        raise ValidationError("Invalid plugin configuration", validationErrors=result.errors)


def _parse_config_id(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        raise ValidationError("Invalid configuration ID") from None


def _owned_config(db: Session, config_id: int, user_id: str) -> PluginConfig:
    row = PluginConfigService.get_plugin_config_by_id(db, config_id)
    if row is None:
        raise NotFoundError("Plugin configuration not found")
    if row.user_id != user_id:
        raise ForbiddenError("You do not have permission to access this configuration")
    return row


def _plugin_for(registry: PluginRegistry, row: PluginConfig) -> BasePlugin:
    plugin = registry.get_plugin(row.plugin_id)
    if plugin is None:
        raise PersistenceError(f"Plugin not found: {row.plugin_id}")
    return plugin


def _config_detail(row: PluginConfig, plugin: BasePlugin) -> dict[str, Any]:
    return {
        "id": row.id,
        "pluginId": row.plugin_id,
        "agentId": row.agent_id,
        "platform": row.platform,
        "config": decode_config(row),
        "enabled": bool(row.enabled),
        "createdAt": row.created_at.isoformat() if row.created_at else None,
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
        "plugin": plugin.describe(),
    }


@router.get("")
def list_plugins(
    agent_id: int | None = Query(default=None, alias="agentId"),
    platform: str | None = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    registry: PluginRegistry = Depends(get_registry),
) -> dict:
    plugins = registry.get_plugins_by_platform(platform) if platform else registry.get_all_plugins()
    configs: dict = {}
    for row in PluginConfigService.get_plugin_configs(db, user_id, agent_id):
        configs.setdefault(row.plugin_id, row)

    items = []
    for plugin in plugins:
        row = configs.get(plugin.id)
        items.append(
            {
                **plugin.describe(),
                "configured": row is not None,
                "enabled": bool(row.enabled) if row is not None else False,
                "configId": row.id if row is not None else None,
            }
        )
    return {"plugins": items}


@router.post("")
def upsert_plugin_config(
    payload: PluginConfigIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    registry: PluginRegistry = Depends(get_registry),
) -> dict:
    if not payload.plugin_id or payload.agent_id is None or payload.config is None:
        raise ValidationError("Missing required fields: pluginId, agentId and config are required")

    plugin = registry.get_plugin(payload.plugin_id)
    if plugin is None:
        raise NotFoundError(f"Plugin not found: {payload.plugin_id}")
    _validate_or_raise(plugin, payload.config)

    existing = PluginConfigService.get_plugin_config_by_plugin_id(db, plugin.id, user_id, payload.agent_id)
    if existing is not None:
        row = PluginConfigService.update_plugin_config(
            db,
            existing,
            config=payload.config,
            enabled=payload.enabled if payload.enabled is not None else bool(existing.enabled),
        )
    else:
        row = PluginConfigService.create_plugin_config(
            db,
            plugin_id=plugin.id,
            user_id=user_id,
            agent_id=payload.agent_id,
            platform=plugin.platform,
            config=payload.config,
            enabled=bool(payload.enabled),
        )
    return {
        "success": True,
        "configId": row.id,
        "pluginId": row.plugin_id,
        "agentId": row.agent_id,
        "enabled": bool(row.enabled),
    }


@router.put("")
def update_plugin_config(
    payload: PluginConfigUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    registry: PluginRegistry = Depends(get_registry),
) -> dict:
    if payload.config_id is None:
        raise ValidationError("Missing required field: configId")

    row = _owned_config(db, payload.config_id, user_id)
    if payload.config is not None:
        _validate_or_raise(_plugin_for(registry, row), payload.config)
    row = PluginConfigService.update_plugin_config(db, row, config=payload.config, enabled=payload.enabled)
    return {
        "success": True,
        "configId": row.id,
        "pluginId": row.plugin_id,
        "agentId": row.agent_id,
        "enabled": bool(row.enabled),
    }


@router.get("/{config_id}")
def get_plugin_config(
    config_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    registry: PluginRegistry = Depends(get_registry),
) -> dict:
    row = _owned_config(db, _parse_config_id(config_id), user_id)
    return _config_detail(row, _plugin_for(registry, row))


@router.put("/{config_id}")
def replace_plugin_config(
    config_id: str,
    payload: PluginConfigPatch,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    registry: PluginRegistry = Depends(get_registry),
) -> dict:
    row = _owned_config(db, _parse_config_id(config_id), user_id)
    plugin = _plugin_for(registry, row)
    if payload.config is not None:
        _validate_or_raise(plugin, payload.config)
    row = PluginConfigService.update_plugin_config(db, row, config=payload.config, enabled=payload.enabled)
    return _config_detail(row, plugin)


@router.delete("/{config_id}")
def delete_plugin_config(
    config_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict:
    row = _owned_config(db, _parse_config_id(config_id), user_id)
    PluginConfigService.delete_plugin_config(db, row)
    return {"success": True}


@router.get("/{config_id}/embed")
def get_embed_code(
    config_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    registry: PluginRegistry = Depends(get_registry),
) -> dict:
    row = _owned_config(db, _parse_config_id(config_id), user_id)
    plugin = _plugin_for(registry, row)
    if not isinstance(plugin, EmbedPlugin):
        raise ValidationError(f"Plugin {plugin.id} has no embed code")

    widget: EmbedPlugin = plugin.new_instance()  # type: ignore[assignment]
    widget.config = widget.config_model.model_validate(decode_config(row))
    return {
        "embedCode": widget.generate_embed_code(row.agent_id, user_id, get_settings().app_public_url),
        "instructions": widget.embed_instructions,
    }
