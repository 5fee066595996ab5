"""
PluginConfigService: per-user, per-agent plugin configuration rows.

Config blobs are stored as JSON text. A blob that no longer decodes to an
object raises PersistenceError instead of being read back as ``{}``.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from chatbridge.errors import PersistenceError
from chatbridge.persistence.models import PluginConfig, now_utc

logger = logging.getLogger(__name__)


def encode_config(config: dict[str, Any]) -> str:
    return json.dumps(config, sort_keys=True)


def decode_config(row: PluginConfig) -> dict[str, Any]:
    try:
        value = json.loads(row.config)
    except (TypeError, json.JSONDecodeError) as exc:
        logger.error("Plugin config %s holds corrupt JSON", row.id, extra={"plugin_id": row.plugin_id})
        raise PersistenceError(f"Stored configuration {row.id} is corrupt") from exc
    if not isinstance(value, dict):
        raise PersistenceError(f"Stored configuration {row.id} is not an object")
    return value


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise PersistenceError(f"Plugin configuration {action} conflicts with an existing row") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Plugin configuration %s failed: %s", action, exc)
        raise PersistenceError(f"Failed to {action} plugin configuration") from exc


class PluginConfigService:
    @staticmethod
    def get_plugin_configs(db: Session, user_id: str, agent_id: int | None = None) -> list[PluginConfig]:
        query = db.query(PluginConfig).filter(PluginConfig.user_id == user_id)
        if agent_id is not None:
            query = query.filter(PluginConfig.agent_id == agent_id)
        return query.order_by(PluginConfig.id).all()

    @staticmethod
    def get_plugin_configs_for_agent(db: Session, agent_id: int) -> list[PluginConfig]:
        return db.query(PluginConfig).filter(PluginConfig.agent_id == agent_id).order_by(PluginConfig.id).all()

    @staticmethod
    def get_enabled_configs_for_plugin(db: Session, plugin_id: str) -> list[dict[str, Any]]:
        rows = (
            db.query(PluginConfig)
            .filter(PluginConfig.plugin_id == plugin_id, PluginConfig.enabled.is_(True))
            .all()
        )
        return [decode_config(row) for row in rows]

    @staticmethod
    def get_plugin_config_by_id(db: Session, config_id: int) -> PluginConfig | None:
        return db.get(PluginConfig, config_id)

    @staticmethod
    def get_plugin_config_by_plugin_id(
        db: Session, plugin_id: str, user_id: str, agent_id: int
    ) -> PluginConfig | None:
        return (
            db.query(PluginConfig)
            .filter(
                PluginConfig.plugin_id == plugin_id,
                PluginConfig.user_id == user_id,
                PluginConfig.agent_id == agent_id,
            )
            .one_or_none()
        )

    @staticmethod
    def create_plugin_config(
        db: Session,
        *,
        plugin_id: str,
        user_id: str,
        agent_id: int,
        platform: str,
        config: dict[str, Any],
        enabled: bool = False,
    ) -> PluginConfig:
        row = PluginConfig(
            plugin_id=plugin_id,
            user_id=user_id,
            agent_id=agent_id,
            platform=platform,
            config=encode_config(config),
            enabled=enabled,
        )
        db.add(row)
        _commit(db, "create")
        db.refresh(row)
        logger.info("Created plugin config %s", row.id, extra={"plugin_id": plugin_id, "user_id": user_id})
        return row

    @staticmethod
    def update_plugin_config(
        db: Session,
        row: PluginConfig,
        *,
        config: dict[str, Any] | None = None,
        enabled: bool | None = None,
    ) -> PluginConfig:
        if config is not None:
            row.config = encode_config(config)
        if enabled is not None:
            row.enabled = enabled
        row.updated_at = now_utc()
        _commit(db, "update")
        db.refresh(row)
        return row

    @staticmethod
    def delete_plugin_config(db: Session, row: PluginConfig) -> None:
        db.delete(row)
        _commit(db, "delete")
        logger.info("Deleted plugin config %s", row.id, extra={"plugin_id": row.plugin_id})
