"""
Send a real test message through one of the caller's configured integrations.

Rate limited separately (see ``RateLimitMiddleware``) since every call
reaches a third-party messaging API.
"""
import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chatbridge.api.deps import get_registry
from chatbridge.auth.deps import get_current_user_id
from chatbridge.errors import NotFoundError, PersistenceError, ValidationError
from chatbridge.persistence.database import get_db
from chatbridge.plugins.registry import PluginRegistry
from chatbridge.schemas.integration import IntegrationTestIn
from chatbridge.services.plugin_config_service import PluginConfigService, decode_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/integrations", tags=["integrations"])

# Platforms that need an explicit recipient for outbound messages
DESTINATION_REQUIRED = {"whatsapp", "telegram", "discord"}


@router.post("/test")
async def test_integration(
    payload: IntegrationTestIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
    registry: PluginRegistry = Depends(get_registry),
) -> dict:
    if not payload.integration_id or not payload.message:
        raise ValidationError("Missing required fields: integrationId and message are required")

    row = next(
        (r for r in PluginConfigService.get_plugin_configs(db, user_id) if r.plugin_id == payload.integration_id),
        None,
    )
    if row is None:
        raise NotFoundError("Integration not configured")
    if not row.enabled:
        raise ValidationError("Integration is not enabled")
    if row.plugin_id in DESTINATION_REQUIRED and not payload.destination:
        raise ValidationError(f"Destination is required for {row.plugin_id}")

    plugin = registry.get_plugin(row.plugin_id)
    if plugin is None:
        raise PersistenceError(f"Plugin not found: {row.plugin_id}")

    instance = plugin.new_instance()
    if not await instance.initialize(decode_config(row)):
        raise ValidationError("Failed to initialize integration")

    message = instance.create_outgoing_message(
        row.agent_id,
        payload.message,
        payload.destination or user_id,
        metadata={"test": True},
    )
    sent = await instance.send_message(message)
    logger.info(
        "Integration test %s", "sent" if sent else "failed",
        extra={"user_id": user_id, "plugin_id": row.plugin_id},
    )
    return {
        "success": sent,
        "result": {"messageId": message.id, "platform": instance.platform, "destination": message.user_id},
    }
