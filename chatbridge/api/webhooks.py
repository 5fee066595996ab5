"""
Public platform webhooks (no user auth; platforms authenticate via verify tokens).

  POST /api/webhooks/{platform}   inbound event, first plugin to claim it wins
  GET  /api/webhooks/{platform}   subscription handshake (hub.challenge echo)
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from chatbridge.api.deps import get_dispatcher
from chatbridge.persistence.database import get_db
from chatbridge.services.plugin_config_service import PluginConfigService
from chatbridge.services.webhook_dispatcher import WebhookDispatcher

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/{platform}")
async def receive_webhook(
    platform: str,
    request: Request,
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
) -> dict:
    try:
        payload = await request.json()
    except ValueError:
        payload = {}
    if not isinstance(payload, dict):
        payload = {}

    result = await dispatcher.dispatch(platform, payload)
    if result.handled:
        return {"success": True, "message": "Webhook processed successfully", "platform": platform}
    return {"success": True, "message": "Webhook received but no handler found", "platform": platform}


@router.get("/{platform}")
async def verify_webhook(
    platform: str,
    request: Request,
    db: Session = Depends(get_db),
    dispatcher: WebhookDispatcher = Depends(get_dispatcher),
):
    params = dict(request.query_params)
    result = await dispatcher.verify(
        platform,
        params,
        lambda plugin_id: PluginConfigService.get_enabled_configs_for_plugin(db, plugin_id),
    )
    if result is None:
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "message": "No verification handler found for this platform",
                "platform": platform,
            },
        )
    if isinstance(result, str):
        return PlainTextResponse(result)
    return JSONResponse(result)
