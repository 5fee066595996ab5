from fastapi import APIRouter

from chatbridge.api import (
    account,
    agents,
    auth,
    billing,
    chat,
    embed,
    health,
    integrations,
    plugins,
    webhooks,
)

api_router = APIRouter(prefix="/api")

api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(account.router)
api_router.include_router(agents.router)
api_router.include_router(plugins.router)
api_router.include_router(webhooks.router)
api_router.include_router(integrations.router)
api_router.include_router(chat.router)
api_router.include_router(embed.router)
api_router.include_router(billing.router)
