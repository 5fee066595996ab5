from functools import lru_cache

from fastapi import Request

from chatbridge.config.settings import get_settings
from chatbridge.plugins.registry import PluginRegistry
from chatbridge.services.auth0_client import Auth0Client
from chatbridge.services.billing_service import BillingService
from chatbridge.services.webhook_dispatcher import WebhookDispatcher


def get_registry(request: Request) -> PluginRegistry:
    return request.app.state.plugin_registry


def get_dispatcher(request: Request) -> WebhookDispatcher:
    return WebhookDispatcher(request.app.state.plugin_registry)


@lru_cache(maxsize=1)
def get_billing_service() -> BillingService:
    return BillingService(get_settings())


@lru_cache(maxsize=1)
def get_auth0_client() -> Auth0Client:
    return Auth0Client(get_settings())
