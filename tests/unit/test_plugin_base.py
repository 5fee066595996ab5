from __future__ import annotations

import warnings

import pytest

from chatbridge.plugins.base import BasePlugin, ChatMessage, PlatformConfig
from chatbridge.plugins.html_css import HtmlCssPlugin
from chatbridge.plugins.whatsapp import WhatsAppPlugin
from chatbridge.schemas.common import CamelModel

WHATSAPP_CONFIG = {
    "phoneNumberId": "123456789012345",
    "accessToken": "EAAG-test-access-token",
    "apiVersion": "v17.0",
    "verifyToken": "verify-me",
    "businessName": "Acme",
}


def test_missing_required_fields_are_reported_by_label():
    result = WhatsAppPlugin().validate_config({})
    assert result.valid is False
    assert result.errors == {
        "phoneNumberId": "Phone Number ID is required",
        "accessToken": "Access Token is required",
        "apiVersion": "API Version is required",
        "verifyToken": "Webhook Verify Token is required",
        "businessName": "Business Name is required",
    }


def test_empty_string_counts_as_missing():
    result = WhatsAppPlugin().validate_config({**WHATSAPP_CONFIG, "businessName": ""})
    assert result.errors == {"businessName": "Business Name is required"}


def test_field_default_does_not_satisfy_required():
    config = dict(WHATSAPP_CONFIG)
    config.pop("apiVersion")
    result = WhatsAppPlugin().validate_config(config)
    assert result.errors == {"apiVersion": "API Version is required"}


def test_platform_rules_run_after_generic_checks():
    result = WhatsAppPlugin().validate_config({**WHATSAPP_CONFIG, "phoneNumberId": "12ab", "accessToken": "short"})
    assert result.errors["phoneNumberId"] == "Phone Number ID should contain only digits"
    assert result.errors["accessToken"] == "Access Token appears to be invalid"


def test_type_errors_take_precedence_over_platform_rules():
    result = WhatsAppPlugin().validate_config({**WHATSAPP_CONFIG, "phoneNumberId": 123456})
    assert result.errors == {"phoneNumberId": "Phone Number ID must be a string"}


def test_select_and_boolean_fields_are_type_checked():
    config = {
        "allowedDomains": "example.com",
        "chatbotTitle": "Hi",
        "primaryColor": "#0084ff",
        "position": "middle",
        "autoOpen": "yes",
    }
    result = HtmlCssPlugin().validate_config(config)
    assert result.errors["position"] == "Widget Position must be one of: bottom-right, bottom-left, top-right, top-left"
    assert result.errors["autoOpen"] == "Auto Open must be a boolean"


def test_valid_config_passes():
    assert WhatsAppPlugin().validate_config(WHATSAPP_CONFIG).valid is True


@pytest.mark.asyncio
async def test_initialize_with_invalid_config_disables_plugin():
    plugin = WhatsAppPlugin()
    assert await plugin.initialize({"phoneNumberId": "1"}) is False
    assert plugin.enabled is False
    status = await plugin.get_connection_status()
    assert status.connected is False
    assert status.error == "Plugin is not enabled"


@pytest.mark.asyncio
async def test_initialize_stores_typed_config(ok_http, recorded_requests):
    plugin = WhatsAppPlugin(http_client=ok_http)
    assert await plugin.initialize(WHATSAPP_CONFIG) is True
    assert plugin.enabled is True
    assert plugin.config.phone_number_id == "123456789012345"
    assert plugin.config.to_wire()["businessName"] == "Acme"
    assert recorded_requests[0].url.path == "/v17.0/123456789012345"


@pytest.mark.asyncio
async def test_initialize_failure_from_platform_disables_plugin(make_http):
    import httpx

    client = make_http(lambda request: httpx.Response(401, json={"error": "bad token"}))
    plugin = WhatsAppPlugin(http_client=client)
    assert await plugin.initialize(WHATSAPP_CONFIG) is False
    assert plugin.enabled is False


@pytest.mark.asyncio
async def test_send_message_on_disabled_plugin_returns_false():
    plugin = WhatsAppPlugin()
    message = plugin.create_outgoing_message(1, "hello", "15550001111")
    assert await plugin.send_message(message) is False


def test_message_helpers_fill_direction_and_platform():
    plugin = WhatsAppPlugin()
    outgoing = plugin.create_outgoing_message(7, "hi", "u1", metadata={"a": 1})
    incoming = plugin.create_incoming_message(7, "yo", "u2", user_name="Bob")
    assert (outgoing.direction, outgoing.platform, outgoing.metadata) == ("outgoing", "whatsapp", {"a": 1})
    assert (incoming.direction, incoming.user_name) == ("incoming", "Bob")
    assert incoming.to_dict()["agentId"] == 7
    assert incoming.id != outgoing.id


def test_agent_id_from_defaults_to_one():
    assert BasePlugin.agent_id_from({}) == 1
    assert BasePlugin.agent_id_from({"agentId": "42"}) == 42
    assert BasePlugin.agent_id_from({"agent_id": "", "agentId": 3}) == 3


def test_new_instance_is_unconfigured_and_separate(ok_http):
    plugin = WhatsAppPlugin(http_client=ok_http)
    plugin.enabled = True
    fresh = plugin.new_instance()
    assert isinstance(fresh, WhatsAppPlugin)
    assert fresh is not plugin
    assert fresh.enabled is False and fresh.config is None


def test_describe_lists_config_schema():
    described = WhatsAppPlugin().describe()
    assert described["id"] == "whatsapp"
    keys = [field["key"] for field in described["configSchema"]]
    assert keys == ["phoneNumberId", "accessToken", "apiVersion", "verifyToken", "businessName"]


class _ExplodingPlugin(WhatsAppPlugin):
    def parse_webhook(self, payload) -> ChatMessage | None:
        return payload["missing"]


@pytest.mark.asyncio
async def test_malformed_payload_is_not_claimed():
    assert await _ExplodingPlugin().handle_webhook({}) is None


def test_platform_config_accepts_camel_and_snake_keys_without_warnings():
    with warnings.catch_warnings():
        warnings.simplefilter("error")

        class SampleConfig(PlatformConfig):
            bot_token: str
            chat_title: str = "Support"

        class SampleBody(CamelModel):
            agent_id: int

    cfg = SampleConfig.model_validate({"botToken": "abc", "unknownKey": 1})
    assert cfg.to_wire() == {"botToken": "abc", "chatTitle": "Support"}
    assert SampleConfig(bot_token="xyz").bot_token == "xyz"
    assert SampleBody.model_validate({"agentId": 3}).model_dump(by_alias=True) == {"agentId": 3}
