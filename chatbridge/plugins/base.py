"""
Chatbot plugin contract and shared base behaviour.

A plugin adapts one messaging platform to a common surface:

  initialize(config)        validate + store typed config, run the platform hook
  send_message(message)     deliver an outgoing ChatMessage, True on success
  handle_webhook(payload)   normalize an inbound payload, None if it doesn't match
  validate_config(config)   required fields + field types + platform rules
  get_connection_status()   platform health, gated on the plugin being enabled
  verify_webhook(params)    optional subscription handshake (GET)

Plugin instances are long-lived and registered once per process; anything
that needs a user's stored config works on ``new_instance()`` instead.
"""
from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, ClassVar, Literal

import httpx
from jsonschema import Draft7Validator
from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

FieldType = Literal["string", "number", "boolean", "select", "password"]
Direction = Literal["incoming", "outgoing"]
MessageType = Literal["text", "image", "file", "button", "card", "custom"]

_JSON_TYPES: dict[str, str] = {
    "string": "string",
    "password": "string",
    "select": "string",
    "number": "number",
    "boolean": "boolean",
}


class PluginError(RuntimeError):
    """Platform-level failure raised from plugin hooks."""


class PlatformConfig(BaseModel):
    """Typed runtime config; field names are camelCase on the wire."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "extra": "ignore"}

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


@dataclass
class PluginConfigField:
    key: str
    label: str
    type: FieldType
    required: bool = False
    default: Any = None
    options: list[dict[str, str]] = field(default_factory=list)
    placeholder: str | None = None
    description: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        if not self.options:
            data.pop("options")
        return {k: v for k, v in data.items() if v is not None}


@dataclass
class Attachment:
    type: Literal["image", "video", "audio", "file"]
    url: str
    name: str | None = None
    size: int | None = None
    mime_type: str | None = None


@dataclass
class ChatMessage:
    agent_id: int
    platform: str
    direction: Direction
    content: str
    user_id: str
    message_type: MessageType = "text"
    metadata: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    user_name: str | None = None
    attachments: list[Attachment] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "agentId": self.agent_id,
            "platform": self.platform,
            "direction": self.direction,
            "messageType": self.message_type,
            "content": self.content,
            "metadata": self.metadata,
            "timestamp": self.timestamp.isoformat(),
            "userId": self.user_id,
            "userName": self.user_name,
            "attachments": [asdict(a) for a in self.attachments],
        }


@dataclass
class ValidationResult:
    valid: bool
    errors: dict[str, str] = field(default_factory=dict)


@dataclass
class ConnectionStatus:
    connected: bool
    last_connected: datetime | None = None
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "connected": self.connected,
            "lastConnected": self.last_connected.isoformat() if self.last_connected else None,
            "error": self.error,
            "details": self.details,
        }


class ChatbotPlugin(ABC):
    """Contract every platform integration satisfies."""

    id: ClassVar[str]
    name: ClassVar[str]
    platform: ClassVar[str]
    version: ClassVar[str] = "1.0.0"
    config_schema: ClassVar[list[PluginConfigField]] = []

    enabled: bool
    config: PlatformConfig | None

    @abstractmethod
    async def initialize(self, config: Mapping[str, Any]) -> bool: ...

    @abstractmethod
    async def send_message(self, message: ChatMessage) -> bool: ...

    @abstractmethod
    async def handle_webhook(self, payload: Mapping[str, Any]) -> ChatMessage | None: ...

    @abstractmethod
    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult: ...

    @abstractmethod
    async def get_connection_status(self) -> ConnectionStatus: ...

    async def verify_webhook(
        self, params: Mapping[str, str], stored_configs: Sequence[Mapping[str, Any]] = ()
    ) -> str | dict[str, Any] | None:
        """Answer a subscription handshake; None means this plugin doesn't verify."""
        return None

    def describe(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "platform": self.platform,
            "version": self.version,
            "configSchema": [f.to_dict() for f in self.config_schema],
        }


class BasePlugin(ChatbotPlugin):
    config_model: ClassVar[type[PlatformConfig]] = PlatformConfig
    http_timeout: ClassVar[float] = 15.0

    def __init__(self, http_client: httpx.AsyncClient | None = None) -> None:
        self.enabled = False
        self.config = None
        self._http_client = http_client

    def new_instance(self) -> BasePlugin:
        """Fresh, unconfigured plugin of the same kind sharing the HTTP client."""
        return type(self)(http_client=self._http_client)

    @asynccontextmanager
    async def http(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self.http_timeout) as client:
            yield client

    # ── Lifecycle ──────────────────────────────────────────────────────────────

    async def initialize(self, config: Mapping[str, Any]) -> bool:
        result = self.validate_config(config)
        if not result.valid:
            logger.warning(
                "Invalid configuration for plugin %s: %s",
                self.id,
                result.errors,
                extra={"plugin_id": self.id},
            )
            self.enabled = False
            return False

        try:
            self.config = self.config_model.model_validate(dict(config))
        except ModelValidationError as exc:
            logger.warning("Config for plugin %s failed to parse: %s", self.id, exc, extra={"plugin_id": self.id})
            self.enabled = False
            return False

        self.enabled = True
        try:
            await self.on_initialize()
        except Exception as exc:
            logger.error("Failed to initialize plugin %s: %s", self.id, exc, extra={"plugin_id": self.id})
            self.enabled = False
            return False
        return True

    def validate_config(self, config: Mapping[str, Any]) -> ValidationResult:
        errors: dict[str, str] = {}
        present: dict[str, Any] = {}
        for spec in self.config_schema:
            value = config.get(spec.key)
            if value is None or value == "":
                if spec.required:
                    errors[spec.key] = f"{spec.label} is required"
                continue
            present[spec.key] = value

        errors.update(self._type_errors(present))
        for key, message in self.on_validate_config(config).items():
            errors.setdefault(key, message)
        return ValidationResult(valid=not errors, errors=errors)

    def _type_errors(self, values: Mapping[str, Any]) -> dict[str, str]:
        properties: dict[str, dict[str, Any]] = {}
        labels: dict[str, str] = {}
        for spec in self.config_schema:
            prop: dict[str, Any] = {"type": _JSON_TYPES[spec.type]}
            if spec.type == "select" and spec.options:
                prop["enum"] = [option["value"] for option in spec.options]
            properties[spec.key] = prop
            labels[spec.key] = spec.label

        errors: dict[str, str] = {}
        validator = Draft7Validator({"type": "object", "properties": properties})
        for err in validator.iter_errors(dict(values)):
            if not err.path:
                continue
            key = str(err.path[0])
            if err.validator == "enum":
                allowed = ", ".join(str(v) for v in err.validator_value)
                errors.setdefault(key, f"{labels[key]} must be one of: {allowed}")
            else:
                errors.setdefault(key, f"{labels[key]} must be a {err.validator_value}")
        return errors

    async def get_connection_status(self) -> ConnectionStatus:
        if not self.enabled:
            return ConnectionStatus(connected=False, error="Plugin is not enabled")
        try:
            return await self.on_get_connection_status()
        except Exception as exc:
            logger.warning("Connection check failed for plugin %s: %s", self.id, exc, extra={"plugin_id": self.id})
            return ConnectionStatus(connected=False, error=str(exc))

    # ── Message I/O ────────────────────────────────────────────────────────────

    async def send_message(self, message: ChatMessage) -> bool:
        if not self.enabled:
            logger.warning("Plugin %s is not enabled, dropping outgoing message", self.id)
            return False
        try:
            return await self.on_send_message(message)
        except Exception as exc:
            logger.error("Plugin %s failed to send message: %s", self.id, exc, extra={"plugin_id": self.id})
            return False

    async def handle_webhook(self, payload: Mapping[str, Any]) -> ChatMessage | None:
        try:
            return self.parse_webhook(payload)
        except (LookupError, TypeError, ValueError, AttributeError) as exc:
            logger.info("Plugin %s ignored malformed webhook payload: %s", self.id, exc)
            return None

    def create_outgoing_message(
        self,
        agent_id: int,
        content: str,
        user_id: str,
        message_type: MessageType = "text",
        metadata: dict[str, Any] | None = None,
    ) -> ChatMessage:
        return ChatMessage(
            agent_id=agent_id,
            platform=self.platform,
            direction="outgoing",
            message_type=message_type,
            content=content,
            user_id=user_id,
            metadata=metadata or {},
        )

    def create_incoming_message(
        self,
        agent_id: int,
        content: str,
        user_id: str,
        user_name: str | None = None,
        message_type: MessageType = "text",
        metadata: dict[str, Any] | None = None,
    ) -> ChatMessage:
        return ChatMessage(
            agent_id=agent_id,
            platform=self.platform,
            direction="incoming",
            message_type=message_type,
            content=content,
            user_id=user_id,
            user_name=user_name,
            metadata=metadata or {},
        )

    @staticmethod
    def agent_id_from(payload: Mapping[str, Any], *keys: str) -> int:
        for key in keys or ("agent_id", "agentId"):
            value = payload.get(key)
            if value not in (None, ""):
                return int(value)
        return 1

    # ── Platform hooks ─────────────────────────────────────────────────────────

    def on_validate_config(self, config: Mapping[str, Any]) -> dict[str, str]:
        return {}

    async def on_initialize(self) -> None:
        """Raise PluginError when the platform rejects the configuration."""

    @abstractmethod
    async def on_send_message(self, message: ChatMessage) -> bool: ...

    @abstractmethod
    def parse_webhook(self, payload: Mapping[str, Any]) -> ChatMessage | None: ...

    @abstractmethod
    async def on_get_connection_status(self) -> ConnectionStatus: ...
