from typing import Literal

from chatbridge.schemas.common import CamelModel


class AgentIn(CamelModel):
    name: str | None = None
    description: str | None = None
    status: Literal["online", "offline", "busy"] | None = None
    chatbot_name: str | None = None
    system_prompt: str | None = None
    top_color: str | None = None
    accent_color: str | None = None
    background_color: str | None = None
    is_active: bool | None = None
    avatar_url: str | None = None
    workflow_id: str | int | None = None
