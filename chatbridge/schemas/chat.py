from typing import Literal

from pydantic import BaseModel, Field

from chatbridge.schemas.common import CamelModel


class ChatTurn(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class ChatRequest(CamelModel):
    messages: list[ChatTurn] = Field(min_length=1)
    system_prompt: str | None = None
    temperature: float = Field(default=0.7, ge=0, le=2)


class ChatResponse(BaseModel):
    response: str
    model: str


class EmbedChatRequest(CamelModel):
    agent_id: int | None = None
    user_id: str | None = None
    message: str | None = None


class EmbedChatResponse(CamelModel):
    response: str
    model: str
    agent_name: str
