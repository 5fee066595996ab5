from fastapi import APIRouter, Depends

from chatbridge.auth.deps import get_current_user_id
from chatbridge.schemas.chat import ChatRequest, ChatResponse
from chatbridge.services.llm_service import get_llm_service

router = APIRouter(tags=["chat"])


@router.post("/chat", response_model=ChatResponse)
def chat(payload: ChatRequest, _: str = Depends(get_current_user_id)) -> ChatResponse:
    result = get_llm_service().generate_chat_completion(
        [turn.model_dump() for turn in payload.messages],
        system_prompt=payload.system_prompt,
        temperature=payload.temperature,
    )
    return ChatResponse(response=result["response"], model=result["model"])
