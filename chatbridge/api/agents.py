from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from chatbridge.auth.deps import get_current_user_id
from chatbridge.errors import ValidationError
from chatbridge.persistence.database import get_db
from chatbridge.schemas.agent import AgentIn
from chatbridge.services.agent_service import AgentService, agent_to_dict

router = APIRouter(prefix="/agents", tags=["agents"])


@router.get("")
def list_agents(db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)) -> dict:
    return {"agents": [agent_to_dict(a) for a in AgentService.list_agents(db, user_id)]}


@router.post("", status_code=201)
def create_agent(payload: AgentIn, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)) -> dict:
    if not payload.name or not payload.name.strip():
        raise ValidationError("Missing required fields: name is required")
    agent = AgentService.create_agent(db, user_id, payload.model_dump(by_alias=True, exclude_none=True))
    return {"agent": agent_to_dict(agent)}


@router.get("/{agent_id}")
def get_agent(agent_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)) -> dict:
    return agent_to_dict(AgentService.get_owned_agent(db, agent_id, user_id))


@router.put("/{agent_id}")
def update_agent(
    agent_id: int,
    payload: AgentIn,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
) -> dict:
    agent = AgentService.get_owned_agent(db, agent_id, user_id)
    agent = AgentService.update_agent(db, agent, payload.model_dump(by_alias=True, exclude_unset=True))
    return {"agent": agent_to_dict(agent)}


@router.delete("/{agent_id}")
def delete_agent(agent_id: int, db: Session = Depends(get_db), user_id: str = Depends(get_current_user_id)) -> dict:
    agent = AgentService.get_owned_agent(db, agent_id, user_id)
    AgentService.delete_agent(db, agent)
    return {"success": True}
