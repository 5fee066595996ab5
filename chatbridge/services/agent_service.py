from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from chatbridge.errors import ForbiddenError, NotFoundError, PersistenceError
from chatbridge.persistence.models import Agent, AgentStatus, now_utc

logger = logging.getLogger(__name__)

DEFAULT_TEMPERATURE = 0.7

# Public camelCase field -> column
_UPDATABLE = {
    "name": "name",
    "description": "description",
    "status": "status",
    "chatbotName": "chatbot_name",
    "systemPrompt": "system_prompt",
    "topColor": "top_color",
    "accentColor": "accent_color",
    "backgroundColor": "background_color",
    "isActive": "is_active",
    "avatarUrl": "avatar_url",
    "workflowId": "workflow_id",
}


def agent_to_dict(agent: Agent) -> dict[str, Any]:
    return {
        "id": agent.id,
        "name": agent.name,
        "description": agent.description or "",
        "status": agent.status.value if isinstance(agent.status, AgentStatus) else agent.status,
        "isActive": agent.is_active,
        "workflowId": agent.workflow_id,
        "chatbotName": agent.chatbot_name,
        "systemPrompt": agent.system_prompt,
        "topColor": agent.top_color,
        "accentColor": agent.accent_color,
        "backgroundColor": agent.background_color,
        "avatarUrl": agent.avatar_url,
        "temperature": DEFAULT_TEMPERATURE,
        "extraConfig": {
            "conversationStarters": [],
            "trainingData": {"extractedLinks": [], "uploadedFiles": []},
        },
        "createdBy": agent.user_id,
        "createdAt": agent.created_at.isoformat() if agent.created_at else None,
        "updatedAt": agent.updated_at.isoformat() if agent.updated_at else None,
    }


def _commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Agent %s failed: %s", action, exc)
        raise PersistenceError(f"Failed to {action} agent") from exc


class AgentService:
    @staticmethod
    def list_agents(db: Session, user_id: str) -> list[Agent]:
        return db.query(Agent).filter(Agent.user_id == user_id).order_by(Agent.created_at.desc(), Agent.id.desc()).all()

    @staticmethod
    def get_owned_agent(db: Session, agent_id: int, user_id: str) -> Agent:
        agent = db.get(Agent, agent_id)
        if agent is None:
            raise NotFoundError("Agent not found")
        if agent.user_id != user_id:
            raise ForbiddenError("You do not have permission to access this agent")
        return agent

    @staticmethod
    def create_agent(db: Session, user_id: str, fields: dict[str, Any]) -> Agent:
        name = fields.get("name") or "New Agent"
        is_active = fields.get("isActive", True)
        status = fields.get("status") or (AgentStatus.online if is_active else AgentStatus.offline)
        agent = Agent(
            user_id=user_id,
            name=name,
            description=fields.get("description") or "",
            status=AgentStatus(status),
            chatbot_name=fields.get("chatbotName") or name or "AI Assistant",
            system_prompt=fields.get("systemPrompt") or "You are a helpful AI assistant.",
            top_color=fields.get("topColor") or "#1f2937",
            accent_color=fields.get("accentColor") or "#3B82F6",
            background_color=fields.get("backgroundColor") or "#F3F4F6",
            is_active=bool(is_active),
            avatar_url=fields.get("avatarUrl"),
            workflow_id=str(fields.get("workflowId") or "1"),
        )
        db.add(agent)
        _commit(db, "create")
        db.refresh(agent)
        logger.info("Created agent %s", agent.id, extra={"user_id": user_id})
        return agent

    @staticmethod
    def update_agent(db: Session, agent: Agent, changes: dict[str, Any]) -> Agent:
        for key, column in _UPDATABLE.items():
            if key not in changes or changes[key] is None:
                continue
            value = changes[key]
            if column == "status":
                value = AgentStatus(value)
            elif column == "workflow_id":
                value = str(value)
            setattr(agent, column, value)
        if "isActive" in changes and "status" not in changes and changes["isActive"] is not None:
            agent.status = AgentStatus.online if changes["isActive"] else AgentStatus.offline
        agent.updated_at = now_utc()
        _commit(db, "update")
        db.refresh(agent)
        return agent

    @staticmethod
    def delete_agent(db: Session, agent: Agent) -> None:
        db.delete(agent)
        _commit(db, "delete")
        logger.info("Deleted agent %s", agent.id)
