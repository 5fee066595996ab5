"""Create plugin_configs, agents and accounts.

Revision ID: 20261018_0001
Revises:
Create Date: 2026-10-18
"""
from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    bind = op.get_bind()
    tables = set(sa.inspect(bind).get_table_names())

    if "plugin_configs" not in tables:
        op.create_table(
            "plugin_configs",
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("plugin_id", sa.String(64), nullable=False),
            sa.Column("user_id", sa.String(255), nullable=False),
            sa.Column("agent_id", sa.Integer, nullable=False),
            sa.Column("platform", sa.String(64), nullable=False),
            sa.Column("config", sa.Text, nullable=False),
            sa.Column("enabled", sa.Boolean, nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
            sa.UniqueConstraint("plugin_id", "user_id", "agent_id", name="uq_plugin_configs_owner"),
        )
        op.create_index("ix_plugin_configs_plugin_id", "plugin_configs", ["plugin_id"])
        op.create_index("ix_plugin_configs_user_id", "plugin_configs", ["user_id"])
        op.create_index("ix_plugin_configs_agent_id", "plugin_configs", ["agent_id"])

    if "agents" not in tables:
        op.create_table(
            "agents",
            sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
            sa.Column("user_id", sa.String(255), nullable=False),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("description", sa.Text, nullable=True),
            sa.Column("status", sa.Enum("online", "offline", "busy", name="agentstatus"), nullable=True),
            sa.Column("chatbot_name", sa.String(255), nullable=True),
            sa.Column("system_prompt", sa.Text, nullable=True),
            sa.Column("top_color", sa.String(16), nullable=True),
            sa.Column("accent_color", sa.String(16), nullable=True),
            sa.Column("background_color", sa.String(16), nullable=True),
            sa.Column("is_active", sa.Boolean, nullable=True),
            sa.Column("avatar_url", sa.String(1024), nullable=True),
            sa.Column("workflow_id", sa.String(64), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        )
        op.create_index("ix_agents_user_id", "agents", ["user_id"])

    if "accounts" not in tables:
        op.create_table(
            "accounts",
            sa.Column("account_id", sa.String(64), primary_key=True),
            sa.Column("user_id", sa.String(255), nullable=False, unique=True),
            sa.Column("email", sa.String(255), nullable=False, unique=True),
            sa.Column("name", sa.String(255), nullable=True),
            sa.Column("picture", sa.String(1024), nullable=True),
            sa.Column("metadata", sa.JSON, nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
            sa.Column("last_login", sa.DateTime(timezone=True), nullable=True),
        )


def downgrade() -> None:
    bind = op.get_bind()
    tables = set(sa.inspect(bind).get_table_names())
    if "accounts" in tables:
        op.drop_table("accounts")
    if "agents" in tables:
        op.drop_index("ix_agents_user_id", table_name="agents")
        op.drop_table("agents")
    if "plugin_configs" in tables:
        op.drop_table("plugin_configs")
