"""Create moderation ledger schema

Revision ID: 0001_moderation_ledger
Revises:
Create Date: 2026-10-19

- rule catalog: warning_levels, rules
- punishment policy: punishment_rules
- ledger: users, warnings, punishments
- classifier prompts: prompt_templates, prompt_history
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_moderation_ledger"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

punishment_type = sa.Enum("MUTE", "BAN", name="punishmenttype")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(32), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_muted", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("mute_expires_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "warning_levels",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("color", sa.String(30), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column(
            "delete_message", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("name"),
    )
    op.create_index(op.f("ix_warning_levels_id"), "warning_levels", ["id"])

    op.create_table(
        "rules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("warning_level_id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_visible", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["warning_level_id"], ["warning_levels.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_rules_id"), "rules", ["id"])
    op.create_index("ix_rules_level_order", "rules", ["warning_level_id", "order"])

    op.create_table(
        "warnings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(32), nullable=False),
        sa.Column("level_id", sa.Integer(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("rule_triggered", sa.Text(), nullable=False),
        sa.Column("message_content", sa.Text(), nullable=False),
        sa.Column("message_context", sa.JSON(), nullable=False),
        sa.Column("channel_id", sa.String(32), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column(
            "message_deleted", sa.Boolean(), nullable=False, server_default=sa.false()
        ),
        sa.Column("ignored", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ignored_at", sa.DateTime(), nullable=True),
        sa.Column("ignored_by", sa.String(32), nullable=True),
        sa.Column("ignore_reason", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["level_id"], ["warning_levels.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_warnings_id"), "warnings", ["id"])
    op.create_index("ix_warnings_user_ignored", "warnings", ["user_id", "ignored"])
    op.create_index("ix_warnings_created", "warnings", ["created_at"])
    op.create_index("ix_warnings_level", "warnings", ["level_id"])

    op.create_table(
        "punishment_rules",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("punishment_type", punishment_type, nullable=False),
        sa.Column("point_threshold", sa.Integer(), nullable=False),
        sa.Column(
            "duration", sa.Integer(), nullable=True, comment="minutes; NULL for bans"
        ),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_punishment_rules_id"), "punishment_rules", ["id"])
    op.create_index(
        "ix_punishment_rules_active_threshold",
        "punishment_rules",
        ["is_active", "point_threshold"],
    )

    op.create_table(
        "punishments",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.String(32), nullable=False),
        sa.Column("punishment_type", punishment_type, nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_punishments_id"), "punishments", ["id"])
    op.create_index(
        "ix_punishments_user_created", "punishments", ["user_id", "created_at"]
    )

    op.create_table(
        "prompt_templates",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("system_prompt", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_prompt_templates_id"), "prompt_templates", ["id"])

    op.create_table(
        "prompt_history",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("template_id", sa.Integer(), nullable=False),
        sa.Column("system_prompt", sa.Text(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["template_id"], ["prompt_templates.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_prompt_history_id"), "prompt_history", ["id"])


def downgrade() -> None:
    op.drop_table("prompt_history")
    op.drop_table("prompt_templates")
    op.drop_table("punishments")
    op.drop_table("punishment_rules")
    op.drop_table("warnings")
    op.drop_table("rules")
    op.drop_table("warning_levels")
    op.drop_table("users")
    punishment_type.drop(op.get_bind(), checkfirst=True)
