"""
Database models using SQLAlchemy 2.0 style with Mapped type hints.

The moderation ledger is made of four kinds of rows:

- configuration: WarningLevel, Rule, PunishmentRule, PromptTemplate
- the append-only ledger: ModerationWarning (only its ignore fields change)
- the derived per-user state: ModeratedUser.total_points / is_banned / is_muted
- the audit trail of punishments actually decided: Punishment

``ModeratedUser.total_points`` always equals the sum of ``points`` over that
user's warnings where ``ignored`` is false.
"""

import enum
from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from repositories.database import Base


class PunishmentType(str, enum.Enum):
    """Automatic actions a punishment rule can trigger."""

    MUTE = "mute"  # Timed timeout, requires a duration
    BAN = "ban"  # Permanent


def _utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


class ModeratedUser(Base):
    """A chat platform member who has received at least one warning."""

    __tablename__ = "users"

    # Platform user id (Discord snowflake), stable external key
    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    username: Mapped[str] = mapped_column(String(100), nullable=False)
    total_points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_banned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_muted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    mute_expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )

    warnings: Mapped[List["ModerationWarning"]] = relationship(
        "ModerationWarning",
        back_populates="user",
        foreign_keys="ModerationWarning.user_id",
    )
    punishments: Mapped[List["Punishment"]] = relationship(
        "Punishment", back_populates="user"
    )


class WarningLevel(Base):
    """Severity tier with a point weight and a message-deletion policy."""

    __tablename__ = "warning_levels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    color: Mapped[str] = mapped_column(String(30), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    delete_message: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )

    rules: Mapped[List["Rule"]] = relationship(
        "Rule",
        back_populates="level",
        order_by="Rule.order",
        cascade="all, delete-orphan",
    )


class Rule(Base):
    """A described offense belonging to exactly one warning level."""

    __tablename__ = "rules"
    __table_args__ = (Index("ix_rules_level_order", "warning_level_id", "order"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    warning_level_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("warning_levels.id"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )

    level: Mapped["WarningLevel"] = relationship("WarningLevel", back_populates="rules")


class ModerationWarning(Base):
    """
    One triggered warning.

    Everything except the ignore sub-record is permanent audit data.
    ``points`` is a snapshot of the level's weight when the warning was
    created and is never recomputed.
    """

    __tablename__ = "warnings"
    __table_args__ = (
        Index("ix_warnings_user_ignored", "user_id", "ignored"),
        Index("ix_warnings_created", "created_at"),
        Index("ix_warnings_level", "level_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id"), nullable=False
    )
    level_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("warning_levels.id"), nullable=False
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    rule_triggered: Mapped[str] = mapped_column(Text, nullable=False)
    message_content: Mapped[str] = mapped_column(Text, nullable=False)
    message_context: Mapped[list[dict[str, Any]]] = mapped_column(
        JSON, nullable=False, default=list
    )  # [{"author": ..., "content": ...}] oldest first
    channel_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    message_deleted: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )

    # Review sub-record (the only mutable part)
    ignored: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    ignored_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    ignored_by: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    ignore_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    user: Mapped["ModeratedUser"] = relationship(
        "ModeratedUser", back_populates="warnings", foreign_keys=[user_id]
    )
    level: Mapped["WarningLevel"] = relationship("WarningLevel")


class PunishmentRule(Base):
    """Maps a cumulative point threshold to an automatic mute or ban."""

    __tablename__ = "punishment_rules"
    __table_args__ = (
        Index("ix_punishment_rules_active_threshold", "is_active", "point_threshold"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    punishment_type: Mapped[PunishmentType] = mapped_column(
        Enum(PunishmentType), nullable=False
    )
    point_threshold: Mapped[int] = mapped_column(Integer, nullable=False)
    duration: Mapped[Optional[int]] = mapped_column(
        Integer, nullable=True
    )  # minutes; NULL for bans (permanent)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )


class Punishment(Base):
    """
    Audit row for a punishment decided by the scoring engine.

    Not the source of truth for current status; that lives on ModeratedUser.
    """

    __tablename__ = "punishments"
    __table_args__ = (Index("ix_punishments_user_created", "user_id", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("users.id"), nullable=False
    )
    punishment_type: Mapped[PunishmentType] = mapped_column(
        Enum(PunishmentType), nullable=False
    )
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    duration: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True
    )  # NULL = permanent

    user: Mapped["ModeratedUser"] = relationship(
        "ModeratedUser", back_populates="punishments"
    )


class PromptTemplate(Base):
    """System prompt sent to the content classifier; at most one is active."""

    __tablename__ = "prompt_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=_utc_now, onupdate=_utc_now
    )

    history: Mapped[List["PromptHistory"]] = relationship(
        "PromptHistory", back_populates="template", cascade="all, delete-orphan"
    )


class PromptHistory(Base):
    """Snapshot of a prompt template's text each time it is created or edited."""

    __tablename__ = "prompt_history"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    template_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("prompt_templates.id"), nullable=False
    )
    system_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=_utc_now)

    template: Mapped["PromptTemplate"] = relationship(
        "PromptTemplate", back_populates="history"
    )
