"""
Read-side queries over the warning ledger and moderated users.

Mutations live in ScoringService.
"""

from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy.orm import Session

import repositories.db_models as db_models
from models.exceptions import ModeratedUserNotFoundException
from repositories.punishment_repository import PunishmentRepository
from repositories.user_repository import UserRepository
from repositories.warning_repository import WarningRepository

if TYPE_CHECKING:
    from services.scoring_service import LedgerChangeOutcome


class LedgerService:
    """Service for browsing warnings, users and punishments."""

    @staticmethod
    def serialize_warning(warning: db_models.ModerationWarning) -> dict[str, Any]:
        """Flatten a warning with its user's name and level summary."""
        return {
            "id": warning.id,
            "user_id": warning.user_id,
            "username": warning.user.username if warning.user else warning.user_id,
            "level": {
                "id": warning.level.id,
                "name": warning.level.name,
                "color": warning.level.color,
            },
            "points": warning.points,
            "rule_triggered": warning.rule_triggered,
            "message_content": warning.message_content,
            "message_context": warning.message_context or [],
            "channel_id": warning.channel_id,
            "created_at": warning.created_at,
            "message_deleted": warning.message_deleted,
            "ignored": warning.ignored,
            "ignored_at": warning.ignored_at,
            "ignored_by": warning.ignored_by,
            "ignore_reason": warning.ignore_reason,
        }

    @staticmethod
    def serialize_ignored(outcome: "LedgerChangeOutcome") -> dict[str, Any]:
        """An ignored warning plus the new total and the platform results."""
        return {
            **LedgerService.serialize_warning(outcome.warning),
            "new_total": outcome.new_total,
            "lifted": outcome.lifted,
            "punishment_executed": outcome.punishment_executed,
            "execution_error": outcome.execution_error,
        }

    @staticmethod
    def serialize_status_change(outcome: "LedgerChangeOutcome") -> dict[str, Any]:
        """A recalculated or reset user plus the platform results."""
        user = outcome.user
        return {
            "id": user.id,
            "username": user.username,
            "total_points": user.total_points,
            "is_banned": user.is_banned,
            "is_muted": user.is_muted,
            "mute_expires_at": user.mute_expires_at,
            "created_at": user.created_at,
            "updated_at": user.updated_at,
            "previous_total": outcome.previous_total,
            "granted": [p.punishment_type for p in outcome.granted],
            "lifted": outcome.lifted,
            "punishment_executed": outcome.punishment_executed,
            "execution_error": outcome.execution_error,
        }

    @staticmethod
    def list_warnings(
        db: Session,
        user_id: Optional[str] = None,
        include_ignored: bool = True,
        skip: int = 0,
        limit: int = 100,
    ) -> list[dict[str, Any]]:
        """List warnings newest first, optionally for a single user."""
        warnings = WarningRepository(db).list_warnings(
            user_id=user_id, include_ignored=include_ignored, skip=skip, limit=limit
        )
        return [LedgerService.serialize_warning(w) for w in warnings]

    @staticmethod
    def list_users(db: Session, skip: int = 0, limit: int = 100) -> list[dict[str, Any]]:
        """List users by points descending with their warning counts."""
        rows = UserRepository(db).get_users_with_warning_counts(skip=skip, limit=limit)
        return [
            {
                "id": user.id,
                "username": user.username,
                "total_points": user.total_points,
                "is_banned": user.is_banned,
                "is_muted": user.is_muted,
                "mute_expires_at": user.mute_expires_at,
                "created_at": user.created_at,
                "updated_at": user.updated_at,
                "warning_count": warning_count,
                "active_warnings": active_count,
            }
            for user, warning_count, active_count in rows
        ]

    @staticmethod
    def get_user(db: Session, user_id: str) -> db_models.ModeratedUser:
        user = UserRepository(db).get_by_id(user_id)
        if user is None:
            raise ModeratedUserNotFoundException(user_id)
        return user

    @staticmethod
    def get_user_punishments(
        db: Session, user_id: str, skip: int = 0, limit: int = 50
    ) -> list[db_models.Punishment]:
        LedgerService.get_user(db, user_id)
        return PunishmentRepository(db).get_user_punishments(
            user_id, skip=skip, limit=limit
        )
