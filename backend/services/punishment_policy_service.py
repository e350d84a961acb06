"""
Service for the punishment policy (threshold rules).

Policy edits never touch users directly; the scoring engine reads the
active rules at decision time and ``recalculate`` brings existing users in
line with a changed policy.
"""

from typing import Optional

from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import (
    InvalidPunishmentRuleException,
    PunishmentRuleNotFoundException,
)
from repositories.db_models import PunishmentType
from repositories.punishment_repository import PunishmentRuleRepository
from services.punishment_executor import MAX_TIMEOUT_MINUTES


class PunishmentPolicyService:
    """Service for punishment rule operations."""

    @staticmethod
    def _normalized_duration(
        punishment_type: PunishmentType, duration: Optional[int]
    ) -> Optional[int]:
        """
        Mutes need a positive duration; bans are permanent and store none.

        Mutes are platform timeouts, which Discord caps at 28 days.

        Raises:
            InvalidPunishmentRuleException: If a mute has no positive duration
                or one longer than the platform allows
        """
        if punishment_type == PunishmentType.BAN:
            return None
        if duration is None or duration <= 0:
            raise InvalidPunishmentRuleException(
                "Mute rules require a positive duration in minutes"
            )
        if duration > MAX_TIMEOUT_MINUTES:
            raise InvalidPunishmentRuleException(
                f"Mute duration cannot exceed {MAX_TIMEOUT_MINUTES} minutes (28 days)"
            )
        return duration

    @staticmethod
    def get_all_rules(db: Session) -> list[db_models.PunishmentRule]:
        return PunishmentRuleRepository(db).get_all_ordered()

    @staticmethod
    def get_rule(db: Session, rule_id: int) -> db_models.PunishmentRule:
        rule = PunishmentRuleRepository(db).get_by_id(rule_id)
        if rule is None:
            raise PunishmentRuleNotFoundException(rule_id)
        return rule

    @staticmethod
    def create_rule(
        db: Session, data: schemas.PunishmentRuleCreate
    ) -> db_models.PunishmentRule:
        rule = db_models.PunishmentRule(
            punishment_type=data.punishment_type,
            point_threshold=data.point_threshold,
            duration=PunishmentPolicyService._normalized_duration(
                data.punishment_type, data.duration
            ),
            is_active=data.is_active,
        )
        return PunishmentRuleRepository(db).create(rule)

    @staticmethod
    def update_rule(
        db: Session, rule_id: int, data: schemas.PunishmentRuleUpdate
    ) -> db_models.PunishmentRule:
        """
        Update a rule; the duration is re-validated against the final type.

        Raises:
            PunishmentRuleNotFoundException: If the rule does not exist
            InvalidPunishmentRuleException: If the result would be a mute
                without duration
        """
        rule = PunishmentPolicyService.get_rule(db, rule_id)
        updates = data.model_dump(exclude_unset=True)

        punishment_type = updates.get("punishment_type") or rule.punishment_type
        duration = updates["duration"] if "duration" in updates else rule.duration
        rule.duration = PunishmentPolicyService._normalized_duration(
            punishment_type, duration
        )
        rule.punishment_type = punishment_type

        if updates.get("point_threshold") is not None:
            rule.point_threshold = updates["point_threshold"]
        if updates.get("is_active") is not None:
            rule.is_active = updates["is_active"]

        return PunishmentRuleRepository(db).update(rule)

    @staticmethod
    def delete_rule(db: Session, rule_id: int) -> None:
        rule = PunishmentPolicyService.get_rule(db, rule_id)
        PunishmentRuleRepository(db).delete(rule)
