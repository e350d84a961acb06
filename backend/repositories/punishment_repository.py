"""
Repositories for punishment policy and the punishment audit trail.
"""

from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import Punishment, PunishmentRule


class PunishmentRuleRepository(BaseRepository[PunishmentRule]):
    """Repository for punishment rule data access."""

    def __init__(self, db: Session):
        super().__init__(PunishmentRule, db)

    def get_all_ordered(self) -> list[PunishmentRule]:
        """Get every rule, lowest threshold first (admin listing order)."""
        return (
            self.db.query(PunishmentRule)
            .order_by(PunishmentRule.point_threshold.asc(), PunishmentRule.id.asc())
            .all()
        )

    def get_active(self) -> list[PunishmentRule]:
        """
        Get the active policy snapshot.

        Ordering for evaluation is applied by the scoring engine; this only
        filters.
        """
        return (
            self.db.query(PunishmentRule)
            .filter(PunishmentRule.is_active.is_(True))
            .all()
        )


class PunishmentRepository(BaseRepository[Punishment]):
    """Repository for the punishment audit trail."""

    def __init__(self, db: Session):
        super().__init__(Punishment, db)

    def get_user_punishments(
        self, user_id: str, skip: int = 0, limit: int = 50
    ) -> list[Punishment]:
        """Get a user's punishments, newest first."""
        return (
            self.db.query(Punishment)
            .filter(Punishment.user_id == user_id)
            .order_by(Punishment.created_at.desc(), Punishment.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )
