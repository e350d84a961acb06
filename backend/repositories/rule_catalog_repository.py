"""
Repositories for the rule catalog: warning levels and the rules under them.
"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from repositories.base import BaseRepository
from repositories.db_models import Rule, WarningLevel


class WarningLevelRepository(BaseRepository[WarningLevel]):
    """Repository for warning level data access."""

    def __init__(self, db: Session):
        super().__init__(WarningLevel, db)

    def get_all_with_rules(self) -> list[WarningLevel]:
        """Get all levels ordered by points, each with its rules in display order."""
        return (
            self.db.query(WarningLevel)
            .options(selectinload(WarningLevel.rules))
            .order_by(WarningLevel.points.asc(), WarningLevel.id.asc())
            .all()
        )

    def get_by_name(self, name: str) -> Optional[WarningLevel]:
        """
        Get a level by name, case-insensitively.

        The classifier may answer "Red" for a level configured as "red".
        """
        return (
            self.db.query(WarningLevel)
            .filter(func.lower(WarningLevel.name) == name.strip().lower())
            .first()
        )


class RuleRepository(BaseRepository[Rule]):
    """Repository for rule data access."""

    def __init__(self, db: Session):
        super().__init__(Rule, db)

    def get_by_level(self, level_id: int) -> list[Rule]:
        """Get a level's rules in display order."""
        return (
            self.db.query(Rule)
            .filter(Rule.warning_level_id == level_id)
            .order_by(Rule.order.asc(), Rule.id.asc())
            .all()
        )

    def get_next_order(self, level_id: int) -> int:
        """Order value for a rule appended at the end of a level (0 when empty)."""
        current = (
            self.db.query(func.max(Rule.order))
            .filter(Rule.warning_level_id == level_id)
            .scalar()
        )
        return 0 if current is None else current + 1

    def get_all_with_levels(self) -> list[Rule]:
        """Get every rule with its level, ordered by id (prompt rendering order)."""
        return (
            self.db.query(Rule)
            .options(selectinload(Rule.level))
            .order_by(Rule.id.asc())
            .all()
        )
