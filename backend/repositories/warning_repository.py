"""
Repository for the warning ledger.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from repositories.base import BaseRepository
from repositories.db_models import ModerationWarning


class WarningRepository(BaseRepository[ModerationWarning]):
    """Repository for warning ledger data access."""

    def __init__(self, db: Session):
        super().__init__(ModerationWarning, db)

    def get_with_relations(self, warning_id: int) -> Optional[ModerationWarning]:
        """Get a warning with its user and level loaded."""
        return (
            self.db.query(ModerationWarning)
            .options(
                joinedload(ModerationWarning.user), joinedload(ModerationWarning.level)
            )
            .filter(ModerationWarning.id == warning_id)
            .first()
        )

    def get_for_update(self, warning_id: int) -> Optional[ModerationWarning]:
        """Load a warning with a row lock held until the transaction ends."""
        return (
            self.db.query(ModerationWarning)
            .filter(ModerationWarning.id == warning_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def list_warnings(
        self,
        user_id: Optional[str] = None,
        include_ignored: bool = True,
        skip: int = 0,
        limit: int = 100,
    ) -> list[ModerationWarning]:
        """
        List warnings newest first.

        Args:
            user_id: Only this user's warnings when given
            include_ignored: Include warnings that were ignored
            skip: Pagination offset
            limit: Pagination limit

        Returns:
            List of warnings with user and level loaded
        """
        query = self.db.query(ModerationWarning).options(
            joinedload(ModerationWarning.user), joinedload(ModerationWarning.level)
        )
        if user_id is not None:
            query = query.filter(ModerationWarning.user_id == user_id)
        if not include_ignored:
            query = query.filter(ModerationWarning.ignored.is_(False))

        return (
            query.order_by(ModerationWarning.created_at.desc(), ModerationWarning.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def sum_active_points(self, user_id: str) -> int:
        """Sum points over the user's non-ignored warnings."""
        total = (
            self.db.query(func.coalesce(func.sum(ModerationWarning.points), 0))
            .filter(
                ModerationWarning.user_id == user_id,
                ModerationWarning.ignored.is_(False),
            )
            .scalar()
        )
        return int(total or 0)

    def ignore_all_active(
        self, user_id: str, ignored_by: str, reason: str, now: datetime
    ) -> int:
        """
        Mark every non-ignored warning of a user as ignored.

        Does not commit.

        Returns:
            Number of warnings marked
        """
        return (
            self.db.query(ModerationWarning)
            .filter(
                ModerationWarning.user_id == user_id,
                ModerationWarning.ignored.is_(False),
            )
            .update(
                {
                    ModerationWarning.ignored: True,
                    ModerationWarning.ignored_at: now,
                    ModerationWarning.ignored_by: ignored_by,
                    ModerationWarning.ignore_reason: reason,
                },
                synchronize_session="fetch",
            )
        )

    def count_by_level(self, level_id: int) -> int:
        """Count warnings (ignored or not) that reference a level."""
        return (
            self.db.query(func.count(ModerationWarning.id))
            .filter(ModerationWarning.level_id == level_id)
            .scalar()
            or 0
        )
