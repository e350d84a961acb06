"""
Repository for moderated user operations.
"""

from datetime import datetime

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import ModeratedUser, ModerationWarning


class UserRepository(BaseRepository[ModeratedUser]):
    """Repository for moderated user data access."""

    def __init__(self, db: Session):
        super().__init__(ModeratedUser, db)

    def get_for_update(self, user_id: str) -> ModeratedUser | None:
        """
        Load a user with a row lock held until the transaction ends.

        ``populate_existing`` makes sure a stale identity-map copy is
        overwritten with the locked row's values. SQLite ignores FOR UPDATE;
        callers also hold the in-process user lock.

        Args:
            user_id: Platform user id

        Returns:
            Locked user if found, None otherwise
        """
        return (
            self.db.query(ModeratedUser)
            .filter(ModeratedUser.id == user_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def get_or_create_for_update(self, user_id: str, username: str) -> ModeratedUser:
        """
        Load and lock a user, creating the row on first offense.

        The new row is flushed (not committed) so it joins the caller's
        transaction.

        Args:
            user_id: Platform user id
            username: Display name, refreshed if it changed

        Returns:
            Locked user
        """
        user = self.get_for_update(user_id)
        if user is None:
            user = ModeratedUser(id=user_id, username=username, total_points=0)
            self.db.add(user)
            self.db.flush()
        elif username and user.username != username:
            user.username = username
        return user

    def get_users_with_warning_counts(
        self, skip: int = 0, limit: int = 100
    ) -> list[tuple[ModeratedUser, int, int]]:
        """
        Get users ordered by points with their warning counts.

        Returns:
            List of (user, warning_count, active_warning_count)
        """
        active = func.coalesce(
            func.sum(case((ModerationWarning.ignored.is_(False), 1), else_=0)), 0
        )
        rows = (
            self.db.query(
                ModeratedUser,
                func.count(ModerationWarning.id),
                active,
            )
            .outerjoin(ModerationWarning, ModerationWarning.user_id == ModeratedUser.id)
            .group_by(ModeratedUser.id)
            .order_by(ModeratedUser.total_points.desc(), ModeratedUser.id)
            .offset(skip)
            .limit(limit)
            .all()
        )
        return [(user, int(total), int(active_count)) for user, total, active_count in rows]

    def get_expired_mute_ids(self, now: datetime) -> list[str]:
        """
        Get ids of users whose mute has expired.

        Args:
            now: Current time

        Returns:
            List of user ids
        """
        rows = (
            self.db.query(ModeratedUser.id)
            .filter(
                ModeratedUser.is_muted.is_(True),
                ModeratedUser.mute_expires_at.isnot(None),
                ModeratedUser.mute_expires_at <= now,
            )
            .all()
        )
        return [row[0] for row in rows]
