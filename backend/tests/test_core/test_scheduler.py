"""Tests for the background scheduler and the mute expiry job."""

from datetime import timedelta
from unittest.mock import patch

import pytest

import core.scheduler as scheduler_module
from core.scheduler import (
    get_scheduler_status,
    mute_expiry_job,
    setup_scheduler,
    shutdown_scheduler,
)
from helpers.time_utils import utc_now
from repositories.db_models import ModeratedUser


class TestMuteExpiryJob:
    """Tests for mute_expiry_job."""

    def test_clears_expired_mutes(self, db_session) -> None:
        db_session.add_all(
            [
                ModeratedUser(
                    id="1",
                    username="expired",
                    total_points=5,
                    is_muted=True,
                    mute_expires_at=utc_now() - timedelta(minutes=1),
                ),
                ModeratedUser(
                    id="2",
                    username="active",
                    total_points=5,
                    is_muted=True,
                    mute_expires_at=utc_now() + timedelta(minutes=30),
                ),
            ]
        )
        db_session.commit()

        with patch.object(scheduler_module, "SessionLocal", return_value=db_session):
            cleared = mute_expiry_job()

        assert cleared == 1
        assert db_session.get(ModeratedUser, "1").is_muted is False
        assert db_session.get(ModeratedUser, "2").is_muted is True

    def test_errors_propagate(self) -> None:
        """The job logs and re-raises so APScheduler records the failure."""
        with patch.object(scheduler_module, "SessionLocal") as session_factory:
            with patch(
                "services.scoring_service.ScoringService.expire_mutes",
                side_effect=RuntimeError("db down"),
            ):
                with pytest.raises(RuntimeError):
                    mute_expiry_job()

        session_factory.return_value.close.assert_called_once()


class TestSchedulerLifecycle:
    """Tests for setup_scheduler / shutdown_scheduler."""

    def test_status_when_stopped(self) -> None:
        assert get_scheduler_status() == {"running": False, "jobs": []}

    def test_setup_and_shutdown(self) -> None:
        setup_scheduler()
        try:
            status = get_scheduler_status()
            assert status["running"] is True
            assert [job["id"] for job in status["jobs"]] == ["mute_expiry"]
        finally:
            shutdown_scheduler()

        assert get_scheduler_status()["running"] is False
