"""Tests for Loguru configuration."""

import json

from loguru import logger

from core.correlation import correlation_scope
from core.logging_config import configure_logging, correlation_filter, moderation_filter


class TestFilters:
    """Tests for the record filters."""

    def test_correlation_filter_adds_id(self) -> None:
        record = {"extra": {}}
        with correlation_scope("abc12345"):
            assert correlation_filter(record) is True  # type: ignore[arg-type]
        assert record["extra"]["correlation_id"] == "abc12345"

    def test_moderation_filter_keeps_audit_only(self) -> None:
        assert moderation_filter({"extra": {"audit": True}}) is True  # type: ignore[arg-type]
        assert moderation_filter({"extra": {}}) is False  # type: ignore[arg-type]


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_audit_records_go_to_moderation_log(self, tmp_path) -> None:
        """Only records bound with audit=True land in moderation.log."""
        configure_logging("production", logs_dir=str(tmp_path))
        try:
            logger.info("plain request log")
            logger.bind(audit=True).info(
                "Warning recorded", event="warning_recorded", user_id="42"
            )
            logger.complete()

            lines = (tmp_path / "moderation.log").read_text().splitlines()
            assert len(lines) == 1
            record = json.loads(lines[0])["record"]
            assert record["message"] == "Warning recorded"
            assert record["extra"]["user_id"] == "42"
            assert "plain request log" in (tmp_path / "app.log").read_text()
        finally:
            logger.remove()
