"""Tests for domain exceptions: correlation IDs and the HTTP families."""

import pytest

from core.correlation import set_correlation_id
from models.exceptions import (
    ClassifierUnavailableException,
    ConfigurationException,
    ConflictException,
    DomainException,
    ExternalServiceException,
    InvalidPunishmentRuleException,
    ModeratedUserNotFoundException,
    NoActivePromptException,
    NotFoundException,
    UnknownWarningLevelException,
    ValidationException,
    WarningAlreadyIgnoredException,
    WarningLevelInUseException,
    WarningNotFoundException,
)


class TestDomainExceptionCorrelationId:
    """Tests for correlation ID in DomainException."""

    def setup_method(self) -> None:
        """Reset correlation context before each test."""
        set_correlation_id("")

    def test_uses_context_correlation_id(self) -> None:
        """Exception should use correlation ID from context if available."""
        set_correlation_id("context1")

        exc = WarningNotFoundException(7)
        assert exc.correlation_id == "context1"

    def test_generates_id_when_no_context(self) -> None:
        exc = DomainException("Test error")
        assert len(exc.correlation_id) == 8
        assert all(c in "0123456789abcdef" for c in exc.correlation_id)

    def test_explicit_overrides_context(self) -> None:
        set_correlation_id("context_id")

        exc = DomainException("Test error", correlation_id="override")
        assert exc.correlation_id == "override"


class TestExceptionFamilies:
    """Each concrete exception maps to one HTTP status family in main.py."""

    @pytest.mark.parametrize(
        ("exc", "family"),
        [
            (ModeratedUserNotFoundException("1"), NotFoundException),
            (WarningNotFoundException(1), NotFoundException),
            (WarningAlreadyIgnoredException(1), ConflictException),
            (WarningLevelInUseException(1, 3), ConflictException),
            (InvalidPunishmentRuleException("bad"), ValidationException),
            (UnknownWarningLevelException("purple"), ConfigurationException),
            (NoActivePromptException(), ConfigurationException),
            (ClassifierUnavailableException("down"), ExternalServiceException),
        ],
    )
    def test_family(self, exc: DomainException, family: type) -> None:
        assert isinstance(exc, family)

    def test_messages(self) -> None:
        """Messages name the entity so moderators can act on them."""
        assert str(WarningAlreadyIgnoredException(12)) == "Warning 12 is already ignored"
        assert UnknownWarningLevelException("purple").message == (
            "Unknown warning level 'purple'"
        )
        assert UnknownWarningLevelException("purple").level_name == "purple"
