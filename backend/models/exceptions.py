"""
Custom domain exceptions for the application.

These exceptions are raised by the service layer and converted to HTTP exceptions
by centralized exception handlers in main.py, maintaining proper separation of concerns.

The moderation pipeline (ModerationService.handle_message) catches the
configuration and external-service families itself so that a single bad
message never takes the pipeline down.

Enhanced with correlation IDs for Sentry integration and moderator error reporting.
"""

from core.correlation import generate_correlation_id, get_correlation_id


class DomainException(Exception):
    """
    Base class for all domain exceptions.

    Attributes:
        message: Human-readable error message.
        correlation_id: Unique ID for error tracking (auto-generated if not provided).
    """

    def __init__(self, message: str, correlation_id: str | None = None):
        self.message = message
        # Use request correlation ID if available, otherwise generate new one
        self.correlation_id = (
            correlation_id or get_correlation_id() or generate_correlation_id()
        )
        super().__init__(self.message)


class NotFoundException(DomainException):
    """Raised when a requested resource is not found."""

    pass


class ValidationException(DomainException):
    """Raised when input validation fails."""

    pass


class ConflictException(DomainException):
    """Raised when operation conflicts with existing data."""

    pass


class ConfigurationException(DomainException):
    """Raised when moderation configuration is missing or inconsistent."""

    pass


class ExternalServiceException(DomainException):
    """Raised when the classifier or the chat platform fails."""

    pass


# Specific exceptions for domain entities


class ModeratedUserNotFoundException(NotFoundException):
    """Moderated user not found."""

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User {user_id} not found")
        self.user_id = user_id


class WarningNotFoundException(NotFoundException):
    """Warning not found."""

    def __init__(self, warning_id: int) -> None:
        super().__init__(f"Warning {warning_id} not found")
        self.warning_id = warning_id


class WarningLevelNotFoundException(NotFoundException):
    """Warning level not found."""

    def __init__(self, level_id: int) -> None:
        super().__init__(f"Warning level {level_id} not found")
        self.level_id = level_id


class RuleNotFoundException(NotFoundException):
    """Rule not found."""

    def __init__(self, rule_id: int) -> None:
        super().__init__(f"Rule {rule_id} not found")
        self.rule_id = rule_id


class PunishmentRuleNotFoundException(NotFoundException):
    """Punishment rule not found."""

    def __init__(self, rule_id: int) -> None:
        super().__init__(f"Punishment rule {rule_id} not found")
        self.rule_id = rule_id


class PromptTemplateNotFoundException(NotFoundException):
    """Prompt template not found."""

    def __init__(self, template_id: int) -> None:
        super().__init__(f"Prompt template {template_id} not found")
        self.template_id = template_id


# Ledger conflicts


class WarningAlreadyIgnoredException(ConflictException):
    """Raised when a warning has already been ignored by a reviewer."""

    def __init__(self, warning_id: int) -> None:
        super().__init__(f"Warning {warning_id} is already ignored")
        self.warning_id = warning_id


class WarningLevelInUseException(ConflictException):
    """Raised when deleting a warning level that warnings still reference."""

    def __init__(self, level_id: int, warning_count: int) -> None:
        super().__init__(
            f"Cannot delete warning level {level_id}: "
            f"{warning_count} warning(s) still reference it"
        )
        self.level_id = level_id
        self.warning_count = warning_count


class DuplicateWarningLevelException(ConflictException):
    """Raised when a warning level name is already taken."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Warning level '{name}' already exists")
        self.name = name


class InvalidPunishmentRuleException(ValidationException):
    """Raised when a punishment rule is malformed (e.g. mute without duration)."""

    pass


# Configuration errors


class UnknownWarningLevelException(ConfigurationException):
    """Raised when the classifier names a level that is not configured."""

    def __init__(self, level_name: str | None) -> None:
        super().__init__(f"Unknown warning level '{level_name}'")
        self.level_name = level_name


class NoActivePromptException(ConfigurationException):
    """Raised when no prompt template is active."""

    def __init__(self) -> None:
        super().__init__("No active prompt template configured")


# External services


class ClassifierUnavailableException(ExternalServiceException):
    """Raised when the content classifier cannot be reached or errors out."""

    pass
