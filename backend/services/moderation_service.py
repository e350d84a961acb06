"""
Moderation pipeline entry point for the chat connector.

    message -> classifier (bounded retry) -> scoring engine -> executor

Nothing in here raises to the connector for classifier or configuration
problems; those are logged and the message passes unflagged.
"""

from collections.abc import Sequence
from dataclasses import asdict, dataclass
from typing import Optional

from loguru import logger
from sqlalchemy.orm import Session

from core.correlation import correlation_scope
from models.exceptions import ConfigurationException
from repositories.db_models import PunishmentType
from services.classifier import (
    ClassificationOutcome,
    ClassificationStatus,
    ContentClassifier,
    ContextMessage,
    OpenAIContentClassifier,
    classify_with_retry,
)
from services.punishment_executor import PunishmentExecutor
from services.scoring_service import ScoringService, WarningOutcome


@dataclass
class MessageOutcome:
    """What the connector needs to act on a classified message."""

    violation: bool
    classification_status: str
    level_applied: Optional[str] = None
    delete_message: bool = False
    explanation: Optional[str] = None
    warning_id: Optional[int] = None
    points_added: int = 0
    new_total: Optional[int] = None
    punishment_applied: Optional[PunishmentType] = None
    punishment_executed: Optional[bool] = None
    execution_error: Optional[str] = None
    configuration_error: Optional[str] = None

    @classmethod
    def from_warning(
        cls, classification: ClassificationOutcome, result: WarningOutcome
    ) -> "MessageOutcome":
        return cls(
            violation=True,
            classification_status=classification.status.value,
            level_applied=result.level.name,
            delete_message=result.level.delete_message,
            explanation=classification.verdict.explanation,
            warning_id=result.warning.id,
            points_added=result.points_added,
            new_total=result.new_total,
            punishment_applied=result.punishment_applied,
            punishment_executed=result.punishment_executed,
            execution_error=result.execution_error,
        )

    def to_dict(self) -> dict:
        return asdict(self)


class ModerationService:
    """Service for running a chat message through the moderation pipeline."""

    @staticmethod
    def handle_message(
        db: Session,
        user_id: str,
        username: str,
        content: str,
        context_messages: Sequence[ContextMessage],
        channel_id: Optional[str] = None,
        classifier: Optional[ContentClassifier] = None,
        executor: Optional[PunishmentExecutor] = None,
    ) -> MessageOutcome:
        """
        Classify a message and record a warning when it breaks a rule.

        Args:
            db: Database session
            user_id: Author's platform id
            username: Author's display name
            content: Message text
            context_messages: Preceding messages, oldest first
            channel_id: Channel the message was posted in
            classifier: Classifier (OpenAI-backed when None)
            executor: Punishment executor (configured default when None)

        Returns:
            MessageOutcome; ``delete_message`` tells the connector whether
            to remove the message
        """
        with correlation_scope():
            classifier = classifier or OpenAIContentClassifier(db)
            context = list(context_messages)

            classification = classify_with_retry(classifier, content, context)
            if not classification.is_violation:
                return MessageOutcome(
                    violation=False,
                    classification_status=classification.status.value,
                    configuration_error=(
                        classification.error
                        if classification.status == ClassificationStatus.CLEAN
                        else None
                    ),
                )

            verdict = classification.verdict
            try:
                result = ScoringService.record_warning(
                    db,
                    user_id=user_id,
                    username=username,
                    level_name=verdict.level_name,
                    rule_triggered=verdict.explanation,
                    message_content=content,
                    message_context=[dict(m) for m in context],
                    channel_id=channel_id,
                    executor=executor,
                )
            except ConfigurationException as e:
                logger.warning(
                    f"Violation by {user_id} not recorded: {e.message}",
                    user_id=user_id,
                )
                return MessageOutcome(
                    violation=False,
                    classification_status=classification.status.value,
                    explanation=verdict.explanation,
                    configuration_error=e.message,
                )

            return MessageOutcome.from_warning(classification, result)
