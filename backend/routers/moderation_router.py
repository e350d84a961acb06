"""
Router for running messages through the moderation pipeline.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

import models.schemas as schemas
from helpers.rate_limiter import limiter
from models.config import settings
from repositories.database import get_db
from services import ModerationService
from services.classifier import ContentClassifier, OpenAIContentClassifier
from services.punishment_executor import PunishmentExecutor, get_default_executor

router = APIRouter(prefix="/moderation", tags=["moderation"])


def get_classifier(db: Session = Depends(get_db)) -> ContentClassifier:
    """Classifier dependency (overridable in tests)."""
    return OpenAIContentClassifier(db)


@router.post("/test", response_model=schemas.MessageOutcome)
@limiter.limit(settings.TEST_MODERATION_RATE_LIMIT)
def moderate_test_message(
    request: Request,
    message: schemas.ModerationTestRequest,
    db: Session = Depends(get_db),
    classifier: ContentClassifier = Depends(get_classifier),
    executor: PunishmentExecutor = Depends(get_default_executor),
) -> dict:
    """
    Run a synthetic message through the full pipeline.

    The warning and any punishment are recorded exactly as for a real
    message. Rate limited because every call hits the classifier.
    """
    outcome = ModerationService.handle_message(
        db,
        user_id=message.user_id,
        username=message.username,
        content=message.content,
        context_messages=[m.model_dump() for m in message.context],
        channel_id=message.channel_id,
        classifier=classifier,
        executor=executor,
    )
    return outcome.to_dict()
