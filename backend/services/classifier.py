"""
Content classification.

The classifier is an external collaborator: given a message and the few
messages before it, it answers whether a rule was broken and which warning
level applies. Calls go through ``classify_with_retry`` which bounds the
number of attempts and never raises.
"""

import json
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol, TypedDict

from loguru import logger
from openai import APIError, OpenAI
from sqlalchemy.orm import Session

from models.config import settings
from models.exceptions import (
    ClassifierUnavailableException,
    ConfigurationException,
    ExternalServiceException,
)
from services.prompt_template_service import PromptTemplateService


class ContextMessage(TypedDict):
    """A message preceding the one being classified."""

    author: str
    content: str


@dataclass(frozen=True)
class ClassifierVerdict:
    """What the classifier decided about one message."""

    violation_detected: bool
    level_name: Optional[str] = None
    explanation: str = ""
    rule_id: Optional[int] = None
    confidence: float = 0.0

    @classmethod
    def clean(cls, explanation: str = "") -> "ClassifierVerdict":
        return cls(violation_detected=False, explanation=explanation)


class ContentClassifier(Protocol):
    """Anything that can classify a message in its context."""

    def classify(
        self, text: str, context: Sequence[ContextMessage]
    ) -> ClassifierVerdict: ...


class ClassificationStatus(str, Enum):
    VIOLATION = "violation"
    CLEAN = "clean"
    EXHAUSTED = "exhausted"


@dataclass
class ClassificationOutcome:
    """Tri-state result of a bounded classification attempt."""

    status: ClassificationStatus
    verdict: Optional[ClassifierVerdict] = None
    attempts: int = 0
    error: Optional[str] = None

    @property
    def is_violation(self) -> bool:
        return self.status == ClassificationStatus.VIOLATION


def format_user_prompt(text: str, context: Sequence[ContextMessage]) -> str:
    """Render the user prompt: the preceding messages, then the message itself."""
    context_lines = "\n".join(f"{m['author']}: {m['content']}" for m in context)
    return f"Previous messages:\n{context_lines}\n\nMessage to analyze: {text}"


def parse_verdict(raw: Optional[str]) -> ClassifierVerdict:
    """
    Parse the classifier's JSON answer.

    Expected shape::

        {"violation": {"detected": bool, "levelName": str, "ruleId": int,
                       "confidence": float},
         "analysis": {"explanation": str}}

    Anything unparseable or of the wrong shape is treated as no violation.
    A violation counts only when ``detected`` is a real boolean ``true``.
    """
    try:
        data = json.loads(raw or "{}")
    except json.JSONDecodeError:
        logger.warning("Classifier returned malformed JSON; treating as no violation")
        return ClassifierVerdict.clean("Malformed classifier response")

    if not isinstance(data, dict):
        logger.warning("Classifier returned non-object JSON; treating as no violation")
        return ClassifierVerdict.clean("Malformed classifier response")

    violation = data.get("violation") or {}
    analysis = data.get("analysis") or {}
    if not isinstance(violation, dict) or not isinstance(analysis, dict):
        logger.warning("Classifier returned an unexpected shape; treating as no violation")
        return ClassifierVerdict.clean("Malformed classifier response")

    detected = violation.get("detected", False)
    if not isinstance(detected, bool):
        logger.warning(
            f"Classifier returned non-boolean 'detected' ({detected!r}); "
            "treating as no violation"
        )
        detected = False

    level_name = violation.get("levelName")
    if not isinstance(level_name, str):
        level_name = None

    rule_id = violation.get("ruleId")
    try:
        confidence = float(violation.get("confidence") or 0)
    except (TypeError, ValueError):
        confidence = 0.0

    return ClassifierVerdict(
        violation_detected=detected,
        level_name=level_name,
        explanation=str(analysis.get("explanation") or "No explanation provided"),
        rule_id=(
            rule_id
            if isinstance(rule_id, int) and not isinstance(rule_id, bool)
            else None
        ),
        confidence=confidence,
    )


class OpenAIContentClassifier:
    """
    Classifier backed by an OpenAI-compatible chat completions API.

    The system prompt is read from the active prompt template on every call
    so edits in the admin UI take effect immediately.
    """

    def __init__(
        self,
        db: Session,
        client: Optional[OpenAI] = None,
        model: Optional[str] = None,
    ) -> None:
        self.db = db
        self.model = model or settings.OPENAI_MODEL
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is None:
            if not settings.OPENAI_API_KEY:
                raise ClassifierUnavailableException("OpenAI API key not configured")
            self._client = OpenAI(
                api_key=settings.OPENAI_API_KEY,
                base_url=settings.OPENAI_BASE_URL,
                timeout=settings.CLASSIFIER_TIMEOUT,
                max_retries=0,
            )
        return self._client

    def classify(
        self, text: str, context: Sequence[ContextMessage]
    ) -> ClassifierVerdict:
        system_prompt = PromptTemplateService.build_system_prompt(self.db)
        client = self._get_client()

        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": format_user_prompt(text, context)},
                ],
                response_format={"type": "json_object"},
            )
        except APIError as e:
            raise ClassifierUnavailableException(f"Classifier request failed: {e}") from e

        if not response.choices:
            raise ClassifierUnavailableException("Classifier returned no choices")
        return parse_verdict(response.choices[0].message.content)


def classify_with_retry(
    classifier: ContentClassifier,
    text: str,
    context: Sequence[ContextMessage],
    max_attempts: Optional[int] = None,
    base_delay: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ClassificationOutcome:
    """
    Classify with a bounded number of attempts and exponential backoff.

    Only external-service failures are retried. Configuration errors (no
    active prompt) are not, and degrade to CLEAN.

    Args:
        classifier: Classifier to call
        text: Message to classify
        context: Preceding messages, oldest first
        max_attempts: Attempts before giving up (CLASSIFIER_MAX_ATTEMPTS)
        base_delay: First backoff in seconds (CLASSIFIER_RETRY_DELAY)
        sleep: Sleep function, replaceable in tests

    Returns:
        ClassificationOutcome with VIOLATION, CLEAN or EXHAUSTED
    """
    max_attempts = max_attempts or settings.CLASSIFIER_MAX_ATTEMPTS
    base_delay = settings.CLASSIFIER_RETRY_DELAY if base_delay is None else base_delay
    last_error: Optional[str] = None

    for attempt in range(max_attempts):
        try:
            verdict = classifier.classify(text, context)
        except ConfigurationException as e:
            logger.warning(f"Classifier not configured: {e.message}")
            return ClassificationOutcome(
                status=ClassificationStatus.CLEAN,
                attempts=attempt + 1,
                error=e.message,
            )
        except ExternalServiceException as e:
            last_error = e.message
            logger.warning(
                f"Classifier attempt {attempt + 1}/{max_attempts} failed: {e.message}"
            )
            if attempt < max_attempts - 1:
                sleep(base_delay * (2**attempt))
            continue

        status = (
            ClassificationStatus.VIOLATION
            if verdict.violation_detected
            else ClassificationStatus.CLEAN
        )
        return ClassificationOutcome(status=status, verdict=verdict, attempts=attempt + 1)

    logger.error(
        f"Classifier failed after {max_attempts} attempts; message passes unflagged",
        error=last_error,
    )
    return ClassificationOutcome(
        status=ClassificationStatus.EXHAUSTED,
        attempts=max_attempts,
        error=last_error,
    )
