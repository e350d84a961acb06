"""
Unit tests for ModerationService (classifier -> scoring -> executor).
"""

from conftest import FakeClassifier, violation
from models.exceptions import ClassifierUnavailableException, NoActivePromptException
from repositories.db_models import ModeratedUser, ModerationWarning, PunishmentType
from services.classifier import ClassifierVerdict
from services.moderation_service import ModerationService

CONTEXT = [
    {"author": "alice", "content": "anyone up for a game?"},
    {"author": "bob", "content": "sure"},
]


def handle(db, classifier, executor, content="you are trash", user_id="555"):
    return ModerationService.handle_message(
        db,
        user_id=user_id,
        username="troll",
        content=content,
        context_messages=CONTEXT,
        channel_id="777",
        classifier=classifier,
        executor=executor,
    )


class TestHandleMessage:
    """Tests for ModerationService.handle_message"""

    def test_violation_records_warning(self, db_session, levels, punishment_rules, executor):
        """Should record a warning and tell the connector to delete the message."""
        classifier = FakeClassifier(violation("orange", "Insult"))

        outcome = handle(db_session, classifier, executor)

        assert outcome.violation is True
        assert outcome.classification_status == "violation"
        assert outcome.level_applied == "orange"
        assert outcome.delete_message is True
        assert outcome.explanation == "Insult"
        assert outcome.points_added == 3
        assert outcome.new_total == 3
        assert outcome.punishment_applied is None

        warning = db_session.get(ModerationWarning, outcome.warning_id)
        assert warning.rule_triggered == "Insult"
        assert warning.message_content == "you are trash"
        assert warning.message_context == CONTEXT
        assert warning.channel_id == "777"
        assert classifier.calls == [("you are trash", CONTEXT)]

    def test_violation_triggers_punishment(
        self, db_session, levels, punishment_rules, executor
    ):
        outcome = handle(db_session, FakeClassifier(violation("red")), executor)

        assert outcome.punishment_applied == PunishmentType.MUTE
        assert outcome.punishment_executed is True
        assert executor.calls[0][:3] == ("apply", "555", PunishmentType.MUTE)

    def test_clean_message(self, db_session, levels, executor):
        outcome = handle(db_session, FakeClassifier(ClassifierVerdict.clean()), executor)

        assert outcome.violation is False
        assert outcome.classification_status == "clean"
        assert outcome.configuration_error is None
        assert db_session.get(ModeratedUser, "555") is None

    def test_exhausted_classifier_passes_message(self, db_session, levels, executor):
        """Should let the message through once every attempt failed."""
        classifier = FakeClassifier(ClassifierUnavailableException("timeout"))

        outcome = handle(db_session, classifier, executor)

        assert outcome.violation is False
        assert outcome.classification_status == "exhausted"
        assert outcome.configuration_error is None
        assert db_session.query(ModerationWarning).count() == 0

    def test_no_active_prompt_is_reported(self, db_session, levels, executor):
        outcome = handle(db_session, FakeClassifier(NoActivePromptException()), executor)

        assert outcome.violation is False
        assert outcome.configuration_error == "No active prompt template configured"

    def test_unknown_level_is_not_recorded(self, db_session, levels, executor):
        """Should log and pass through when the classifier invents a level."""
        outcome = handle(db_session, FakeClassifier(violation("purple")), executor)

        assert outcome.violation is False
        assert outcome.classification_status == "violation"
        assert outcome.configuration_error == "Unknown warning level 'purple'"
        assert db_session.query(ModerationWarning).count() == 0

    def test_non_string_level_is_not_recorded(self, db_session, levels, executor):
        """Should degrade instead of raising when a classifier returns a bad level."""
        verdict = ClassifierVerdict(violation_detected=True, level_name=3)

        outcome = handle(db_session, FakeClassifier(verdict), executor)

        assert outcome.violation is False
        assert outcome.configuration_error == "Unknown warning level '3'"
        assert db_session.query(ModerationWarning).count() == 0

    def test_failed_execution_is_reported(
        self, db_session, levels, punishment_rules, failing_executor
    ):
        outcome = handle(db_session, FakeClassifier(violation("red")), failing_executor)

        assert outcome.punishment_applied == PunishmentType.MUTE
        assert outcome.punishment_executed is False
        assert outcome.execution_error is not None
        assert db_session.get(ModeratedUser, "555").is_muted is True

    def test_to_dict(self, db_session, levels, executor):
        outcome = handle(db_session, FakeClassifier(violation("yellow")), executor)

        data = outcome.to_dict()

        assert data["violation"] is True
        assert data["level_applied"] == "yellow"
        assert data["delete_message"] is False
        assert data["new_total"] == 1
