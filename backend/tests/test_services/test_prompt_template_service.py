"""
Unit tests for PromptTemplateService.
"""

import pytest

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import NoActivePromptException, PromptTemplateNotFoundException
from services.prompt_template_service import PromptTemplateService


class TestPromptTemplateService:
    """Tests for PromptTemplateService"""

    def test_create_records_history(self, db_session):
        template = PromptTemplateService.create_template(
            db_session,
            schemas.PromptTemplateCreate(name="v1", system_prompt="Judge: {{RULES_LIST}}"),
        )

        history = PromptTemplateService.get_history(db_session, template.id)
        assert len(history) == 1
        assert history[0].reason == "Initial version"
        assert history[0].system_prompt == "Judge: {{RULES_LIST}}"

    def test_only_one_active(self, db_session):
        """Should deactivate other templates when a new one is activated."""
        first = PromptTemplateService.create_template(
            db_session,
            schemas.PromptTemplateCreate(name="v1", system_prompt="a", is_active=True),
        )
        second = PromptTemplateService.create_template(
            db_session,
            schemas.PromptTemplateCreate(name="v2", system_prompt="b", is_active=True),
        )

        db_session.refresh(first)
        assert first.is_active is False
        assert PromptTemplateService.get_active_template(db_session).id == second.id

        PromptTemplateService.activate_template(db_session, first.id)

        db_session.refresh(second)
        assert second.is_active is False
        assert PromptTemplateService.get_active_template(db_session).id == first.id

    def test_no_active_template(self, db_session):
        with pytest.raises(NoActivePromptException):
            PromptTemplateService.get_active_template(db_session)

    def test_update_text_appends_history(self, db_session, active_prompt):
        PromptTemplateService.update_template(
            db_session,
            active_prompt.id,
            schemas.PromptTemplateUpdate(
                system_prompt="Stricter: {{RULES_LIST}}", reason="Too lenient"
            ),
        )

        history = PromptTemplateService.get_history(db_session, active_prompt.id)
        assert [entry.reason for entry in history] == ["Too lenient"]

    def test_rename_keeps_history(self, db_session, active_prompt):
        """Should not add history when only the name changes."""
        template = PromptTemplateService.update_template(
            db_session,
            active_prompt.id,
            schemas.PromptTemplateUpdate(name="Renamed", reason="rename"),
        )

        assert template.name == "Renamed"
        assert PromptTemplateService.get_history(db_session, active_prompt.id) == []

    def test_missing_template(self, db_session):
        with pytest.raises(PromptTemplateNotFoundException):
            PromptTemplateService.activate_template(db_session, 5)

    def test_build_system_prompt(self, db_session, levels, active_prompt):
        db_session.add_all(
            [
                db_models.Rule(
                    warning_level_id=levels["yellow"].id,
                    name="No spam",
                    description="Do not flood channels",
                ),
                db_models.Rule(
                    warning_level_id=levels["red"].id,
                    name="No threats",
                    description="Never threaten members",
                ),
            ]
        )
        db_session.commit()

        prompt = PromptTemplateService.build_system_prompt(db_session)

        assert prompt.startswith("Rules:\nRule ")
        assert "No spam - Do not flood channels (Warning Level: yellow)" in prompt
        assert "No threats - Never threaten members (Warning Level: red)" in prompt
        assert prompt.endswith("Answer in JSON.")
