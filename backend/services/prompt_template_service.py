"""
Service for classifier prompt templates.

At most one template is active. Every create or edit of a template's text
appends a history row so past prompts can be audited.
"""

from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import NoActivePromptException, PromptTemplateNotFoundException
from repositories.prompt_template_repository import PromptTemplateRepository
from repositories.rule_catalog_repository import RuleRepository

RULES_PLACEHOLDER = "{{RULES_LIST}}"


class PromptTemplateService:
    """Service for prompt template operations."""

    @staticmethod
    def get_all_templates(db: Session) -> list[db_models.PromptTemplate]:
        return PromptTemplateRepository(db).get_all_recent_first()

    @staticmethod
    def get_template(db: Session, template_id: int) -> db_models.PromptTemplate:
        template = PromptTemplateRepository(db).get_by_id(template_id)
        if template is None:
            raise PromptTemplateNotFoundException(template_id)
        return template

    @staticmethod
    def get_active_template(db: Session) -> db_models.PromptTemplate:
        """
        Get the active template.

        Raises:
            NoActivePromptException: If no template is active
        """
        template = PromptTemplateRepository(db).get_active()
        if template is None:
            raise NoActivePromptException()
        return template

    @staticmethod
    def create_template(
        db: Session, data: schemas.PromptTemplateCreate
    ) -> db_models.PromptTemplate:
        """
        Create a template and record its first history entry.

        Activating the new template deactivates every other one.
        """
        repo = PromptTemplateRepository(db)
        if data.is_active:
            repo.deactivate_all()

        template = db_models.PromptTemplate(
            name=data.name, system_prompt=data.system_prompt, is_active=data.is_active
        )
        repo.add(template)
        repo.flush()
        repo.add_history(template.id, data.system_prompt, data.reason)
        repo.commit()
        repo.refresh(template)
        return template

    @staticmethod
    def update_template(
        db: Session, template_id: int, data: schemas.PromptTemplateUpdate
    ) -> db_models.PromptTemplate:
        """
        Edit a template's name or text.

        A history row is appended only when the prompt text changes.

        Raises:
            PromptTemplateNotFoundException: If the template does not exist
        """
        repo = PromptTemplateRepository(db)
        template = PromptTemplateService.get_template(db, template_id)

        if data.name is not None:
            template.name = data.name
        if data.system_prompt is not None and data.system_prompt != template.system_prompt:
            template.system_prompt = data.system_prompt
            repo.add_history(template.id, data.system_prompt, data.reason)

        repo.commit()
        repo.refresh(template)
        return template

    @staticmethod
    def activate_template(db: Session, template_id: int) -> db_models.PromptTemplate:
        """Make a template the only active one."""
        repo = PromptTemplateRepository(db)
        template = PromptTemplateService.get_template(db, template_id)

        repo.deactivate_all()
        template.is_active = True
        repo.commit()
        repo.refresh(template)
        return template

    @staticmethod
    def get_history(db: Session, template_id: int) -> list[db_models.PromptHistory]:
        PromptTemplateService.get_template(db, template_id)
        return PromptTemplateRepository(db).get_history(template_id)

    @staticmethod
    def format_rules_list(db: Session) -> str:
        """One line per rule, in id order, naming the rule's warning level."""
        return "\n".join(
            f"Rule {rule.id}: {rule.name} - {rule.description} "
            f"(Warning Level: {rule.level.name})"
            for rule in RuleRepository(db).get_all_with_levels()
        )

    @staticmethod
    def build_system_prompt(db: Session) -> str:
        """
        Render the active template with the current rule catalog.

        Raises:
            NoActivePromptException: If no template is active
        """
        template = PromptTemplateService.get_active_template(db)
        return template.system_prompt.replace(
            RULES_PLACEHOLDER, PromptTemplateService.format_rules_list(db)
        )
