"""
Rule Catalog Service

Handles warning levels and the rules listed under them.
"""

from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from models.exceptions import (
    DuplicateWarningLevelException,
    RuleNotFoundException,
    WarningLevelInUseException,
    WarningLevelNotFoundException,
)
from repositories.rule_catalog_repository import RuleRepository, WarningLevelRepository
from repositories.warning_repository import WarningRepository


class RuleCatalogService:
    """
    Service for managing the rule catalog.

    Changing a level's points does not touch existing warnings; each warning
    keeps the points it was created with.
    """

    @staticmethod
    def get_all_levels(db: Session) -> list[db_models.WarningLevel]:
        return WarningLevelRepository(db).get_all_with_rules()

    @staticmethod
    def get_level(db: Session, level_id: int) -> db_models.WarningLevel:
        level = WarningLevelRepository(db).get_by_id(level_id)
        if level is None:
            raise WarningLevelNotFoundException(level_id)
        return level

    @staticmethod
    def _ensure_name_free(
        repo: WarningLevelRepository, name: str, level_id: int | None = None
    ) -> None:
        existing = repo.get_by_name(name)
        if existing is not None and existing.id != level_id:
            raise DuplicateWarningLevelException(name)

    @staticmethod
    def create_level(
        db: Session, data: schemas.WarningLevelCreate
    ) -> db_models.WarningLevel:
        """
        Create a warning level.

        Raises:
            DuplicateWarningLevelException: If the name is taken (any case)
        """
        repo = WarningLevelRepository(db)
        name = data.name.strip()
        RuleCatalogService._ensure_name_free(repo, name)

        level = db_models.WarningLevel(
            name=name,
            color=data.color,
            points=data.points,
            delete_message=data.delete_message,
            description=data.description,
            is_visible=data.is_visible,
        )
        return repo.create(level)

    @staticmethod
    def update_level(
        db: Session, level_id: int, data: schemas.WarningLevelUpdate
    ) -> db_models.WarningLevel:
        repo = WarningLevelRepository(db)
        level = RuleCatalogService.get_level(db, level_id)

        updates = data.model_dump(exclude_unset=True)
        if "name" in updates and updates["name"] is not None:
            updates["name"] = updates["name"].strip()
            RuleCatalogService._ensure_name_free(repo, updates["name"], level_id)

        for field, value in updates.items():
            if value is not None:
                setattr(level, field, value)
        return repo.update(level)

    @staticmethod
    def delete_level(db: Session, level_id: int) -> None:
        """
        Delete a level and its rules.

        Raises:
            WarningLevelNotFoundException: If the level does not exist
            WarningLevelInUseException: If any warning references the level
        """
        level = RuleCatalogService.get_level(db, level_id)
        warning_count = WarningRepository(db).count_by_level(level_id)
        if warning_count:
            raise WarningLevelInUseException(level_id, warning_count)
        WarningLevelRepository(db).delete(level)

    # Rules

    @staticmethod
    def get_rule(db: Session, rule_id: int) -> db_models.Rule:
        rule = RuleRepository(db).get_by_id(rule_id)
        if rule is None:
            raise RuleNotFoundException(rule_id)
        return rule

    @staticmethod
    def create_rule(
        db: Session, level_id: int, data: schemas.RuleCreate
    ) -> db_models.Rule:
        """Append a rule at the end of a level."""
        RuleCatalogService.get_level(db, level_id)
        repo = RuleRepository(db)

        rule = db_models.Rule(
            warning_level_id=level_id,
            name=data.name,
            description=data.description,
            is_visible=data.is_visible,
            order=repo.get_next_order(level_id),
        )
        return repo.create(rule)

    @staticmethod
    def update_rule(
        db: Session, rule_id: int, data: schemas.RuleUpdate
    ) -> db_models.Rule:
        rule = RuleCatalogService.get_rule(db, rule_id)
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                setattr(rule, field, value)
        return RuleRepository(db).update(rule)

    @staticmethod
    def delete_rule(db: Session, rule_id: int) -> None:
        rule = RuleCatalogService.get_rule(db, rule_id)
        RuleRepository(db).delete(rule)

    @staticmethod
    def reorder_rules(
        db: Session, level_id: int, data: schemas.RuleReorder
    ) -> list[db_models.Rule]:
        """
        Set the display order of rules within a level.

        Every id must belong to the level; nothing is written otherwise.

        Raises:
            WarningLevelNotFoundException: If the level does not exist
            RuleNotFoundException: If an id is unknown or in another level
        """
        RuleCatalogService.get_level(db, level_id)
        repo = RuleRepository(db)
        rules = {rule.id: rule for rule in repo.get_by_level(level_id)}

        for item in data.rules:
            if item.id not in rules:
                raise RuleNotFoundException(item.id)

        for item in data.rules:
            rules[item.id].order = item.order

        repo.commit()
        return repo.get_by_level(level_id)
