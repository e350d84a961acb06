"""
Router for the rule catalog: warning levels and their rules.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from repositories.database import get_db
from services import RuleCatalogService

router = APIRouter(tags=["rule-catalog"])


@router.get("/warning-levels", response_model=List[schemas.WarningLevel])
def get_warning_levels(db: Session = Depends(get_db)) -> list[db_models.WarningLevel]:
    """
    Get all warning levels, lowest points first, each with its rules.

    Levels are few in number, so pagination is not needed.
    """
    return RuleCatalogService.get_all_levels(db)


@router.post(
    "/warning-levels",
    response_model=schemas.WarningLevel,
    status_code=status.HTTP_201_CREATED,
)
def create_warning_level(
    level_data: schemas.WarningLevelCreate, db: Session = Depends(get_db)
) -> db_models.WarningLevel:
    """Create a warning level. Names are unique regardless of case."""
    return RuleCatalogService.create_level(db, level_data)


@router.put("/warning-levels/{level_id}", response_model=schemas.WarningLevel)
def update_warning_level(
    level_id: int,
    level_data: schemas.WarningLevelUpdate,
    db: Session = Depends(get_db),
) -> db_models.WarningLevel:
    """
    Update a warning level.

    Existing warnings keep the points they were created with.
    """
    return RuleCatalogService.update_level(db, level_id, level_data)


@router.delete("/warning-levels/{level_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_warning_level(level_id: int, db: Session = Depends(get_db)) -> None:
    """Delete a warning level; refused while warnings reference it."""
    RuleCatalogService.delete_level(db, level_id)


@router.post(
    "/warning-levels/{level_id}/rules",
    response_model=schemas.Rule,
    status_code=status.HTTP_201_CREATED,
)
def create_rule(
    level_id: int, rule_data: schemas.RuleCreate, db: Session = Depends(get_db)
) -> db_models.Rule:
    """Add a rule at the end of a level."""
    return RuleCatalogService.create_rule(db, level_id, rule_data)


@router.put(
    "/warning-levels/{level_id}/rules/reorder", response_model=List[schemas.Rule]
)
def reorder_rules(
    level_id: int, reorder: schemas.RuleReorder, db: Session = Depends(get_db)
) -> list[db_models.Rule]:
    """Set the display order of a level's rules."""
    return RuleCatalogService.reorder_rules(db, level_id, reorder)


@router.put("/rules/{rule_id}", response_model=schemas.Rule)
def update_rule(
    rule_id: int, rule_data: schemas.RuleUpdate, db: Session = Depends(get_db)
) -> db_models.Rule:
    """Update a rule."""
    return RuleCatalogService.update_rule(db, rule_id, rule_data)


@router.delete("/rules/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_rule(rule_id: int, db: Session = Depends(get_db)) -> None:
    RuleCatalogService.delete_rule(db, rule_id)
