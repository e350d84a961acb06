"""
Router for the punishment policy.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from repositories.database import get_db
from services import PunishmentPolicyService

router = APIRouter(prefix="/punishment-rules", tags=["punishment-rules"])


@router.get("", response_model=List[schemas.PunishmentRule])
def get_punishment_rules(
    db: Session = Depends(get_db),
) -> list[db_models.PunishmentRule]:
    """Get all punishment rules, lowest threshold first."""
    return PunishmentPolicyService.get_all_rules(db)


@router.post(
    "", response_model=schemas.PunishmentRule, status_code=status.HTTP_201_CREATED
)
def create_punishment_rule(
    rule_data: schemas.PunishmentRuleCreate, db: Session = Depends(get_db)
) -> db_models.PunishmentRule:
    """
    Create a punishment rule.

    Mute rules need a duration in minutes; bans are permanent.
    Existing users are not re-evaluated until recalculated.
    """
    return PunishmentPolicyService.create_rule(db, rule_data)


@router.put("/{rule_id}", response_model=schemas.PunishmentRule)
def update_punishment_rule(
    rule_id: int,
    rule_data: schemas.PunishmentRuleUpdate,
    db: Session = Depends(get_db),
) -> db_models.PunishmentRule:
    return PunishmentPolicyService.update_rule(db, rule_id, rule_data)


@router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_punishment_rule(rule_id: int, db: Session = Depends(get_db)) -> None:
    PunishmentPolicyService.delete_rule(db, rule_id)
