"""
Router for moderated users.
"""

from typing import Any, List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from helpers.pagination import PaginationLimit, PaginationLimitLarge, PaginationSkip
from repositories.database import get_db
from services import LedgerService, ScoringService
from services.punishment_executor import PunishmentExecutor, get_default_executor

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=List[schemas.ModeratedUserWithCounts])
def get_users(
    skip: PaginationSkip = 0,
    limit: PaginationLimitLarge = 100,
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    """Get users with the most points first, with warning counts."""
    return LedgerService.list_users(db, skip=skip, limit=limit)


@router.get("/{user_id}", response_model=schemas.ModeratedUser)
def get_user(user_id: str, db: Session = Depends(get_db)) -> db_models.ModeratedUser:
    return LedgerService.get_user(db, user_id)


@router.get("/{user_id}/punishments", response_model=List[schemas.Punishment])
def get_user_punishments(
    user_id: str,
    skip: PaginationSkip = 0,
    limit: PaginationLimit = 50,
    db: Session = Depends(get_db),
) -> list[db_models.Punishment]:
    """Get the punishments decided for a user, newest first."""
    return LedgerService.get_user_punishments(db, user_id, skip=skip, limit=limit)


@router.post("/{user_id}/recalculate", response_model=schemas.UserStatusChange)
def recalculate_user(
    user_id: str,
    db: Session = Depends(get_db),
    executor: PunishmentExecutor = Depends(get_default_executor),
) -> dict[str, Any]:
    """
    Rebuild a user's total and status from their warnings.

    Uses the punishment rules as they are now, so it can grant as well as
    lift punishments. Platform failures are reported in ``execution_error``.
    """
    outcome = ScoringService.recalculate(db, user_id, executor=executor)
    return LedgerService.serialize_status_change(outcome)


@router.post("/{user_id}/reset-warnings", response_model=schemas.UserStatusChange)
def reset_user_warnings(
    user_id: str,
    db: Session = Depends(get_db),
    executor: PunishmentExecutor = Depends(get_default_executor),
) -> dict[str, Any]:
    """Ignore all of a user's warnings and clear their punishments."""
    outcome = ScoringService.reset_warnings(db, user_id, executor=executor)
    return LedgerService.serialize_status_change(outcome)
