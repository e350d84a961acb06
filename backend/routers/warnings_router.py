"""
Router for the warning ledger.
"""

from typing import Any, List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

import models.schemas as schemas
from helpers.pagination import PaginationLimitLarge, PaginationSkip
from repositories.database import get_db
from services import LedgerService, ScoringService
from services.punishment_executor import PunishmentExecutor, get_default_executor

router = APIRouter(prefix="/warnings", tags=["warnings"])


@router.get("", response_model=List[schemas.WarningEntry])
def get_warnings(
    user_id: Optional[str] = Query(None, description="Only this user's warnings"),
    include_ignored: bool = Query(True),
    skip: PaginationSkip = 0,
    limit: PaginationLimitLarge = 100,
    db: Session = Depends(get_db),
) -> list[dict[str, Any]]:
    """Get warnings newest first, with the user's name and the level."""
    return LedgerService.list_warnings(
        db, user_id=user_id, include_ignored=include_ignored, skip=skip, limit=limit
    )


@router.post("/{warning_id}/ignore", response_model=schemas.IgnoredWarning)
def ignore_warning(
    warning_id: int,
    review: schemas.IgnoreWarningRequest,
    db: Session = Depends(get_db),
    executor: PunishmentExecutor = Depends(get_default_executor),
) -> dict[str, Any]:
    """
    Ignore a warning after review.

    Removes its points from the user's total and lifts a ban or mute the
    new total no longer justifies. A warning can only be ignored once (409).
    A failed unban or timeout removal is reported in ``execution_error``.
    """
    outcome = ScoringService.ignore_warning(
        db,
        warning_id=warning_id,
        reviewer_id=review.reviewer_id,
        reason=review.reason,
        executor=executor,
    )
    return LedgerService.serialize_ignored(outcome)
