"""
Router for classifier prompt templates.
"""

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import models.schemas as schemas
import repositories.db_models as db_models
from repositories.database import get_db
from services import PromptTemplateService

router = APIRouter(prefix="/prompt-templates", tags=["prompt-templates"])


@router.get("", response_model=List[schemas.PromptTemplate])
def get_prompt_templates(
    db: Session = Depends(get_db),
) -> list[db_models.PromptTemplate]:
    """Get all templates, most recently updated first."""
    return PromptTemplateService.get_all_templates(db)


@router.get("/active", response_model=schemas.PromptTemplate)
def get_active_prompt_template(
    db: Session = Depends(get_db),
) -> db_models.PromptTemplate:
    """Get the template the classifier currently uses (503 when none)."""
    return PromptTemplateService.get_active_template(db)


@router.post(
    "", response_model=schemas.PromptTemplate, status_code=status.HTTP_201_CREATED
)
def create_prompt_template(
    template_data: schemas.PromptTemplateCreate, db: Session = Depends(get_db)
) -> db_models.PromptTemplate:
    """
    Create a template.

    Use ``{{RULES_LIST}}`` in the prompt where the rule catalog should be
    inserted.
    """
    return PromptTemplateService.create_template(db, template_data)


@router.put("/{template_id}", response_model=schemas.PromptTemplate)
def update_prompt_template(
    template_id: int,
    template_data: schemas.PromptTemplateUpdate,
    db: Session = Depends(get_db),
) -> db_models.PromptTemplate:
    """Edit a template; prompt changes are recorded in its history."""
    return PromptTemplateService.update_template(db, template_id, template_data)


@router.get("/{template_id}/history", response_model=List[schemas.PromptHistory])
def get_prompt_template_history(
    template_id: int, db: Session = Depends(get_db)
) -> list[db_models.PromptHistory]:
    return PromptTemplateService.get_history(db, template_id)


@router.post("/{template_id}/activate", response_model=schemas.PromptTemplate)
def activate_prompt_template(
    template_id: int, db: Session = Depends(get_db)
) -> db_models.PromptTemplate:
    """Make this the only active template."""
    return PromptTemplateService.activate_template(db, template_id)
