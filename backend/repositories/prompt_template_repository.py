"""
Repository for classifier prompt templates and their history.
"""

from typing import Optional

from sqlalchemy.orm import Session

from repositories.base import BaseRepository
from repositories.db_models import PromptHistory, PromptTemplate


class PromptTemplateRepository(BaseRepository[PromptTemplate]):
    """Repository for prompt template data access."""

    def __init__(self, db: Session):
        super().__init__(PromptTemplate, db)

    def get_all_recent_first(self) -> list[PromptTemplate]:
        """Get all templates, most recently updated first."""
        return (
            self.db.query(PromptTemplate)
            .order_by(PromptTemplate.updated_at.desc(), PromptTemplate.id.desc())
            .all()
        )

    def get_active(self) -> Optional[PromptTemplate]:
        """Get the active template (most recently updated if several slipped through)."""
        return (
            self.db.query(PromptTemplate)
            .filter(PromptTemplate.is_active.is_(True))
            .order_by(PromptTemplate.updated_at.desc(), PromptTemplate.id.desc())
            .first()
        )

    def deactivate_all(self) -> int:
        """Clear the active flag on every template. Does not commit."""
        return (
            self.db.query(PromptTemplate)
            .filter(PromptTemplate.is_active.is_(True))
            .update({PromptTemplate.is_active: False}, synchronize_session="fetch")
        )

    def add_history(self, template_id: int, system_prompt: str, reason: str) -> PromptHistory:
        """Append a history row. Does not commit."""
        entry = PromptHistory(
            template_id=template_id, system_prompt=system_prompt, reason=reason
        )
        self.db.add(entry)
        return entry

    def get_history(self, template_id: int) -> list[PromptHistory]:
        """Get a template's history, newest first."""
        return (
            self.db.query(PromptHistory)
            .filter(PromptHistory.template_id == template_id)
            .order_by(PromptHistory.created_at.desc(), PromptHistory.id.desc())
            .all()
        )
