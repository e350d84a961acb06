"""
Services layer for business logic.

This package contains service modules that encapsulate business logic
separate from the API routes.
"""

from .rule_catalog_service import RuleCatalogService
from .punishment_policy_service import PunishmentPolicyService
from .prompt_template_service import PromptTemplateService
from .ledger_service import LedgerService
from .scoring_service import ScoringService
from .moderation_service import ModerationService

__all__ = [
    "RuleCatalogService",
    "PunishmentPolicyService",
    "PromptTemplateService",
    "LedgerService",
    "ScoringService",
    "ModerationService",
]
