"""
Repository pattern implementation for data access layer.
"""

from .base import BaseRepository
from .prompt_template_repository import PromptTemplateRepository
from .punishment_repository import PunishmentRepository, PunishmentRuleRepository
from .rule_catalog_repository import RuleRepository, WarningLevelRepository
from .user_repository import UserRepository
from .warning_repository import WarningRepository

__all__ = [
    "BaseRepository",
    "PromptTemplateRepository",
    "PunishmentRepository",
    "PunishmentRuleRepository",
    "RuleRepository",
    "WarningLevelRepository",
    "UserRepository",
    "WarningRepository",
]
