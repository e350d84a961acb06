from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional, List
from repositories.db_models import PunishmentType


# Rule Schemas
class RuleBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    is_visible: bool = True


class RuleCreate(RuleBase):
    pass


class RuleUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, min_length=1)
    is_visible: Optional[bool] = None


class Rule(RuleBase):
    id: int
    warning_level_id: int
    order: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RuleOrderItem(BaseModel):
    id: int
    order: int = Field(..., ge=0)


class RuleReorder(BaseModel):
    rules: List[RuleOrderItem] = Field(..., min_length=1)


# Warning Level Schemas
class WarningLevelBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field(..., min_length=1, max_length=30)
    points: int = Field(..., ge=1)
    delete_message: bool = False
    description: str = Field(..., min_length=1)
    is_visible: bool = True


class WarningLevelCreate(WarningLevelBase):
    pass


class WarningLevelUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    color: Optional[str] = Field(None, min_length=1, max_length=30)
    points: Optional[int] = Field(None, ge=1)
    delete_message: Optional[bool] = None
    description: Optional[str] = Field(None, min_length=1)
    is_visible: Optional[bool] = None


class WarningLevel(WarningLevelBase):
    id: int
    created_at: datetime
    updated_at: datetime
    rules: List[Rule] = []

    model_config = ConfigDict(from_attributes=True)


# Punishment Rule Schemas
class PunishmentRuleBase(BaseModel):
    punishment_type: PunishmentType
    point_threshold: int = Field(..., ge=1)
    duration: Optional[int] = Field(
        None, ge=1, description="Mute length in minutes; omitted for bans"
    )
    is_active: bool = True


class PunishmentRuleCreate(PunishmentRuleBase):
    pass


class PunishmentRuleUpdate(BaseModel):
    punishment_type: Optional[PunishmentType] = None
    point_threshold: Optional[int] = Field(None, ge=1)
    duration: Optional[int] = Field(None, ge=1)
    is_active: Optional[bool] = None


class PunishmentRule(PunishmentRuleBase):
    id: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Prompt Template Schemas
class PromptTemplateCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    system_prompt: str = Field(..., min_length=1)
    is_active: bool = False
    reason: str = Field("Initial version", min_length=1, max_length=500)


class PromptTemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    system_prompt: Optional[str] = Field(None, min_length=1)
    reason: str = Field(..., min_length=1, max_length=500)


class PromptTemplate(BaseModel):
    id: int
    name: str
    system_prompt: str
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PromptHistory(BaseModel):
    id: int
    template_id: int
    system_prompt: str
    reason: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Warning Ledger Schemas
class ContextMessage(BaseModel):
    author: str = Field(..., max_length=100)
    content: str = Field(..., max_length=4000)


class WarningLevelSummary(BaseModel):
    id: int
    name: str
    color: str

    model_config = ConfigDict(from_attributes=True)


class WarningEntry(BaseModel):
    id: int
    user_id: str
    username: str
    level: WarningLevelSummary
    points: int
    rule_triggered: str
    message_content: str
    message_context: List[ContextMessage] = []
    channel_id: Optional[str] = None
    created_at: datetime
    message_deleted: bool
    ignored: bool
    ignored_at: Optional[datetime] = None
    ignored_by: Optional[str] = None
    ignore_reason: Optional[str] = None


class IgnoredWarning(WarningEntry):
    """An ignored warning with the lifts it caused on the platform."""

    new_total: int
    lifted: List[PunishmentType] = []
    punishment_executed: Optional[bool] = None
    execution_error: Optional[str] = None


class IgnoreWarningRequest(BaseModel):
    reviewer_id: str = Field(..., min_length=1, max_length=32)
    reason: str = Field(..., min_length=1, max_length=1000)


# Moderated User Schemas
class ModeratedUser(BaseModel):
    id: str
    username: str
    total_points: int
    is_banned: bool
    is_muted: bool
    mute_expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class UserStatusChange(ModeratedUser):
    """A user after recalculation or reset, with the platform results."""

    previous_total: int
    granted: List[PunishmentType] = []
    lifted: List[PunishmentType] = []
    punishment_executed: Optional[bool] = None
    execution_error: Optional[str] = None


class ModeratedUserWithCounts(ModeratedUser):
    warning_count: int = 0
    active_warnings: int = 0


class Punishment(BaseModel):
    id: int
    user_id: str
    punishment_type: PunishmentType
    reason: str
    duration: Optional[int] = None
    created_at: datetime
    expires_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


# Moderation Pipeline Schemas
class ModerationTestRequest(BaseModel):
    user_id: str = Field(..., min_length=1, max_length=32)
    username: str = Field(..., min_length=1, max_length=100)
    content: str = Field(..., min_length=1, max_length=4000)
    context: List[ContextMessage] = Field(default_factory=list, max_length=20)
    channel_id: Optional[str] = Field(None, max_length=32)


class MessageOutcome(BaseModel):
    violation: bool
    classification_status: str
    level_applied: Optional[str] = None
    delete_message: bool = False
    explanation: Optional[str] = None
    warning_id: Optional[int] = None
    points_added: int = 0
    new_total: Optional[int] = None
    punishment_applied: Optional[PunishmentType] = None
    punishment_executed: Optional[bool] = None
    execution_error: Optional[str] = None
    configuration_error: Optional[str] = None


# Health
class HealthStatus(BaseModel):
    status: str
    database: str
    scheduler: dict
