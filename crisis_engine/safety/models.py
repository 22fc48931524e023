"""
Crisis engine data models.

Pydantic models for intervention responses, crisis resources, user
profiles, safety plans, the crisis/action logs and derived statistics.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utcnow() -> datetime:
    """Get current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ==================================
# Enums
# ==================================

class RiskTier(str, Enum):
    """Discrete crisis risk classification."""
    NONE = "none"
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def requires_immediate(self) -> bool:
        """High and critical tiers need immediate intervention."""
        return self in (RiskTier.HIGH, RiskTier.CRITICAL)


class ResourceType(str, Enum):
    """How a crisis resource is reached."""
    VOICE = "voice"
    TEXT = "text"
    EMERGENCY = "emergency"
    CHAT = "chat"
    RESOURCE = "resource"


class Specialty(str, Enum):
    """Populations a resource is tailored to."""
    LGBTQ = "lgbtq"
    VETERANS = "veterans"


class ActionType(str, Enum):
    """Actions offered alongside an intervention."""
    CALL = "call"
    TEXT = "text"
    EMERGENCY = "emergency"
    CONTINUE_CHAT = "continue_chat"
    RESOURCES = "resources"
    COPING = "coping"
    EXERCISE = "exercise"


# ==================================
# Resource & Intervention Models
# ==================================

class CrisisResource(BaseModel):
    """A crisis or support resource from the static catalog."""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    contact: str = Field(description="Phone number, SMS short code or URL")
    type: ResourceType
    priority: int
    specialty: Optional[Specialty] = None
    keyword: Optional[str] = Field(default=None, description="SMS keyword for text lines")
    description: str = ""
    hours: Optional[str] = None
    country: str = "US"


class InterventionAction(BaseModel):
    """An action the UI can offer. target is a tel:/sms: URI for platform actions."""
    type: ActionType
    label: str
    target: Optional[str] = None
    urgent: bool = False


class InterventionResponse(BaseModel):
    """Message, resources and actions selected for a non-"none" tier."""
    tier: RiskTier
    message: str
    resources: list[CrisisResource] = Field(default_factory=list)
    actions: list[InterventionAction] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=utcnow)

    @property
    def urgent_actions(self) -> list[InterventionAction]:
        return [action for action in self.actions if action.urgent]


# ==================================
# User Profile
# ==================================

class Demographics(BaseModel):
    """
    Optional demographic flags used only to reorder resources.

    Defaults: unknown age, not LGBTQ+, not a veteran.
    """
    age: Optional[int] = Field(default=None, ge=0)
    lgbtq: bool = False
    veteran: bool = False

    YOUTH_AGE_LIMIT: ClassVar[int] = 25

    @property
    def is_lgbtq_youth(self) -> bool:
        return self.lgbtq and self.age is not None and self.age < self.YOUTH_AGE_LIMIT


class UserProfile(BaseModel):
    """Caller-supplied profile. Every field is optional."""
    id: Optional[str] = None
    session_id: Optional[str] = None
    demographics: Demographics = Field(default_factory=Demographics)


# ==================================
# Safety Plan
# ==================================

SAFETY_PLAN_SECTIONS = (
    "warning_signs_personal",
    "warning_signs_environmental",
    "coping_strategies",
    "social_supports",
    "professional_contacts",
    "safe_environment",
    "emergency_contacts",
)


class EmergencyContact(BaseModel):
    """A person or service to contact in an emergency."""
    name: str
    number: str
    type: str = "personal"


class SafetyPlan(BaseModel):
    """User-authored, versioned safety plan."""
    model_config = ConfigDict(extra="ignore")

    warning_signs_personal: list[str] = Field(default_factory=list)
    warning_signs_environmental: list[str] = Field(default_factory=list)
    coping_strategies: list[str] = Field(default_factory=list)
    social_supports: list[str] = Field(default_factory=list)
    professional_contacts: list[str] = Field(default_factory=list)
    safe_environment: list[str] = Field(default_factory=list)
    emergency_contacts: list[EmergencyContact] = Field(default_factory=list)

    version: int = Field(default=1, ge=1)
    created_at: datetime = Field(default_factory=utcnow)
    last_updated: datetime = Field(default_factory=utcnow)

    def sections(self) -> dict[str, list]:
        """Section name -> entries, without metadata."""
        return {name: getattr(self, name) for name in SAFETY_PLAN_SECTIONS}


# ==================================
# Log Records
# ==================================

class CrisisEvent(BaseModel):
    """Summary of one analyzed message. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utcnow)
    tier: RiskTier
    confidence: float = Field(ge=0.0, le=1.0)
    indicators: list[str] = Field(default_factory=list)
    user_id: str = "anonymous"
    session_id: Optional[str] = None
    responded: bool = False

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)


class EmergencyAction(BaseModel):
    """A platform action (call, text) the user took or attempted."""
    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(default_factory=utcnow)
    type: str
    target: str
    successful: bool = True

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        return as_utc(value)


# ==================================
# Statistics
# ==================================

class IndicatorCount(BaseModel):
    """How often an indicator appeared across logged events."""
    indicator: str
    count: int


class Statistics(BaseModel):
    """Aggregate metrics derived from the crisis and action logs."""
    total_crisis_events: int = 0
    recent_crisis_events: int = 0
    total_emergency_actions: int = 0
    recent_emergency_actions: int = 0
    risk_level_distribution: dict[str, int] = Field(
        default_factory=lambda: {tier.value: 0 for tier in RiskTier}
    )
    top_indicators: list[IndicatorCount] = Field(default_factory=list)
    response_rate: float = Field(default=1.0, ge=0.0, le=1.0)


# ==================================
# Provider Reporting
# ==================================

class FollowUp(BaseModel):
    """A scheduled follow-up after a crisis."""
    id: str
    type: str = "crisis_followup"
    scheduled_time: datetime
    provider: str = "crisis_team"
    priority: str = "high"
    notes: str = ""
    reminder_set: bool = True
    created_at: datetime = Field(default_factory=utcnow)


class ProviderReport(BaseModel):
    """Anonymized crisis summary prepared for a healthcare provider."""
    crisis_events: list[dict]
    intervention_history: list[dict] = Field(default_factory=list)
    risk_assessment: dict
    recommendations: list[str] = Field(default_factory=list)
    report_generated: datetime = Field(default_factory=utcnow)
