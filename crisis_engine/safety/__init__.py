"""
Crisis Safety Module

Provides crisis risk analysis, intervention selection, crisis resources,
safety plans, the crisis/action logs, statistics and provider reporting.
"""

from crisis_engine.safety.models import (
    # Enums
    RiskTier,
    ResourceType,
    Specialty,
    ActionType,

    # Models
    CrisisResource,
    InterventionAction,
    InterventionResponse,
    Demographics,
    UserProfile,
    EmergencyContact,
    SafetyPlan,
    CrisisEvent,
    EmergencyAction,
    IndicatorCount,
    Statistics,
    FollowUp,
    ProviderReport,
)

from crisis_engine.safety.lexicon import (
    LexiconConfig,
    LexiconError,
    load_lexicon,
    get_default_lexicon,
)

from crisis_engine.safety.risk_analyzer import (
    RiskAnalyzer,
    RiskAssessment,
    classify_tier,
)

from crisis_engine.safety.resources import (
    ResourceDirectory,
    EMERGENCY_RESOURCES,
    SUPPORT_RESOURCES,
)

from crisis_engine.safety.intervention import (
    InterventionSelector,
    INTERVENTIONS,
)

from crisis_engine.safety.alerts import (
    ActionInvoker,
    AlertPresenter,
    AlertToken,
    CrisisAlert,
    HeadlessActionInvoker,
    PlatformActionError,
    PlatformActionResult,
    PlatformActions,
    build_crisis_alert,
    sms_uri,
    tel_uri,
)

from crisis_engine.safety.safety_plan import SafetyPlanStore

from crisis_engine.safety.event_log import EventLog

from crisis_engine.safety.statistics import compute_statistics

from crisis_engine.safety.reporting import (
    FollowUpScheduler,
    anonymize_event,
    prepare_provider_report,
    provider_recommendations,
)

from crisis_engine.safety.service import (
    CrisisService,
    build_crisis_service,
)

__all__ = [
    # Enums
    "RiskTier",
    "ResourceType",
    "Specialty",
    "ActionType",

    # Models
    "CrisisResource",
    "InterventionAction",
    "InterventionResponse",
    "Demographics",
    "UserProfile",
    "EmergencyContact",
    "SafetyPlan",
    "CrisisEvent",
    "EmergencyAction",
    "IndicatorCount",
    "Statistics",
    "FollowUp",
    "ProviderReport",

    # Lexicon
    "LexiconConfig",
    "LexiconError",
    "load_lexicon",
    "get_default_lexicon",

    # Risk Analyzer
    "RiskAnalyzer",
    "RiskAssessment",
    "classify_tier",

    # Resources
    "ResourceDirectory",
    "EMERGENCY_RESOURCES",
    "SUPPORT_RESOURCES",

    # Intervention
    "InterventionSelector",
    "INTERVENTIONS",

    # Alerts & Platform Actions
    "ActionInvoker",
    "AlertPresenter",
    "AlertToken",
    "CrisisAlert",
    "HeadlessActionInvoker",
    "PlatformActionError",
    "PlatformActionResult",
    "PlatformActions",
    "build_crisis_alert",
    "sms_uri",
    "tel_uri",

    # Persistence
    "SafetyPlanStore",
    "EventLog",

    # Statistics & Reporting
    "compute_statistics",
    "FollowUpScheduler",
    "anonymize_event",
    "prepare_provider_report",
    "provider_recommendations",

    # Service
    "CrisisService",
    "build_crisis_service",
]
