"""
Intervention Selection

DETERMINISTIC ONLY. NO VARIATION.

Maps a risk tier to a fixed, reviewed message and action set. The user
profile only changes the order of the emergency resources shown.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from crisis_engine.safety.alerts import sms_uri, tel_uri
from crisis_engine.safety.models import (
    ActionType,
    InterventionAction,
    InterventionResponse,
    RiskTier,
    UserProfile,
)
from crisis_engine.safety.resources import (
    CRISIS_TEXT_KEYWORD,
    CRISIS_TEXT_NUMBER,
    EMERGENCY_NUMBER,
    PRIMARY_CRISIS_NUMBER,
    ResourceDirectory,
)
from crisis_engine.safety.risk_analyzer import RiskAssessment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InterventionPlan:
    """Static per-tier intervention content."""

    message: str
    actions: tuple[InterventionAction, ...]
    include_emergency: bool
    include_support: bool


# ==================================
# Actions
# ==================================

CALL_CRISIS_LINE = InterventionAction(
    type=ActionType.CALL,
    label="Call 988 Now",
    target=tel_uri(PRIMARY_CRISIS_NUMBER),
    urgent=True,
)
TEXT_CRISIS_LINE = InterventionAction(
    type=ActionType.TEXT,
    label="Text Crisis Line",
    target=sms_uri(CRISIS_TEXT_NUMBER, CRISIS_TEXT_KEYWORD),
    urgent=True,
)
CALL_EMERGENCY_SERVICES = InterventionAction(
    type=ActionType.EMERGENCY,
    label="Emergency Services",
    target=tel_uri(EMERGENCY_NUMBER),
    urgent=True,
)
CONTINUE_CHAT = InterventionAction(type=ActionType.CONTINUE_CHAT, label="Keep Talking")
VIEW_RESOURCES = InterventionAction(type=ActionType.RESOURCES, label="View Support Resources")
VIEW_COPING = InterventionAction(type=ActionType.COPING, label="Coping Strategies")
CALMING_EXERCISE = InterventionAction(type=ActionType.EXERCISE, label="Try Calming Exercise")


# ==================================
# Tier Table
# ==================================

INTERVENTIONS: dict[RiskTier, InterventionPlan] = {
    RiskTier.CRITICAL: InterventionPlan(
        message=(
            "I'm very concerned about what you're sharing. Your life has value, and there "
            "are people who want to help you right now. Please reach out for immediate "
            "support - you don't have to go through this alone."
        ),
        actions=(CALL_CRISIS_LINE, TEXT_CRISIS_LINE, CALL_EMERGENCY_SERVICES),
        include_emergency=True,
        include_support=False,
    ),
    RiskTier.HIGH: InterventionPlan(
        message=(
            "I hear that you're in significant distress right now. These feelings can be "
            "overwhelming, but support is available. Please consider reaching out to a "
            "crisis counselor who can provide immediate help."
        ),
        actions=(CALL_CRISIS_LINE, TEXT_CRISIS_LINE),
        include_emergency=True,
        include_support=False,
    ),
    RiskTier.MODERATE: InterventionPlan(
        message=(
            "It sounds like you're going through a really difficult time. Your feelings are "
            "valid, and it's important to get support. Would you like to talk about what's "
            "been most challenging?"
        ),
        actions=(CONTINUE_CHAT, VIEW_RESOURCES, VIEW_COPING),
        include_emergency=True,
        include_support=True,
    ),
    RiskTier.LOW: InterventionPlan(
        message=(
            "I notice you might be struggling with some difficult thoughts. It's okay to not "
            "be okay sometimes. Would you like to explore these feelings together or learn "
            "some coping strategies?"
        ),
        actions=(CONTINUE_CHAT, CALMING_EXERCISE, VIEW_RESOURCES),
        include_emergency=False,
        include_support=True,
    ),
}


class InterventionSelector:
    """Builds the intervention response for an assessment."""

    def __init__(self, directory: Optional[ResourceDirectory] = None):
        self.directory = directory or ResourceDirectory()

    def select(
        self,
        assessment: RiskAssessment,
        profile: Optional[UserProfile] = None,
    ) -> Optional[InterventionResponse]:
        """
        Select the intervention for an assessment.

        Args:
            assessment: Result of RiskAnalyzer.analyze
            profile: User profile, used only to order emergency resources

        Returns:
            InterventionResponse, or None when the tier is "none"
        """
        plan = INTERVENTIONS.get(assessment.tier)
        if plan is None:
            return None

        resources = []
        if plan.include_emergency:
            resources.extend(self.directory.get_emergency_resources(profile))
        if plan.include_support:
            resources.extend(self.directory.get_support_resources())

        logger.info(
            f"Intervention selected: tier={assessment.tier.value}, "
            f"resources={len(resources)}, actions={len(plan.actions)}"
        )

        return InterventionResponse(
            tier=assessment.tier,
            message=plan.message,
            resources=resources,
            actions=[action.model_copy() for action in plan.actions],
            confidence=assessment.confidence,
        )
