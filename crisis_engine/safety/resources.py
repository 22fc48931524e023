"""
Crisis Resource Directory

Static catalog of crisis and support resources, with profile-aware
ordering of the emergency list.
"""

import logging
from typing import Optional

from crisis_engine.safety.models import (
    CrisisResource,
    ResourceType,
    Specialty,
    UserProfile,
)

logger = logging.getLogger(__name__)


# ==================================
# Resource Catalog
# ==================================

EMERGENCY_RESOURCES: tuple[CrisisResource, ...] = (
    CrisisResource(
        id="suicide_prevention_lifeline",
        name="988 Suicide & Crisis Lifeline",
        contact="988",
        type=ResourceType.VOICE,
        priority=1,
        description="24/7 free and confidential crisis support",
        hours="24/7",
    ),
    CrisisResource(
        id="crisis_text_line",
        name="Crisis Text Line",
        contact="741741",
        keyword="HOME",
        type=ResourceType.TEXT,
        priority=2,
        description="Text HOME to 741741 for crisis counseling",
        hours="24/7",
    ),
    CrisisResource(
        id="emergency_services",
        name="Emergency Services",
        contact="911",
        type=ResourceType.EMERGENCY,
        priority=3,
        description="For immediate life-threatening emergencies",
    ),
    CrisisResource(
        id="trevor_project",
        name="The Trevor Project",
        contact="1-866-488-7386",
        type=ResourceType.VOICE,
        priority=4,
        specialty=Specialty.LGBTQ,
        description="24/7 crisis support for LGBTQ+ youth",
        hours="24/7",
    ),
    CrisisResource(
        id="veterans_crisis_line",
        name="Veterans Crisis Line",
        contact="1-800-273-8255",
        type=ResourceType.VOICE,
        priority=5,
        specialty=Specialty.VETERANS,
        description="Crisis support for veterans and their families",
        hours="24/7",
    ),
)

SUPPORT_RESOURCES: tuple[CrisisResource, ...] = (
    CrisisResource(
        id="samhsa_helpline",
        name="SAMHSA National Helpline",
        contact="1-800-662-4357",
        type=ResourceType.VOICE,
        priority=10,
        description="Treatment referral and information service",
        hours="24/7",
    ),
    CrisisResource(
        id="warm_line",
        name="Mental Health Warm Line",
        contact="https://warmline.org",
        type=ResourceType.RESOURCE,
        priority=11,
        description="Non-crisis peer support when you need someone to talk to",
    ),
    CrisisResource(
        id="online_chat",
        name="Crisis Chat",
        contact="https://988lifeline.org/chat",
        type=ResourceType.CHAT,
        priority=12,
        description="Online crisis chat support",
    ),
)

# Primary lines referenced by intervention actions and alerts
PRIMARY_CRISIS_NUMBER = "988"
CRISIS_TEXT_NUMBER = "741741"
CRISIS_TEXT_KEYWORD = "HOME"
EMERGENCY_NUMBER = "911"

MAX_EMERGENCY_RESOURCES = 5


class ResourceDirectory:
    """
    Read-only resource catalog.

    Usage:
        directory = ResourceDirectory()
        resources = directory.get_emergency_resources(profile)
    """

    def __init__(
        self,
        emergency_resources: tuple[CrisisResource, ...] = EMERGENCY_RESOURCES,
        support_resources: tuple[CrisisResource, ...] = SUPPORT_RESOURCES,
        limit: int = MAX_EMERGENCY_RESOURCES,
    ):
        self._emergency = tuple(emergency_resources)
        self._support = tuple(support_resources)
        self.limit = limit

    def get_emergency_resources(self, profile: Optional[UserProfile] = None) -> list[CrisisResource]:
        """
        Get emergency resources ordered for a user.

        Resources are sorted by priority; specialty resources matching the
        profile move to the front, keeping relative order otherwise.

        Args:
            profile: User profile (defaults apply when omitted)

        Returns:
            Top resources, most relevant first
        """
        resources = sorted(self._emergency, key=lambda r: r.priority)

        preferred = self._preferred_specialties(profile or UserProfile())
        if preferred:
            rank = {specialty: i for i, specialty in enumerate(preferred)}
            # sorted() is stable, so non-matching resources keep priority order
            resources = sorted(resources, key=lambda r: rank.get(r.specialty, len(rank)))
            logger.debug(f"Prioritized specialty resources: {[s.value for s in preferred]}")

        return resources[: self.limit]

    def get_support_resources(self) -> list[CrisisResource]:
        """Non-emergency resources. Not personalized."""
        return list(self._support)

    def get_resource(self, resource_id: str) -> Optional[CrisisResource]:
        for resource in self._emergency + self._support:
            if resource.id == resource_id:
                return resource
        return None

    @staticmethod
    def _preferred_specialties(profile: UserProfile) -> list[Specialty]:
        """Specialties to move to the front, most preferred first."""
        demographics = profile.demographics
        preferred = []
        if demographics.veteran:
            preferred.append(Specialty.VETERANS)
        if demographics.is_lgbtq_youth:
            preferred.append(Specialty.LGBTQ)
        return preferred
