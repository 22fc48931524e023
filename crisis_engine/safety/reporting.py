"""
Provider Reporting & Follow-Ups

Anonymized crisis summaries for healthcare providers and scheduling of
post-crisis follow-ups (stored under `scheduled_followups`).
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Optional
from uuid import uuid4

from pydantic import ValidationError

from crisis_engine.infra.storage import KeyValueStore, StorageError, StorageResult
from crisis_engine.safety.models import (
    CrisisEvent,
    EmergencyAction,
    FollowUp,
    ProviderReport,
    RiskTier,
    utcnow,
)

logger = logging.getLogger(__name__)

FOLLOW_UPS_KEY = "scheduled_followups"
DEFAULT_FOLLOW_UP_DELAY = timedelta(hours=24)

# Fields removed before data leaves the device/service
IDENTIFYING_FIELDS = ("user_id", "original_text", "personal_details")

PROVIDER_RECOMMENDATIONS: dict[RiskTier, tuple[str, ...]] = {
    RiskTier.CRITICAL: (
        "Immediate psychiatric evaluation recommended",
        "Consider inpatient stabilization",
        "Monitor for suicidal ideation",
        "Coordinate with emergency services",
    ),
    RiskTier.HIGH: (
        "Schedule urgent mental health assessment",
        "Consider crisis intervention therapy",
        "Monitor medication compliance",
        "Establish safety plan",
    ),
    RiskTier.MODERATE: (
        "Schedule outpatient therapy appointment",
        "Consider medication evaluation",
        "Implement coping strategies",
        "Regular follow-up monitoring",
    ),
    RiskTier.LOW: (
        "Continue supportive therapy",
        "Monitor symptom progression",
        "Reinforce coping skills",
        "Regular wellness check-ins",
    ),
}


def anonymize_event(event: CrisisEvent) -> dict[str, Any]:
    """Event as a dict with identifying fields removed."""
    data = event.model_dump(mode="json")
    for name in IDENTIFYING_FIELDS:
        data.pop(name, None)
    data["anonymized_at"] = utcnow().isoformat()
    data["privacy_level"] = "anonymized"
    return data


def provider_recommendations(tier: RiskTier) -> list[str]:
    return list(PROVIDER_RECOMMENDATIONS.get(tier, ()))


def prepare_provider_report(
    event: CrisisEvent,
    actions: Optional[list[EmergencyAction]] = None,
) -> ProviderReport:
    """
    Anonymized single-event report with tier-based recommendations.

    Args:
        event: The crisis event being reported
        actions: Emergency actions taken, included as intervention history
    """
    anonymized = anonymize_event(event)
    return ProviderReport(
        crisis_events=[anonymized],
        intervention_history=[action.model_dump(mode="json") for action in actions or []],
        risk_assessment={
            "current_risk": event.tier.value,
            "confidence": event.confidence,
            "indicators": list(event.indicators),
        },
        recommendations=provider_recommendations(event.tier),
    )


class FollowUpScheduler:
    """Persists scheduled follow-ups. Appends are not locked."""

    def __init__(self, store: KeyValueStore, key: str = FOLLOW_UPS_KEY):
        self.store = store
        self.key = key

    async def schedule(
        self,
        follow_up_type: str = "crisis_followup",
        scheduled_time: Optional[datetime] = None,
        provider: str = "crisis_team",
        priority: str = "high",
        notes: str = "",
    ) -> StorageResult[FollowUp]:
        """
        Schedule a follow-up (default: 24 hours from now with the crisis team).

        Returns:
            StorageResult with the follow-up, or the storage error
        """
        follow_up = FollowUp(
            id=f"followup_{uuid4().hex}",
            type=follow_up_type,
            scheduled_time=scheduled_time or utcnow() + DEFAULT_FOLLOW_UP_DELAY,
            provider=provider,
            priority=priority,
            notes=notes,
        )

        try:
            follow_ups = await self._load()
            follow_ups.append(follow_up)
            await self.store.set(
                self.key,
                json.dumps([item.model_dump(mode="json") for item in follow_ups]),
            )
        except StorageError as e:
            logger.error(f"Error scheduling follow-up: {e}")
            return StorageResult.failure(e)

        logger.info(f"Follow-up scheduled: id={follow_up.id}, provider={provider}")
        return StorageResult.success(follow_up)

    async def list_follow_ups(self) -> StorageResult[list[FollowUp]]:
        try:
            return StorageResult.success(await self._load())
        except StorageError as e:
            logger.error(f"Error reading follow-ups: {e}")
            return StorageResult.failure(e)

    async def _load(self) -> list[FollowUp]:
        raw = await self.store.get(self.key)
        if raw is None:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding unparsable follow-ups: {e}")
            return []

        follow_ups = []
        for entry in data if isinstance(data, list) else []:
            try:
                follow_ups.append(FollowUp.model_validate(entry))
            except ValidationError:
                logger.warning("Skipping invalid follow-up entry")
        return follow_ups
