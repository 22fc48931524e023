"""Tests for provider reporting and follow-ups."""

import json
from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import AsyncMock

from crisis_engine.infra.storage import InMemoryKeyValueStore, StorageError
from crisis_engine.safety.models import CrisisEvent, EmergencyAction, RiskTier
from crisis_engine.safety.reporting import (
    FOLLOW_UPS_KEY,
    FollowUpScheduler,
    anonymize_event,
    prepare_provider_report,
    provider_recommendations,
)


@pytest.fixture
def event():
    return CrisisEvent(
        tier=RiskTier.CRITICAL,
        confidence=0.9,
        indicators=["kill myself", "kill + myself"],
        user_id="user-42",
        session_id="sess-1",
    )


class TestAnonymize:
    """Test identifying data removal."""

    def test_removes_user_id(self, event):
        data = anonymize_event(event)

        assert "user_id" not in data
        assert data["privacy_level"] == "anonymized"
        assert "anonymized_at" in data
        assert data["tier"] == "critical"
        assert data["indicators"] == ["kill myself", "kill + myself"]


class TestProviderReport:
    """Test provider report content."""

    def test_recommendations_per_tier(self):
        assert provider_recommendations(RiskTier.CRITICAL)[0] == "Immediate psychiatric evaluation recommended"
        assert "Establish safety plan" in provider_recommendations(RiskTier.HIGH)
        assert len(provider_recommendations(RiskTier.MODERATE)) == 4
        assert provider_recommendations(RiskTier.LOW)[-1] == "Regular wellness check-ins"
        assert provider_recommendations(RiskTier.NONE) == []

    def test_report(self, event):
        actions = [EmergencyAction(type="call", target="988")]

        report = prepare_provider_report(event, actions)

        assert report.risk_assessment["current_risk"] == "critical"
        assert report.risk_assessment["confidence"] == 0.9
        assert "user_id" not in report.crisis_events[0]
        assert report.intervention_history[0]["target"] == "988"
        assert "Consider inpatient stabilization" in report.recommendations

    def test_report_without_actions(self, event):
        assert prepare_provider_report(event).intervention_history == []


class TestFollowUpScheduler:
    """Test follow-up persistence."""

    @pytest.fixture
    def kv(self):
        return InMemoryKeyValueStore()

    @pytest.mark.asyncio
    async def test_defaults(self, kv):
        """Test default follow-up is 24h out with the crisis team."""
        before = datetime.now(timezone.utc)

        result = await FollowUpScheduler(kv).schedule()

        follow_up = result.value
        assert result.ok
        assert follow_up.id.startswith("followup_")
        assert follow_up.type == "crisis_followup"
        assert follow_up.provider == "crisis_team"
        assert follow_up.priority == "high"
        assert follow_up.reminder_set is True
        assert follow_up.scheduled_time - before >= timedelta(hours=24)
        assert follow_up.scheduled_time - before < timedelta(hours=25)

    @pytest.mark.asyncio
    async def test_appends(self, kv):
        """Test follow-ups accumulate."""
        scheduler = FollowUpScheduler(kv)
        when = datetime(2026, 11, 1, 9, 0, tzinfo=timezone.utc)

        await scheduler.schedule(provider="dr_lee", scheduled_time=when)
        await scheduler.schedule(notes="Check in after weekend")

        stored = json.loads(await kv.get(FOLLOW_UPS_KEY))
        assert len(stored) == 2
        assert stored[0]["provider"] == "dr_lee"

        listed = (await scheduler.list_follow_ups()).value
        assert listed[0].scheduled_time == when
        assert listed[1].notes == "Check in after weekend"
        assert listed[0].id != listed[1].id

    @pytest.mark.asyncio
    async def test_storage_failure(self):
        """Test write failures are returned as errors."""
        kv = AsyncMock()
        kv.get = AsyncMock(return_value=None)
        kv.set = AsyncMock(side_effect=StorageError("write failed"))

        result = await FollowUpScheduler(kv).schedule()

        assert not result.ok
        assert result.unwrap_or_none() is None
