"""Tests for the crisis service facade."""

import json
from datetime import timedelta

import pytest
from unittest.mock import AsyncMock

from crisis_engine.config import Settings
from crisis_engine.infra.storage import InMemoryKeyValueStore, StorageError
from crisis_engine.safety.alerts import AlertToken
from crisis_engine.safety.models import Demographics, RiskTier, UserProfile
from crisis_engine.safety.service import CrisisService, build_crisis_service


class TestCrisisService:
    """Test end-to-end crisis flows."""

    @pytest.fixture
    def kv(self):
        return InMemoryKeyValueStore()

    @pytest.fixture
    def invoker(self):
        mock = AsyncMock()
        mock.can_open = AsyncMock(return_value=True)
        mock.open = AsyncMock()
        return mock

    @pytest.fixture
    def presenter(self):
        mock = AsyncMock()
        mock.present = AsyncMock(return_value=AlertToken.SAFE_FOR_NOW)
        mock.notify = AsyncMock()
        return mock

    @pytest.fixture
    def service(self, kv, invoker, presenter):
        return CrisisService(kv, invoker=invoker, presenter=presenter)

    @pytest.mark.asyncio
    async def test_handle_crisis_critical(self, service):
        """Test critical text yields urgent intervention and a logged event."""
        profile = UserProfile(id="user-1", demographics=Demographics(veteran=True))

        assessment = service.analyze("I want to end my life tonight")
        response = service.handle_crisis(assessment, profile)
        await service.drain()

        assert response.tier == RiskTier.CRITICAL
        assert response.resources[0].id == "veterans_crisis_line"
        assert len(response.urgent_actions) == 3

        history = await service.get_crisis_history()
        assert len(history) == 1
        assert history[0].tier == RiskTier.CRITICAL
        assert history[0].user_id == "user-1"

    @pytest.mark.asyncio
    async def test_handle_crisis_none_logs_event(self, service):
        """Test tier none returns no intervention but is still logged."""
        response = service.handle_crisis(service.analyze("I had a good therapy session today"))
        await service.drain()

        assert response is None
        history = await service.get_crisis_history()
        assert [e.tier for e in history] == [RiskTier.NONE]

    def test_handle_crisis_without_event_loop(self, service):
        """Test synchronous callers still get a response."""
        response = service.handle_crisis(service.analyze("I feel hopeless"))

        assert response.tier == RiskTier.LOW

    @pytest.mark.asyncio
    async def test_logging_failure_does_not_block_response(self, invoker, presenter):
        """Test storage failures never reach the caller."""
        kv = AsyncMock()
        kv.get = AsyncMock(side_effect=StorageError("down"))
        kv.set = AsyncMock(side_effect=StorageError("down"))
        service = CrisisService(kv, invoker=invoker, presenter=presenter)

        response = service.handle_crisis(service.analyze("kill myself"))
        await service.drain()

        assert response.tier == RiskTier.CRITICAL
        assert await service.get_crisis_history() == []
        assert await service.get_crisis_statistics() is None

    @pytest.mark.asyncio
    async def test_show_alert_call_988(self, service, presenter, invoker):
        """Test choosing call_988 dials the lifeline."""
        presenter.present = AsyncMock(return_value=AlertToken.CALL_988)
        response = service.handle_crisis(service.analyze("kill myself"))

        token = await service.show_crisis_alert(response)

        assert token == AlertToken.CALL_988
        invoker.open.assert_called_once_with("tel:988")
        alert = presenter.present.call_args.args[0]
        assert alert.title == "Emergency Support Available"

    @pytest.mark.asyncio
    async def test_show_alert_text(self, service, presenter, invoker):
        """Test choosing text_crisis opens messaging."""
        presenter.present = AsyncMock(return_value=AlertToken.TEXT_CRISIS)
        response = service.handle_crisis(service.analyze("kill myself"))

        await service.show_crisis_alert(response)

        invoker.open.assert_called_once_with("sms:741741?body=HOME")

    @pytest.mark.asyncio
    async def test_show_alert_call_911(self, service, presenter, invoker):
        presenter.present = AsyncMock(return_value=AlertToken.CALL_911)
        response = service.handle_crisis(service.analyze("kill myself"))

        await service.show_crisis_alert(response)

        invoker.open.assert_called_once_with("tel:911")

    @pytest.mark.asyncio
    async def test_show_alert_dismiss(self, service, presenter, invoker):
        """Test non-action tokens do nothing on the platform."""
        response = service.handle_crisis(service.analyze("I feel hopeless"))

        token = await service.show_crisis_alert(response)

        assert token == AlertToken.SAFE_FOR_NOW
        invoker.open.assert_not_called()

    @pytest.mark.asyncio
    async def test_show_alert_requires_presenter(self, kv):
        service = CrisisService(kv)
        response = service.handle_crisis(service.analyze("kill myself"))

        with pytest.raises(RuntimeError):
            await service.show_crisis_alert(response)

    @pytest.mark.asyncio
    async def test_statistics_response_rate(self, service):
        """Test an action after a critical event counts as a response."""
        service.handle_crisis(service.analyze("kill myself"))
        service.handle_crisis(service.analyze("I feel hopeless"))
        await service.drain()
        await service.report_action("call", "988")

        stats = await service.get_crisis_statistics()

        assert stats.total_crisis_events == 2
        assert stats.recent_crisis_events == 2
        assert stats.total_emergency_actions == 1
        assert stats.risk_level_distribution["critical"] == 1
        assert stats.risk_level_distribution["low"] == 1
        assert stats.response_rate == 1.0
        assert stats.top_indicators[0].indicator == "kill myself"

    @pytest.mark.asyncio
    async def test_statistics_empty(self, service):
        stats = await service.get_crisis_statistics()

        assert stats.total_crisis_events == 0
        assert stats.response_rate == 1.0

    @pytest.mark.asyncio
    async def test_statistics_with_naive_stored_timestamps(self):
        """Test logs written without a timezone still produce statistics."""
        kv = InMemoryKeyValueStore({
            "crisis_events": json.dumps([
                {"timestamp": "2026-10-18T10:00:00", "tier": "high", "confidence": 0.6, "indicators": ["hopeless"]},
            ]),
            "emergency_actions": json.dumps([
                {"timestamp": "2026-10-18T10:30:00", "type": "call", "target": "988"},
            ]),
        })
        service = CrisisService(kv)

        stats = await service.get_crisis_statistics()

        assert stats.total_crisis_events == 1
        assert stats.total_emergency_actions == 1
        assert stats.response_rate == 1.0

    @pytest.mark.asyncio
    async def test_safety_plan_lifecycle(self, service):
        """Test create, get and update through the service."""
        assert await service.get_safety_plan() is None

        created = await service.create_safety_plan({"coping_strategies": ["Walk"]})
        updated = await service.update_safety_plan({"social_supports": ["Alex"]})

        assert created.version == 1
        assert updated.version == 2
        assert (await service.get_safety_plan()).social_supports == ["Alex"]

    @pytest.mark.asyncio
    async def test_provider_report_latest_event(self, service):
        """Test report covers the most recent event."""
        assert await service.prepare_provider_report() is None

        service.handle_crisis(service.analyze("I feel hopeless"))
        await service.drain()
        service.handle_crisis(service.analyze("kill myself"), UserProfile(id="user-9"))
        await service.drain()

        report = await service.prepare_provider_report()

        assert report.risk_assessment["current_risk"] == "critical"
        assert "user_id" not in report.crisis_events[0]

    @pytest.mark.asyncio
    async def test_schedule_follow_up(self, service):
        follow_up = await service.schedule_follow_up(provider="dr_lee")

        assert follow_up.provider == "dr_lee"

    def test_resources(self, service):
        """Test resource accessors."""
        assert len(service.get_emergency_resources()) == 5
        assert service.get_support_resources()[0].id == "samhsa_helpline"


class TestBuildCrisisService:
    """Test settings-driven construction."""

    def test_applies_settings(self):
        config = Settings(
            crisis_event_log_limit=10,
            emergency_action_log_limit=5,
            statistics_window_days=7,
            response_window_hours=12,
        )

        service = build_crisis_service(InMemoryKeyValueStore(), config)

        assert service.event_log.event_limit == 10
        assert service.event_log.action_limit == 5
        assert service.recent_window == timedelta(days=7)
        assert service.response_window == timedelta(hours=12)
