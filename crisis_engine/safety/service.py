"""
Crisis Service

Facade over analysis, intervention selection, safety plans, the event log,
statistics and provider reporting. One instance is built at application
startup (see crisis_engine.main) and shared through app.state.

Flow:
1. analyze(text) -> RiskAssessment (pure, synchronous)
2. handle_crisis(assessment, profile) -> InterventionResponse | None
   (logs the event in the background)
3. show_crisis_alert(response) -> chosen action token
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Optional

from crisis_engine.config import Settings, settings as default_settings
from crisis_engine.infra.storage import KeyValueStore
from crisis_engine.safety.alerts import (
    ActionInvoker,
    AlertPresenter,
    AlertToken,
    HeadlessActionInvoker,
    PlatformActions,
    build_crisis_alert,
)
from crisis_engine.safety.event_log import EventLog
from crisis_engine.safety.intervention import InterventionSelector
from crisis_engine.safety.lexicon import LexiconConfig, load_lexicon
from crisis_engine.safety.models import (
    CrisisEvent,
    CrisisResource,
    EmergencyAction,
    FollowUp,
    InterventionResponse,
    ProviderReport,
    SafetyPlan,
    Statistics,
    UserProfile,
)
from crisis_engine.safety.reporting import FollowUpScheduler, prepare_provider_report
from crisis_engine.safety.resources import (
    CRISIS_TEXT_KEYWORD,
    CRISIS_TEXT_NUMBER,
    EMERGENCY_NUMBER,
    PRIMARY_CRISIS_NUMBER,
    ResourceDirectory,
)
from crisis_engine.safety.risk_analyzer import RiskAnalyzer, RiskAssessment
from crisis_engine.safety.safety_plan import SafetyPlanStore
from crisis_engine.safety.statistics import compute_statistics

logger = logging.getLogger(__name__)


class CrisisService:
    """
    Crisis detection and intervention engine.

    Usage:
        service = CrisisService(store)
        assessment = service.analyze("I want to end my life tonight")
        response = service.handle_crisis(assessment, profile)
        if response and response.tier.requires_immediate:
            token = await service.show_crisis_alert(response)
    """

    def __init__(
        self,
        store: KeyValueStore,
        lexicon: Optional[LexiconConfig] = None,
        invoker: Optional[ActionInvoker] = None,
        presenter: Optional[AlertPresenter] = None,
        event_limit: int = 100,
        action_limit: int = 50,
        recent_window: timedelta = timedelta(days=30),
        response_window: timedelta = timedelta(hours=24),
    ):
        self.analyzer = RiskAnalyzer(lexicon)
        self.directory = ResourceDirectory()
        self.selector = InterventionSelector(self.directory)
        self.safety_plans = SafetyPlanStore(store)
        self.event_log = EventLog(store, event_limit=event_limit, action_limit=action_limit)
        self.follow_ups = FollowUpScheduler(store)
        self.presenter = presenter
        self.platform = PlatformActions(
            invoker or HeadlessActionInvoker(),
            self.event_log,
            presenter=presenter,
        )
        self.recent_window = recent_window
        self.response_window = response_window

        # Background logging tasks, kept referenced until done
        self._pending: set[asyncio.Task] = set()

    # ==================================
    # Detection & Intervention
    # ==================================

    def analyze(self, text: Any) -> RiskAssessment:
        """Score text and classify its risk tier. Never raises."""
        return self.analyzer.analyze(text)

    def handle_crisis(
        self,
        assessment: RiskAssessment,
        profile: Optional[UserProfile] = None,
    ) -> Optional[InterventionResponse]:
        """
        Log the assessment and select an intervention.

        Logging runs as a background task on the running event loop; the
        response is returned without waiting for it. Use drain() to wait
        for outstanding writes.

        Returns:
            InterventionResponse, or None for tier "none"
        """
        self._schedule_event_log(assessment, profile)
        return self.selector.select(assessment, profile)

    async def show_crisis_alert(self, response: InterventionResponse) -> str:
        """
        Present the crisis alert and act on the user's choice.

        Call/text choices are performed through the platform before the
        token is returned.

        Returns:
            The chosen action token (see AlertToken)
        """
        if self.presenter is None:
            raise RuntimeError("No alert presenter configured")

        alert = build_crisis_alert(response)
        token = await self.presenter.present(alert)
        logger.info(f"Crisis alert resolved: tier={response.tier.value}, choice={token}")

        if token == AlertToken.CALL_988:
            await self.platform.make_emergency_call(PRIMARY_CRISIS_NUMBER)
        elif token == AlertToken.TEXT_CRISIS:
            await self.platform.send_crisis_text(CRISIS_TEXT_NUMBER, CRISIS_TEXT_KEYWORD)
        elif token == AlertToken.CALL_911:
            await self.platform.make_emergency_call(EMERGENCY_NUMBER)

        return token

    async def report_action(
        self,
        action_type: str,
        target: str,
        successful: bool = True,
    ) -> Optional[EmergencyAction]:
        """Record an action performed by the client. None if it could not be stored."""
        result = await self.event_log.log_emergency_action(action_type, target, successful)
        return result.unwrap_or_none()

    @property
    def pending_event_writes(self) -> int:
        """Crisis events still being written in the background."""
        return len(self._pending)

    async def drain(self) -> None:
        """Wait for background event logging to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _schedule_event_log(
        self,
        assessment: RiskAssessment,
        profile: Optional[UserProfile],
    ) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; crisis event not logged")
            return

        task = loop.create_task(self.event_log.log_crisis_event(assessment, profile))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # ==================================
    # Resources
    # ==================================

    def get_emergency_resources(self, profile: Optional[UserProfile] = None) -> list[CrisisResource]:
        return self.directory.get_emergency_resources(profile)

    def get_support_resources(self) -> list[CrisisResource]:
        return self.directory.get_support_resources()

    # ==================================
    # Safety Plan
    # ==================================

    async def create_safety_plan(self, inputs: Optional[dict[str, Any]] = None) -> SafetyPlan:
        return await self.safety_plans.create(inputs)

    async def get_safety_plan(self) -> Optional[SafetyPlan]:
        return await self.safety_plans.get()

    async def update_safety_plan(self, updates: Optional[dict[str, Any]] = None) -> SafetyPlan:
        return await self.safety_plans.update(updates)

    # ==================================
    # History & Statistics
    # ==================================

    async def get_crisis_history(self) -> list[CrisisEvent]:
        """Logged crisis events, oldest first. Empty if the log is unreadable."""
        return (await self.event_log.read_crisis_events()).unwrap_or_none() or []

    async def get_crisis_statistics(self, now: Optional[datetime] = None) -> Optional[Statistics]:
        """
        Aggregate statistics over the logs.

        Returns:
            Statistics, or None if either log could not be read
        """
        events = await self.event_log.read_crisis_events()
        actions = await self.event_log.read_emergency_actions()
        if not events.ok or not actions.ok:
            logger.error("Crisis statistics unavailable: log read failed")
            return None

        return compute_statistics(
            events.value or [],
            actions.value or [],
            now=now,
            recent_window=self.recent_window,
            response_window=self.response_window,
        )

    # ==================================
    # Provider Reporting
    # ==================================

    async def prepare_provider_report(
        self,
        event: Optional[CrisisEvent] = None,
    ) -> Optional[ProviderReport]:
        """
        Anonymized report for a crisis event.

        Defaults to the most recent logged event. Returns None when there
        is nothing to report.
        """
        if event is None:
            history = await self.get_crisis_history()
            if not history:
                return None
            event = history[-1]

        actions = (await self.event_log.read_emergency_actions()).unwrap_or_none() or []
        related = [action for action in actions if action.timestamp >= event.timestamp]
        return prepare_provider_report(event, related)

    async def schedule_follow_up(self, **details: Any) -> Optional[FollowUp]:
        """Schedule a follow-up. None if it could not be stored."""
        return (await self.follow_ups.schedule(**details)).unwrap_or_none()


def build_crisis_service(
    store: KeyValueStore,
    config: Optional[Settings] = None,
    invoker: Optional[ActionInvoker] = None,
    presenter: Optional[AlertPresenter] = None,
) -> CrisisService:
    """Create a CrisisService from application settings."""
    config = config or default_settings
    return CrisisService(
        store,
        lexicon=load_lexicon(config.crisis_lexicon_path),
        invoker=invoker,
        presenter=presenter,
        event_limit=config.crisis_event_log_limit,
        action_limit=config.emergency_action_log_limit,
        recent_window=timedelta(days=config.statistics_window_days),
        response_window=timedelta(hours=config.response_window_hours),
    )
