"""
Crisis Event Log

Bounded, append-only storage of crisis events and emergency actions.

Keys:
- crisis_events -> JSON list of CrisisEvent (most recent 100)
- emergency_actions -> JSON list of EmergencyAction (most recent 50)

Each append is a read-append-trim-write sequence with no locking.
Concurrent appends can overwrite each other (last writer wins).

Storage failures are logged and returned as StorageResult errors; they
never propagate to the caller. During an active crisis flow, a lost log
entry is preferable to an exception that blocks resource display.
"""

import json
import logging
from typing import Optional, TypeVar

from pydantic import BaseModel, ValidationError

from crisis_engine.infra.storage import KeyValueStore, StorageError, StorageResult
from crisis_engine.safety.models import CrisisEvent, EmergencyAction, UserProfile
from crisis_engine.safety.risk_analyzer import RiskAssessment

logger = logging.getLogger(__name__)

CRISIS_EVENTS_KEY = "crisis_events"
EMERGENCY_ACTIONS_KEY = "emergency_actions"

DEFAULT_EVENT_LIMIT = 100
DEFAULT_ACTION_LIMIT = 50

RecordT = TypeVar("RecordT", bound=BaseModel)


class EventLog:
    """
    Append-only crisis and emergency-action log.

    Usage:
        log = EventLog(store)
        await log.log_crisis_event(assessment, profile)
        await log.log_emergency_action("call", "988")
    """

    def __init__(
        self,
        store: KeyValueStore,
        event_limit: int = DEFAULT_EVENT_LIMIT,
        action_limit: int = DEFAULT_ACTION_LIMIT,
    ):
        self.store = store
        self.event_limit = event_limit
        self.action_limit = action_limit

    # ==================================
    # Crisis Events
    # ==================================

    async def log_crisis_event(
        self,
        assessment: RiskAssessment,
        profile: Optional[UserProfile] = None,
    ) -> StorageResult[CrisisEvent]:
        """
        Record an analyzed message.

        Args:
            assessment: Risk assessment to summarize
            profile: User profile (id/session only)

        Returns:
            StorageResult with the appended event, or the storage error
        """
        profile = profile or UserProfile()
        event = CrisisEvent(
            tier=assessment.tier,
            confidence=assessment.confidence,
            indicators=list(assessment.indicators),
            user_id=profile.id or "anonymous",
            session_id=profile.session_id,
        )

        result = await self._append(CRISIS_EVENTS_KEY, CrisisEvent, event, self.event_limit)
        if result.ok:
            logger.info(f"Crisis event logged: tier={event.tier.value}, session={event.session_id}")
        return result

    async def read_crisis_events(self) -> StorageResult[list[CrisisEvent]]:
        """All retained crisis events, oldest first."""
        return await self._read(CRISIS_EVENTS_KEY, CrisisEvent)

    # ==================================
    # Emergency Actions
    # ==================================

    async def log_emergency_action(
        self,
        action_type: str,
        target: str,
        successful: bool = True,
    ) -> StorageResult[EmergencyAction]:
        """
        Record a call/text the user took or attempted.

        Args:
            action_type: Type of action (call, text, ...)
            target: Number or short code acted on
            successful: Whether the platform performed the action
        """
        action = EmergencyAction(type=action_type, target=target, successful=successful)

        result = await self._append(EMERGENCY_ACTIONS_KEY, EmergencyAction, action, self.action_limit)
        if result.ok:
            logger.info(f"Emergency action logged: type={action_type}, successful={successful}")
        return result

    async def read_emergency_actions(self) -> StorageResult[list[EmergencyAction]]:
        """All retained emergency actions, oldest first."""
        return await self._read(EMERGENCY_ACTIONS_KEY, EmergencyAction)

    # ==================================
    # Internals
    # ==================================

    async def _read(self, key: str, model: type[RecordT]) -> StorageResult[list[RecordT]]:
        try:
            raw = await self.store.get(key)
        except StorageError as e:
            logger.error(f"Failed to read {key}: {e}")
            return StorageResult.failure(e)

        return StorageResult.success(self._parse(key, model, raw))

    async def _append(
        self,
        key: str,
        model: type[RecordT],
        record: RecordT,
        limit: int,
    ) -> StorageResult[RecordT]:
        try:
            raw = await self.store.get(key)
            records = self._parse(key, model, raw)
            records.append(record)
            trimmed = records[-limit:]
            await self.store.set(key, self._dump(trimmed))
        except StorageError as e:
            logger.error(f"Failed to append to {key}: {e}")
            return StorageResult.failure(e)

        return StorageResult.success(record)

    @staticmethod
    def _parse(key: str, model: type[RecordT], raw: Optional[str]) -> list[RecordT]:
        """Decode a stored list. Corrupt blobs read as empty; invalid entries are skipped."""
        if raw is None:
            return []

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning(f"Discarding unparsable {key} log: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Discarding {key} log: expected a list, got {type(data).__name__}")
            return []

        records = []
        for entry in data:
            try:
                records.append(model.model_validate(entry))
            except ValidationError as e:
                logger.warning(f"Skipping invalid {key} entry: {e.error_count()} errors")
        return records

    @staticmethod
    def _dump(records: list[BaseModel]) -> str:
        return json.dumps([record.model_dump(mode="json") for record in records])
