"""
Safety Plan Storage

Versioned CRUD over the user's safety plan, stored as a single JSON record
under the `user_safety_plan` key. Every update increments the version by
exactly one. There is no delete; a plan lives until overwritten.
"""

import json
import logging
from typing import Any, Optional

from pydantic import ValidationError

from crisis_engine.infra.storage import KeyValueStore, StorageError, StorageResult
from crisis_engine.safety.models import EmergencyContact, SafetyPlan, utcnow

logger = logging.getLogger(__name__)

SAFETY_PLAN_KEY = "user_safety_plan"

# Fields managed by the store; ignored when supplied by callers
METADATA_FIELDS = ("version", "created_at", "last_updated")

DEFAULT_EMERGENCY_CONTACTS = (
    EmergencyContact(name="988 Crisis Lifeline", number="988", type="crisis"),
    EmergencyContact(name="Emergency Services", number="911", type="emergency"),
)


def _strip_metadata(values: Optional[dict[str, Any]]) -> dict[str, Any]:
    return {k: v for k, v in (values or {}).items() if k not in METADATA_FIELDS}


class SafetyPlanStore:
    """
    Persisted, versioned safety plan.

    Usage:
        store = SafetyPlanStore(kv_store)
        plan = await store.create({"coping_strategies": ["Go for a walk"]})
        plan = await store.update({"social_supports": ["Sam"]})  # version 2
    """

    def __init__(self, store: KeyValueStore, key: str = SAFETY_PLAN_KEY):
        self.store = store
        self.key = key

    async def create(self, inputs: Optional[dict[str, Any]] = None) -> SafetyPlan:
        """
        Create (or overwrite) the safety plan.

        Inputs are merged over an empty template. When no emergency contacts
        are given, the 988 Lifeline and 911 are added.

        Returns:
            The created plan, even if persisting it failed
        """
        now = utcnow()
        plan = SafetyPlan.model_validate(
            {
                **_strip_metadata(inputs),
                "version": 1,
                "created_at": now,
                "last_updated": now,
            }
        )

        if not plan.emergency_contacts:
            plan.emergency_contacts = [contact.model_copy() for contact in DEFAULT_EMERGENCY_CONTACTS]

        result = await self._save(plan)
        if result.ok:
            logger.info("Safety plan created (version=1)")
        return plan

    async def load(self) -> StorageResult[SafetyPlan]:
        """
        Read the stored plan.

        Returns:
            StorageResult whose value is the plan, or None if no plan is
            stored. Read and parse failures are returned as errors.
        """
        try:
            raw = await self.store.get(self.key)
        except StorageError as e:
            logger.error(f"Error loading safety plan: {e}")
            return StorageResult.failure(e)

        if raw is None:
            return StorageResult.success(None)

        try:
            return StorageResult.success(SafetyPlan.model_validate(json.loads(raw)))
        except (json.JSONDecodeError, ValidationError) as e:
            logger.error(f"Error parsing stored safety plan: {e}")
            return StorageResult.failure(StorageError(f"Unparsable safety plan: {e}", key=self.key))

    async def get(self) -> Optional[SafetyPlan]:
        """The stored plan, or None if absent or unreadable."""
        return (await self.load()).unwrap_or_none()

    async def update(self, updates: Optional[dict[str, Any]] = None) -> SafetyPlan:
        """
        Apply updates to the stored plan.

        Top-level fields in `updates` replace the stored ones (shallow
        merge). If there is no readable plan, one is created from `updates`.

        Returns:
            The updated plan with version incremented by one
        """
        current = await self.get()
        if current is None:
            return await self.create(updates)

        merged = {
            **current.model_dump(),
            **_strip_metadata(updates),
            "version": current.version + 1,
            "created_at": current.created_at,
            "last_updated": utcnow(),
        }
        plan = SafetyPlan.model_validate(merged)

        result = await self._save(plan)
        if result.ok:
            logger.info(f"Safety plan updated (version={plan.version})")
        return plan

    async def _save(self, plan: SafetyPlan) -> StorageResult[SafetyPlan]:
        try:
            await self.store.set(self.key, plan.model_dump_json())
        except StorageError as e:
            logger.error(f"Error saving safety plan: {e}")
            return StorageResult.failure(e)
        return StorageResult.success(plan)
