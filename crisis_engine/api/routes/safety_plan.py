"""
Safety Plan API Endpoints.

One safety plan per deployment (the store holds a single record).
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from crisis_engine.api.dependencies import get_crisis_service
from crisis_engine.safety.models import EmergencyContact, SafetyPlan
from crisis_engine.safety.service import CrisisService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/safety-plan", tags=["Safety Plan"])


class SafetyPlanInput(BaseModel):
    """
    Safety plan sections.

    Only fields that are sent are applied; version and timestamps are
    managed by the server.
    """

    warning_signs_personal: Optional[list[str]] = None
    warning_signs_environmental: Optional[list[str]] = None
    coping_strategies: Optional[list[str]] = None
    social_supports: Optional[list[str]] = None
    professional_contacts: Optional[list[str]] = None
    safe_environment: Optional[list[str]] = None
    emergency_contacts: Optional[list[EmergencyContact]] = None


@router.get(
    "",
    response_model=SafetyPlan,
    summary="Get the safety plan",
    responses={404: {"description": "No safety plan stored"}},
)
async def get_safety_plan(
    service: CrisisService = Depends(get_crisis_service),
) -> SafetyPlan:
    plan = await service.get_safety_plan()
    if plan is None:
        logger.info("Safety plan requested but none is stored")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Safety plan not found",
        )
    return plan


@router.post(
    "",
    response_model=SafetyPlan,
    status_code=status.HTTP_201_CREATED,
    summary="Create the safety plan",
    description="Create (or replace) the safety plan. 988 and 911 are added when no emergency contacts are given.",
)
async def create_safety_plan(
    request: SafetyPlanInput,
    service: CrisisService = Depends(get_crisis_service),
) -> SafetyPlan:
    return await service.create_safety_plan(request.model_dump(exclude_none=True))


@router.patch(
    "",
    response_model=SafetyPlan,
    summary="Update the safety plan",
    description="Replace the sections sent and increment the version.",
)
async def update_safety_plan(
    request: SafetyPlanInput,
    service: CrisisService = Depends(get_crisis_service),
) -> SafetyPlan:
    return await service.update_safety_plan(request.model_dump(exclude_none=True))
