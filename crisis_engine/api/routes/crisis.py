"""
Crisis API Endpoints.

Risk analysis, intervention selection, crisis resources, action reporting,
statistics and provider follow-up.

Request text is analyzed in memory only. It is never logged or stored.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from crisis_engine.api.dependencies import get_crisis_service
from crisis_engine.safety.models import (
    CrisisEvent,
    CrisisResource,
    Demographics,
    EmergencyAction,
    FollowUp,
    InterventionResponse,
    ProviderReport,
    RiskTier,
    Statistics,
    UserProfile,
)
from crisis_engine.safety.service import CrisisService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/crisis", tags=["Crisis"])


# ==================================
# Request / Response Models
# ==================================

class AnalyzeRequest(BaseModel):
    """Text to analyze."""

    text: str = Field(
        ...,
        max_length=5000,
        description="User's message. Empty text is analyzed as no risk.",
        examples=["I feel hopeless and alone"],
    )


class InterventionRequest(AnalyzeRequest):
    """Text to analyze plus an optional profile for resource ordering."""

    profile: Optional[UserProfile] = Field(
        default=None,
        description="Optional user profile; demographics only reorder resources",
    )


class AssessmentResponse(BaseModel):
    """Risk assessment."""

    tier: RiskTier
    score: int
    confidence: float
    indicators: list[str]
    requires_immediate: bool


class InterventionResult(BaseModel):
    """Assessment and the intervention selected for it."""

    assessment: AssessmentResponse
    intervention: Optional[InterventionResponse] = Field(
        default=None,
        description="Null when the tier is none",
    )


class ActionReport(BaseModel):
    """A call/text performed by the client."""

    type: str = Field(..., min_length=1, max_length=50, examples=["call"])
    target: str = Field(..., min_length=1, max_length=100, examples=["988"])
    successful: bool = True


class FollowUpRequest(BaseModel):
    """Follow-up scheduling request. Omitted fields use the defaults."""

    type: str = "crisis_followup"
    scheduled_time: Optional[datetime] = Field(
        default=None,
        description="Defaults to 24 hours from now",
    )
    provider: str = "crisis_team"
    priority: str = "high"
    notes: str = Field(default="", max_length=1000)


class ErrorResponse(BaseModel):
    """Error response."""

    error: str
    detail: Optional[str] = None


# ==================================
# Analysis & Intervention
# ==================================

@router.post(
    "/analyze",
    response_model=AssessmentResponse,
    summary="Analyze text for crisis risk",
    description="Score text against the crisis lexicon. Does not log or store anything.",
)
async def analyze(
    request: AnalyzeRequest,
    service: CrisisService = Depends(get_crisis_service),
) -> AssessmentResponse:
    """Pure risk analysis."""
    assessment = service.analyze(request.text)
    return AssessmentResponse(**assessment.to_dict())


@router.post(
    "/intervention",
    response_model=InterventionResult,
    summary="Analyze text and select an intervention",
    description="Analyze text, log the assessment and return the intervention for its tier.",
)
async def intervention(
    request: InterventionRequest,
    service: CrisisService = Depends(get_crisis_service),
) -> InterventionResult:
    """
    Full detection flow.

    The crisis event is logged in the background; the response does not
    wait for the write.
    """
    assessment = service.analyze(request.text)
    response = service.handle_crisis(assessment, request.profile)

    return InterventionResult(
        assessment=AssessmentResponse(**assessment.to_dict()),
        intervention=response,
    )


@router.post(
    "/actions",
    response_model=EmergencyAction,
    status_code=status.HTTP_201_CREATED,
    summary="Report an emergency action",
    description="Record a call or text the client performed.",
    responses={503: {"model": ErrorResponse, "description": "Action could not be stored"}},
)
async def report_action(
    request: ActionReport,
    service: CrisisService = Depends(get_crisis_service),
) -> EmergencyAction:
    action = await service.report_action(request.type, request.target, request.successful)
    if action is None:
        logger.error(f"Emergency action not recorded: type={request.type}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Action could not be recorded",
        )
    return action


# ==================================
# Resources
# ==================================

@router.get(
    "/resources/emergency",
    response_model=list[CrisisResource],
    summary="Emergency resources",
    description="Up to five emergency resources, prioritized for the given demographics.",
)
async def emergency_resources(
    age: Optional[int] = Query(default=None, ge=0),
    lgbtq: bool = False,
    veteran: bool = False,
    service: CrisisService = Depends(get_crisis_service),
) -> list[CrisisResource]:
    profile = UserProfile(demographics=Demographics(age=age, lgbtq=lgbtq, veteran=veteran))
    return service.get_emergency_resources(profile)


@router.get(
    "/resources/support",
    response_model=list[CrisisResource],
    summary="Support resources",
)
async def support_resources(
    service: CrisisService = Depends(get_crisis_service),
) -> list[CrisisResource]:
    return service.get_support_resources()


# ==================================
# History, Statistics & Reporting
# ==================================

@router.get(
    "/history",
    response_model=list[CrisisEvent],
    summary="Crisis event history",
    description="Logged crisis events, oldest first.",
)
async def history(
    service: CrisisService = Depends(get_crisis_service),
) -> list[CrisisEvent]:
    return await service.get_crisis_history()


@router.get(
    "/statistics",
    response_model=Statistics,
    summary="Crisis statistics",
    responses={503: {"model": ErrorResponse, "description": "Logs could not be read"}},
)
async def statistics(
    service: CrisisService = Depends(get_crisis_service),
) -> Statistics:
    stats = await service.get_crisis_statistics()
    if stats is None:
        logger.error("Crisis statistics unavailable: logs could not be read")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Crisis statistics unavailable",
        )
    return stats


@router.get(
    "/provider-report",
    response_model=ProviderReport,
    summary="Provider report",
    description="Anonymized report for the most recent crisis event.",
    responses={404: {"model": ErrorResponse, "description": "No crisis events logged"}},
)
async def provider_report(
    service: CrisisService = Depends(get_crisis_service),
) -> ProviderReport:
    report = await service.prepare_provider_report()
    if report is None:
        logger.info("Provider report requested with no crisis events logged")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No crisis events to report",
        )
    return report


@router.post(
    "/follow-ups",
    response_model=FollowUp,
    status_code=status.HTTP_201_CREATED,
    summary="Schedule a follow-up",
    responses={503: {"model": ErrorResponse, "description": "Follow-up could not be stored"}},
)
async def schedule_follow_up(
    request: FollowUpRequest,
    service: CrisisService = Depends(get_crisis_service),
) -> FollowUp:
    follow_up = await service.schedule_follow_up(
        follow_up_type=request.type,
        scheduled_time=request.scheduled_time,
        provider=request.provider,
        priority=request.priority,
        notes=request.notes,
    )
    if follow_up is None:
        logger.error(f"Follow-up not scheduled: provider={request.provider}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Follow-up could not be scheduled",
        )
    return follow_up
