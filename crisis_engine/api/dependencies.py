"""
FastAPI dependencies.

The CrisisService is created once in the application lifespan and stored
on app.state; routes receive it through get_crisis_service.
"""

from fastapi import HTTPException, Request, status

from crisis_engine.safety.service import CrisisService


def get_crisis_service(request: Request) -> CrisisService:
    """
    FastAPI dependency providing the application's CrisisService.

    Raises:
        HTTPException 503: Service not initialized (startup incomplete)

    Usage:
        @router.post("/analyze")
        async def analyze(service: CrisisService = Depends(get_crisis_service)):
            ...
    """
    service = getattr(request.app.state, "crisis_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Crisis service unavailable",
        )
    return service
