from fastapi import APIRouter, Request

from origination.core.health import live_payload, ready_payload
from origination.core.limiter import limiter

router = APIRouter(tags=["health"])


@router.get("/health/live", summary="Service liveness check")
@limiter.exempt
async def health_live(request: Request) -> dict:
    return await live_payload()


@router.get("/health/ready", summary="Service readiness check")
@limiter.exempt
async def health_ready(request: Request) -> dict:
    return await ready_payload(getattr(request.app.state, "database", None))


@router.get("/health", summary="Backward-compatible readiness check")
@limiter.exempt
async def read_health(request: Request) -> dict:
    return await ready_payload(getattr(request.app.state, "database", None))
