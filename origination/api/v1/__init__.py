from fastapi import APIRouter

from origination.api.v1.routers import (
    applicants,
    health,
    loan_applications,
    me,
    pending_actions,
    verifications,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(me.router)
api_router.include_router(loan_applications.router)
api_router.include_router(verifications.router)
api_router.include_router(applicants.router)
api_router.include_router(pending_actions.router)

__all__ = ["api_router"]
