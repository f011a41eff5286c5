"""API v1 router composition."""

from fastapi import APIRouter

from stockaudit.api.v1.endpoints import audit, auth, team

api_router: APIRouter = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(team.router, prefix="/audit/team", tags=["audit-team"])
api_router.include_router(audit.router, prefix="/audit", tags=["audit"])
