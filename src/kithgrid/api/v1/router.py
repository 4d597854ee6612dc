from fastapi import APIRouter

from src.kithgrid.api.v1 import auth, invitations, memberships

api_router = APIRouter(prefix="/api/v1")
api_router.include_router(auth.router)
api_router.include_router(invitations.router)
api_router.include_router(memberships.router)
