"""
API v1 Router

All org-scoped endpoints are prefixed with /orgs/{orgId}.
"""

from fastapi import APIRouter
from . import activity, members, notes, users
from .invitations import router_scoped as invitations_scoped_router
from .invitations import router_user as invitations_user_router
from .organizations import router_global as orgs_global_router
from .organizations import router_scoped as orgs_scoped_router

router = APIRouter()

# Organization routes (non-org-scoped: list, create)
router.include_router(orgs_global_router)

# Organization routes (org-scoped: get, update, delete)
router.include_router(orgs_scoped_router, prefix="/orgs/{orgId}", tags=["Organizations"])

# Org-scoped resource routers
router.include_router(members.router, prefix="/orgs/{orgId}/members", tags=["Members"])
router.include_router(notes.router, prefix="/orgs/{orgId}/notes", tags=["Notes"])
router.include_router(
    invitations_scoped_router, prefix="/orgs/{orgId}/invitations", tags=["Invitations"]
)
router.include_router(activity.router, prefix="/orgs/{orgId}/activity", tags=["Activity"])

# Caller-scoped routers
router.include_router(invitations_user_router, prefix="/invitations", tags=["Invitations"])
router.include_router(users.router, prefix="/users", tags=["Users"])


@router.get("/", tags=["API"])
async def api_root():
    """API root — returns version and available endpoints."""
    return {
        "api": "v1",
        "version": "0.1.0",
        "endpoints": [
            "/orgs",
            "/orgs/{orgId}/members",
            "/orgs/{orgId}/notes",
            "/orgs/{orgId}/invitations",
            "/orgs/{orgId}/activity",
            "/invitations",
            "/users/me",
        ],
    }
