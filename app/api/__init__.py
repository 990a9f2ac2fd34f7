"""
API router.

Everything is mounted under /api by the application factory.
"""

from fastapi import APIRouter

from . import auth, invitations, join_requests, members, notifications, organizations, outlines, users

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(users.router, prefix="/user", tags=["Users"])

# Organization routes
router.include_router(organizations.router, prefix="/org", tags=["Organizations"])
router.include_router(members.router, prefix="/org/members", tags=["Members"])
router.include_router(invitations.router, prefix="/org/invitations", tags=["Invitations"])
router.include_router(join_requests.email_link_router, prefix="/org", tags=["Join Requests"])

# Inbox
router.include_router(notifications.router, prefix="/notifications", tags=["Notifications"])
router.include_router(join_requests.inbox_router, prefix="/notifications", tags=["Join Requests"])

router.include_router(outlines.router, prefix="/outlines", tags=["Outlines"])
