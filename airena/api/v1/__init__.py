"""
API v1 package.

Contains versioned API routes for identity lifecycle and host approval.
"""

from fastapi import APIRouter

from airena.api.v1.admin import router as admin_router
from airena.api.v1.auth import router as auth_router

router = APIRouter()
router.include_router(auth_router)
router.include_router(admin_router)

__all__ = ["router"]
