"""API v1 routes."""

from fastapi import APIRouter

from shareai.api.v1 import auth, deploy, health, images, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(images.router, prefix="/images", tags=["images"])
router.include_router(images.org_router, prefix="/orgs", tags=["images"])
router.include_router(images.favorites_router, prefix="/favorites", tags=["favorites"])
router.include_router(deploy.router, prefix="/deploy", tags=["deploy"])
