"""API v1 routes."""

from fastapi import APIRouter

from bookloan.api.v1 import accounts, admin, health, items, loans

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
router.include_router(items.router, prefix="/items", tags=["items"])
router.include_router(loans.router, prefix="/loans", tags=["loans"])
router.include_router(admin.router, tags=["admin"])
