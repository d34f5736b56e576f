"""API v1 routes."""

from fastapi import APIRouter

from outsourcing_register.api.v1 import auth, backup, database, health, issues, suppliers, users

router = APIRouter()
router.include_router(health.router, prefix="/health", tags=["health"])
router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(backup.router, prefix="/backup", tags=["backup"])
router.include_router(database.router, prefix="/database", tags=["database"])
router.include_router(suppliers.router, prefix="/suppliers", tags=["suppliers"])
router.include_router(issues.router, prefix="/issues", tags=["issues"])
