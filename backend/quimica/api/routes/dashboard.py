"""
Admin dashboard API routes
"""
from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from quimica.core.auth import require_roles
from quimica.core.database import get_db
from quimica.models.user import User, UserRole
from quimica.services.dashboard_service import DashboardService

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])

require_admin = require_roles(UserRole.ADMIN.value)


@router.get("/stats")
async def get_stats(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Platform totals and approval rate"""
    return DashboardService(db).get_stats()


@router.get("/recent")
async def get_recent_activity(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    return DashboardService(db).get_recent_activity()


@router.get("/trends")
async def get_trends(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    """Monthly series over the last six months"""
    return DashboardService(db).get_trends()


@router.get("/performance")
async def get_performance_overview(
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    return DashboardService(db).get_performance_overview()
