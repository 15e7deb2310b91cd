"""
API routes for student performance analytics
"""
from datetime import date
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from quimica.core.auth import require_permission
from quimica.core.database import get_db
from quimica.core.permissions import Permission, is_admin
from quimica.models.user import User
from quimica.services.performance_service import (PerformanceService,
                                                  export_filename)

router = APIRouter(prefix="/api/performance", tags=["performance"])


@router.get("/students")
async def list_students(
    student_id: Optional[UUID] = Query(None, description="Only this student"),
    user: User = Depends(require_permission(Permission.PERFORMANCE_VIEW)),
    db: Session = Depends(get_db)
) -> List[Dict[str, Any]]:
    """Per-student totals over the current teacher's quizzes and lessons"""
    return PerformanceService(db).get_filtered_students(user.id, student_id, is_admin=is_admin(user))


@router.get("/students/{student_id}")
async def get_student_detail(
    student_id: UUID,
    user: User = Depends(require_permission(Permission.PERFORMANCE_VIEW)),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    detail = PerformanceService(db).get_student_detail(student_id, user.id, is_admin=is_admin(user))
    if detail is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Student not found")
    return detail


@router.get("/analytics")
async def get_analytics(
    start: Optional[date] = Query(None, description="First day of the period"),
    end: Optional[date] = Query(None, description="Last day of the period"),
    user: User = Depends(require_permission(Permission.PERFORMANCE_VIEW)),
    db: Session = Depends(get_db)
) -> Dict[str, Any]:
    if start and end and start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must not be after end")
    return PerformanceService(db).get_analytics(user.id, is_admin=is_admin(user), start=start, end=end)


@router.get("/export")
async def export_students(
    student_id: Optional[UUID] = Query(None),
    user: User = Depends(require_permission(Permission.PERFORMANCE_VIEW)),
    db: Session = Depends(get_db)
):
    """Download the student list as CSV"""
    service = PerformanceService(db)
    students = service.get_filtered_students(user.id, student_id, is_admin=is_admin(user))
    return Response(
        content=service.export_csv(students),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )
