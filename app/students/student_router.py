from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.assignments.assignment_models import SubmissionStatus
from app.core.dependencies import get_db
from app.payments.payment_models import TransactionStatus
from app.students import student_service as service
from app.students.student_permissions import StudentContext, get_current_student

router = APIRouter(prefix="/student", tags=["Student Dashboard"])

# ==================== DASHBOARD ====================

@router.get("/dashboard")
async def get_dashboard(
    student: StudentContext = Depends(get_current_student),
    db=Depends(get_db)
):
    """
    Profile, enrolled courses, 5 upcoming assignments, 5 latest transactions
    """
    return {"success": True, "data": await service.get_dashboard(db, student)}

# ==================== COURSES ====================

@router.get("/courses")
async def get_my_courses(
    student: StudentContext = Depends(get_current_student),
    db=Depends(get_db)
):
    return {"success": True, "data": await service.get_enrolled_courses(db, student)}

@router.get("/courses/{course_id}")
async def get_course_detail(
    course_id: str,
    student: StudentContext = Depends(get_current_student),
    db=Depends(get_db)
):
    """
    403 unless the student is enrolled; modules are sorted by order
    """
    return {"success": True, "data": await service.get_course_detail(db, student, course_id)}

# ==================== ASSIGNMENTS ====================

@router.get("/assignments")
async def get_my_assignments(
    status: Optional[SubmissionStatus] = Query(None),
    student: StudentContext = Depends(get_current_student),
    db=Depends(get_db)
):
    assignments = await service.get_assignments(db, student, status)
    return {"success": True, "data": assignments}

# ==================== TRANSACTIONS ====================

@router.get("/transactions")
async def get_my_transactions(
    status: Optional[TransactionStatus] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    student: StudentContext = Depends(get_current_student),
    db=Depends(get_db)
):
    result = await service.get_transactions(
        db, student, status.value if status else None, page, limit
    )
    return {"success": True, "data": result}
