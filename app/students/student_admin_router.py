from fastapi import APIRouter, Depends, Query

from app.auth.auth_models import Role
from app.core.dependencies import get_db, require_roles
from app.students import student_service as service
from app.students.student_schemas import SortOrder, StudentSortField, StudentUpdate

router = APIRouter(
    prefix="/students",
    tags=["Student Management"],
    dependencies=[Depends(require_roles(Role.ADMIN))]
)


@router.get("")
async def list_students(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    q: str = Query(""),
    sort_field: StudentSortField = Query(StudentSortField.FIRST_NAME),
    sort_order: SortOrder = Query(SortOrder.ASC),
    db=Depends(get_db)
):
    """Paginated search over names and email"""
    result = await service.list_students(db, page, limit, q.strip(), sort_field, sort_order)
    return {"success": True, "data": result}


@router.put("/{student_id}")
async def update_student(student_id: str, payload: StudentUpdate, db=Depends(get_db)):
    student = await service.update_student(db, student_id, payload)
    return {"success": True, "message": "Student updated successfully", "data": student}


@router.delete("/{student_id}")
async def deactivate_student(student_id: str, db=Depends(get_db)):
    """Sets status to inactive; the account is kept"""
    await service.deactivate_student(db, student_id)
    return {"success": True, "message": "Student account deactivated successfully"}
