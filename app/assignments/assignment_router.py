from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.assignments import assignment_service as service
from app.assignments.assignment_schemas import AssignmentCreate, AssignmentUpdate
from app.auth.auth_models import Principal, Role
from app.core.dependencies import get_db, get_uploader, require_roles

require_admin = require_roles(Role.ADMIN)

router = APIRouter(
    prefix="/assignments",
    tags=["Assignments"],
    dependencies=[Depends(require_admin)]
)

# ==================== ASSIGNMENTS ====================

@router.post("", status_code=201)
async def create_assignment(
    payload: AssignmentCreate,
    db=Depends(get_db),
    admin: Principal = Depends(require_admin)
):
    assignment = await service.create_assignment(db, payload, admin.object_id)
    return {
        "success": True,
        "message": "Assignment created successfully",
        "data": assignment
    }

@router.get("")
async def list_assignments(
    course_id: Optional[str] = Query(None),
    module_id: Optional[str] = Query(None),
    db=Depends(get_db)
):
    """Optionally filtered by course and/or module"""
    assignments = await service.list_assignments(db, course_id, module_id)
    return {"success": True, "count": len(assignments), "data": assignments}

@router.get("/course/{course_id}")
async def list_course_assignments(course_id: str, db=Depends(get_db)):
    assignments = await service.list_assignments(db, course_id=course_id)
    return {"success": True, "count": len(assignments), "data": assignments}

@router.get("/module/{module_id}")
async def list_module_assignments(module_id: str, db=Depends(get_db)):
    assignments = await service.list_assignments(db, module_id=module_id)
    return {"success": True, "count": len(assignments), "data": assignments}

# ==================== ATTACHMENTS ====================

@router.delete("/attachments/{public_id:path}")
async def delete_attachment(public_id: str, uploader=Depends(get_uploader)):
    """
    Remove one file from the upload provider (public ids may contain '/')
    """
    await service.delete_attachment(uploader, public_id)
    return {"success": True, "message": "Attachment deleted successfully"}

# ==================== SINGLE ASSIGNMENT ====================

@router.get("/{assignment_id}")
async def get_assignment(assignment_id: str, db=Depends(get_db)):
    return {"success": True, "data": await service.get_assignment(db, assignment_id)}

@router.put("/{assignment_id}")
async def update_assignment(
    assignment_id: str,
    payload: AssignmentUpdate,
    db=Depends(get_db),
    uploader=Depends(get_uploader)
):
    """
    course_id/module_id cannot change once submissions exist;
    attachments dropped from the list are removed from the provider
    """
    assignment = await service.update_assignment(db, uploader, assignment_id, payload)
    return {
        "success": True,
        "message": "Assignment updated successfully",
        "data": assignment
    }

@router.delete("/{assignment_id}")
async def delete_assignment(
    assignment_id: str,
    db=Depends(get_db),
    uploader=Depends(get_uploader)
):
    """409 while submissions exist"""
    await service.delete_assignment(db, uploader, assignment_id)
    return {"success": True, "message": "Assignment deleted successfully"}
