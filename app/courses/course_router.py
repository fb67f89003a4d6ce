from fastapi import APIRouter, Depends

from app.auth.auth_models import Principal, Role
from app.core.dependencies import get_db, require_roles
from app.courses import course_service as service
from app.courses.course_schemas import (
    CourseCreate, CourseUpdate, ModuleCreate, ModuleUpdate, LessonCreate, LessonUpdate
)

require_admin = require_roles(Role.ADMIN)

router = APIRouter(
    prefix="/courses",
    tags=["Courses"],
    dependencies=[Depends(require_admin)]
)

# ==================== COURSES ====================

@router.post("", status_code=201)
async def create_course(
    course: CourseCreate,
    db=Depends(get_db),
    admin: Principal = Depends(require_admin)
):
    """Create new course (admin only, title must be unique)"""
    course_id = await service.create_course(db, course, admin.object_id)
    return {
        "success": True,
        "message": "Course created successfully",
        "data": {"_id": course_id, "course_id": course_id}
    }

@router.get("")
async def list_courses(db=Depends(get_db)):
    """
    All courses with enrolled_students, module_count and lesson_count
    """
    courses = await service.list_courses(db)
    return {"success": True, "count": len(courses), "data": courses}

@router.get("/{course_id}")
async def get_course(course_id: str, db=Depends(get_db)):
    return {"success": True, "data": await service.get_course(db, course_id)}

@router.put("/{course_id}")
async def update_course(course_id: str, updates: CourseUpdate, db=Depends(get_db)):
    course = await service.update_course(db, course_id, updates)
    return {"success": True, "message": "Course updated successfully", "data": course}

@router.delete("/{course_id}")
async def delete_course(course_id: str, db=Depends(get_db)):
    await service.delete_course(db, course_id)
    return {"success": True, "message": "Course deleted successfully"}

# ==================== MODULES ====================

@router.post("/{course_id}/modules", status_code=201)
async def add_module(course_id: str, payload: ModuleCreate, db=Depends(get_db)):
    """order defaults to the end of the module list"""
    module = await service.add_module(db, course_id, payload)
    return {"success": True, "message": "Module added successfully", "data": module}

@router.put("/{course_id}/modules/{module_id}")
async def update_module(
    course_id: str,
    module_id: str,
    payload: ModuleUpdate,
    db=Depends(get_db)
):
    module = await service.update_module(db, course_id, module_id, payload)
    return {"success": True, "message": "Module updated successfully", "data": module}

@router.delete("/{course_id}/modules/{module_id}")
async def delete_module(course_id: str, module_id: str, db=Depends(get_db)):
    await service.delete_module(db, course_id, module_id)
    return {"success": True, "message": "Module deleted successfully"}

# ==================== LESSONS ====================

@router.post("/{course_id}/modules/{module_id}/lessons", status_code=201)
async def add_lesson(
    course_id: str,
    module_id: str,
    payload: LessonCreate,
    db=Depends(get_db)
):
    lesson = await service.add_lesson(db, course_id, module_id, payload)
    return {"success": True, "message": "Lesson added successfully", "data": lesson}

@router.put("/{course_id}/modules/{module_id}/lessons/{lesson_id}")
async def update_lesson(
    course_id: str,
    module_id: str,
    lesson_id: str,
    payload: LessonUpdate,
    db=Depends(get_db)
):
    lesson = await service.update_lesson(db, course_id, module_id, lesson_id, payload)
    return {"success": True, "message": "Lesson updated successfully", "data": lesson}

@router.delete("/{course_id}/modules/{module_id}/lessons/{lesson_id}")
async def delete_lesson(
    course_id: str,
    module_id: str,
    lesson_id: str,
    db=Depends(get_db)
):
    await service.delete_lesson(db, course_id, module_id, lesson_id)
    return {"success": True, "message": "Lesson deleted successfully"}
