"""
Course catalog: courses with embedded modules and lessons

Module and lesson edits load the course, change the tree in memory by
stable sub-id and write it back guarded by the course's version counter.
"""

import logging
from typing import List, Optional, Tuple

from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from app.core.database import clean_fields, serialize_doc, to_object_id, utcnow
from app.core.errors import Conflict, NotFound
from app.courses.course_schemas import (
    CourseCreate, CourseUpdate, ModuleCreate, ModuleUpdate, LessonCreate, LessonUpdate
)

logger = logging.getLogger(__name__)

DUPLICATE_TITLE = "A course with this title already exists"

# ==================== HELPERS ====================

def _by_order(items: list) -> list:
    return sorted(items, key=lambda item: item.get("order") or 0)

def _present_course(course: dict) -> dict:
    course = dict(course)
    modules = []
    for module in _by_order(course.get("modules", [])):
        module = dict(module)
        module["lessons"] = _by_order(module.get("lessons", []))
        modules.append(module)
    course["modules"] = modules
    return serialize_doc(course)

def _find_module(course: dict, module_id: str) -> Tuple[int, dict]:
    for index, module in enumerate(course.get("modules", [])):
        if str(module["_id"]) == module_id:
            return index, module
    raise NotFound("Module not found")

def _find_lesson(module: dict, lesson_id: str) -> Tuple[int, dict]:
    for index, lesson in enumerate(module.get("lessons", [])):
        if str(lesson["_id"]) == lesson_id:
            return index, lesson
    raise NotFound("Lesson not found")

async def load_course(db, course_id: str) -> dict:
    course = await db.courses.find_one({"_id": to_object_id(course_id, "course id")})
    if not course:
        raise NotFound("Course not found")
    return course

async def _save_modules(db, course: dict, modules: list) -> None:
    """
    Write the edited tree back only if nobody else changed it since it
    was loaded
    """
    result = await db.courses.update_one(
        {"_id": course["_id"], "version": course.get("version")},
        {
            "$set": {"modules": modules, "updated_at": utcnow()},
            "$inc": {"version": 1}
        }
    )
    if result.matched_count == 0:
        logger.warning(f"⚠️ Concurrent edit on course {course['_id']}")
        raise Conflict("Course was modified concurrently, please retry")

async def _ensure_title_available(db, title: str, exclude_id: Optional[ObjectId] = None) -> None:
    query = {"title": title}
    if exclude_id is not None:
        query["_id"] = {"$ne": exclude_id}
    if await db.courses.find_one(query, {"_id": 1}):
        raise Conflict(DUPLICATE_TITLE)

# ==================== COURSE CRUD ====================

async def create_course(db, data: CourseCreate, creator_id: ObjectId) -> str:
    """
    Raises:
        409: Title already used
    """
    await _ensure_title_available(db, data.title)

    now = utcnow()
    course = {
        **clean_fields(data.dict()),
        "modules": [],
        "version": 0,
        "created_by": creator_id,
        "created_at": now,
        "updated_at": now
    }

    try:
        result = await db.courses.insert_one(course)
    except DuplicateKeyError:
        raise Conflict(DUPLICATE_TITLE)

    logger.info(f"✅ Course created: {data.title}")
    return str(result.inserted_id)

async def _enrollment_counts(db) -> dict:
    pipeline = [
        {"$unwind": "$enrolled_courses"},
        {"$group": {"_id": "$enrolled_courses", "count": {"$sum": 1}}}
    ]
    rows = await db.users.aggregate(pipeline).to_list(length=None)
    return {str(row["_id"]): row["count"] for row in rows}

async def list_courses(db) -> List[dict]:
    """Every course with enrolled_students, module_count and lesson_count"""
    courses = await db.courses.find().sort("created_at", -1).to_list(length=None)
    counts = await _enrollment_counts(db)

    results = []
    for course in courses:
        modules = course.get("modules", [])
        view = _present_course(course)
        view["enrolled_students"] = counts.get(str(course["_id"]), 0)
        view["module_count"] = len(modules)
        view["lesson_count"] = sum(len(module.get("lessons", [])) for module in modules)
        results.append(view)
    return results

async def get_course(db, course_id: str) -> dict:
    return _present_course(await load_course(db, course_id))

async def update_course(db, course_id: str, data: CourseUpdate) -> dict:
    """
    Partial merge. Keeping the course's own title is not a conflict.
    """
    course = await load_course(db, course_id)
    updates = clean_fields(data.dict(exclude_unset=True))

    if "title" in updates and updates["title"] != course.get("title"):
        await _ensure_title_available(db, updates["title"], exclude_id=course["_id"])

    updates["updated_at"] = utcnow()
    try:
        await db.courses.update_one({"_id": course["_id"]}, {"$set": updates})
    except DuplicateKeyError:
        raise Conflict(DUPLICATE_TITLE)

    return await get_course(db, course_id)

async def delete_course(db, course_id: str) -> None:
    result = await db.courses.delete_one({"_id": to_object_id(course_id, "course id")})
    if result.deleted_count == 0:
        raise NotFound("Course not found")
    logger.info(f"Course {course_id} deleted")

# ==================== MODULES ====================

async def add_module(db, course_id: str, data: ModuleCreate) -> dict:
    course = await load_course(db, course_id)
    modules = list(course.get("modules", []))

    now = utcnow()
    module = {
        "_id": ObjectId(),
        **clean_fields(data.dict()),
        "lessons": [],
        "created_at": now,
        "updated_at": now
    }
    module["order"] = data.order or len(modules) + 1
    modules.append(module)

    await _save_modules(db, course, modules)
    return serialize_doc(module)

async def update_module(db, course_id: str, module_id: str, data: ModuleUpdate) -> dict:
    course = await load_course(db, course_id)
    modules = list(course.get("modules", []))
    index, module = _find_module(course, module_id)

    module = {**module, **clean_fields(data.dict(exclude_unset=True)), "updated_at": utcnow()}
    modules[index] = module

    await _save_modules(db, course, modules)
    return serialize_doc(module)

async def delete_module(db, course_id: str, module_id: str) -> None:
    course = await load_course(db, course_id)
    index, _ = _find_module(course, module_id)
    modules = [m for i, m in enumerate(course.get("modules", [])) if i != index]
    await _save_modules(db, course, modules)

# ==================== LESSONS ====================

async def add_lesson(db, course_id: str, module_id: str, data: LessonCreate) -> dict:
    course = await load_course(db, course_id)
    modules = list(course.get("modules", []))
    index, module = _find_module(course, module_id)
    lessons = list(module.get("lessons", []))

    now = utcnow()
    lesson = {
        "_id": ObjectId(),
        **clean_fields(data.dict()),
        "created_at": now,
        "updated_at": now
    }
    lesson["order"] = data.order or len(lessons) + 1
    lessons.append(lesson)

    modules[index] = {**module, "lessons": lessons, "updated_at": now}
    await _save_modules(db, course, modules)
    return serialize_doc(lesson)

async def update_lesson(db, course_id: str, module_id: str, lesson_id: str, data: LessonUpdate) -> dict:
    course = await load_course(db, course_id)
    modules = list(course.get("modules", []))
    module_index, module = _find_module(course, module_id)
    lessons = list(module.get("lessons", []))
    lesson_index, lesson = _find_lesson(module, lesson_id)

    lesson = {**lesson, **clean_fields(data.dict(exclude_unset=True)), "updated_at": utcnow()}
    lessons[lesson_index] = lesson
    modules[module_index] = {**module, "lessons": lessons}

    await _save_modules(db, course, modules)
    return serialize_doc(lesson)

async def delete_lesson(db, course_id: str, module_id: str, lesson_id: str) -> None:
    course = await load_course(db, course_id)
    modules = list(course.get("modules", []))
    module_index, module = _find_module(course, module_id)
    lesson_index, _ = _find_lesson(module, lesson_id)

    lessons = [l for i, l in enumerate(module.get("lessons", [])) if i != lesson_index]
    modules[module_index] = {**module, "lessons": lessons, "updated_at": utcnow()}
    await _save_modules(db, course, modules)

# ==================== LOOKUPS ====================

async def get_titles(db, course_ids: list) -> dict:
    """
    {course_id: {"title": ..., "modules": {module_id: title}}} for listing
    assignments
    """
    courses = await db.courses.find(
        {"_id": {"$in": course_ids}},
        {"title": 1, "modules": 1}
    ).to_list(length=None)
    return {
        str(course["_id"]): {
            "title": course.get("title"),
            "modules": {
                str(module["_id"]): module.get("title")
                for module in course.get("modules", [])
            }
        }
        for course in courses
    }

def find_module(course: dict, module_id: str) -> Optional[dict]:
    try:
        return _find_module(course, module_id)[1]
    except NotFound:
        return None
