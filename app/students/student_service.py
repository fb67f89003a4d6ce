import asyncio
import logging
import math
import re
from typing import Optional

from app.assignments.assignment_models import SubmissionStatus
from app.auth.auth_models import Role, UserStatus
from app.auth.auth_service import public_user
from app.core.database import serialize_doc, serialize_many, to_object_id, utcnow
from app.core.errors import Conflict, NotFound
from app.core.security import hash_password
from app.courses import course_service
from app.students.student_permissions import StudentContext, verify_course_enrollment
from app.students.student_schemas import SortOrder, StudentSortField, StudentUpdate

logger = logging.getLogger(__name__)

UPCOMING_ASSIGNMENTS_LIMIT = 5
RECENT_TRANSACTIONS_LIMIT = 5

# ==================== HELPERS ====================

def submission_status(assignment: dict, student: StudentContext) -> SubmissionStatus:
    for entry in assignment.get("submitted_by") or []:
        if entry.get("user_id") == student.object_id:
            return SubmissionStatus.GRADED if entry.get("graded") else SubmissionStatus.SUBMITTED
    return SubmissionStatus.PENDING

def _page_count(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0

# ==================== DASHBOARD ====================

async def get_dashboard(db, student: StudentContext) -> dict:
    """
    Profile, enrolled courses, next upcoming assignments and latest
    transactions; the three reads run concurrently
    """
    enrolled = student.enrolled_courses

    courses, assignments, transactions = await asyncio.gather(
        db.courses.find({"_id": {"$in": enrolled}}).to_list(length=None),
        db.assignments.find({
            "course_id": {"$in": enrolled},
            "due_date": {"$gte": utcnow()}
        }).sort("due_date", 1).limit(UPCOMING_ASSIGNMENTS_LIMIT).to_list(length=None),
        db.transactions.find({"user_id": student.object_id})
            .sort("created_at", -1)
            .limit(RECENT_TRANSACTIONS_LIMIT)
            .to_list(length=None)
    )

    return {
        "user": public_user(student.user),
        "courses": serialize_many(courses),
        "assignments": serialize_many(assignments),
        "transactions": serialize_many(transactions)
    }

async def get_enrolled_courses(db, student: StudentContext) -> list:
    courses = await db.courses.find(
        {"_id": {"$in": student.enrolled_courses}}
    ).to_list(length=None)
    return serialize_many(courses)

async def get_course_detail(db, student: StudentContext, course_id: str) -> dict:
    """
    Raises:
        403: Not enrolled in this course
        404: Course no longer exists
    """
    course_oid = to_object_id(course_id, "course id")
    verify_course_enrollment(course_oid, student)

    course, progress = await asyncio.gather(
        course_service.get_course(db, course_id),
        db.user_progress.find_one({"user_id": student.object_id, "course_id": course_oid})
    )

    course["progress"] = serialize_doc(progress) if progress else {
        "completed_lessons": [],
        "last_accessed": None
    }
    return course

async def get_assignments(
    db,
    student: StudentContext,
    status: Optional[SubmissionStatus] = None
) -> list:
    """
    Assignments of enrolled courses with the student's submission_status.
    "pending" only lists assignments that are still open.
    """
    assignments = await db.assignments.find(
        {"course_id": {"$in": student.enrolled_courses}}
    ).sort("due_date", 1).to_list(length=None)

    now = utcnow()
    results = []
    for assignment in assignments:
        current = submission_status(assignment, student)
        if status is not None and current != status:
            continue
        if status == SubmissionStatus.PENDING and assignment.get("due_date") and assignment["due_date"] < now:
            continue

        view = serialize_doc(assignment)
        view.pop("submitted_by", None)
        view["submission_status"] = current.value
        results.append(view)
    return results

async def get_transactions(
    db,
    student: StudentContext,
    status: Optional[str] = None,
    page: int = 1,
    limit: int = 10
) -> dict:
    query = {"user_id": student.object_id}
    if status:
        query["status"] = status

    transactions, total = await asyncio.gather(
        db.transactions.find(query)
            .sort("created_at", -1)
            .skip((page - 1) * limit)
            .limit(limit)
            .to_list(length=None),
        db.transactions.count_documents(query)
    )

    return {
        "transactions": serialize_many(transactions),
        "total": total,
        "page": page,
        "total_pages": _page_count(total, limit)
    }

# ==================== ADMIN: STUDENT MANAGEMENT ====================

async def _load_student(db, student_id: str) -> dict:
    student = await db.users.find_one({
        "_id": to_object_id(student_id, "student ID"),
        "role": Role.STUDENT.value
    })
    if not student:
        raise NotFound("Student not found")
    return student

async def list_students(
    db,
    page: int = 1,
    limit: int = 10,
    q: str = "",
    sort_field: StudentSortField = StudentSortField.FIRST_NAME,
    sort_order: SortOrder = SortOrder.ASC
) -> dict:
    query = {"role": Role.STUDENT.value}
    if q:
        pattern = {"$regex": re.escape(q), "$options": "i"}
        query["$or"] = [
            {"first_name": pattern},
            {"last_name": pattern},
            {"email": pattern}
        ]

    direction = 1 if sort_order == SortOrder.ASC else -1
    students, total = await asyncio.gather(
        db.users.find(query)
            .sort(sort_field.value, direction)
            .skip((page - 1) * limit)
            .limit(limit)
            .to_list(length=None),
        db.users.count_documents(query)
    )

    return {
        "students": [public_user(s) for s in students],
        "total_students": total,
        "page": page,
        "total_pages": _page_count(total, limit)
    }

async def update_student(db, student_id: str, data: StudentUpdate) -> dict:
    """
    Raises:
        404: Not a student
        409: Email already used by another account
    """
    student = await _load_student(db, student_id)
    updates = data.dict(exclude_unset=True)
    updates = {key: value for key, value in updates.items() if value is not None}

    if "email" in updates and updates["email"] != student.get("email"):
        taken = await db.users.find_one({
            "email": updates["email"],
            "_id": {"$ne": student["_id"]}
        })
        if taken:
            raise Conflict("Email already in use by another user")

    if "password" in updates:
        updates["password"] = hash_password(updates["password"])
    if "status" in updates:
        updates["status"] = UserStatus(updates["status"]).value

    updates["updated_at"] = utcnow()
    await db.users.update_one({"_id": student["_id"]}, {"$set": updates})

    logger.info(f"Student {student_id} updated")
    return public_user(await db.users.find_one({"_id": student["_id"]}))

async def deactivate_student(db, student_id: str) -> None:
    """Accounts are never hard-deleted"""
    student = await _load_student(db, student_id)
    await db.users.update_one(
        {"_id": student["_id"]},
        {"$set": {"status": UserStatus.INACTIVE.value, "updated_at": utcnow()}}
    )
    logger.info(f"Student {student_id} deactivated")
