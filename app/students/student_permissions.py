from typing import List

from bson import ObjectId
from fastapi import Depends

from app.auth.auth_models import Principal, Role
from app.core.dependencies import require_roles
from app.core.errors import Forbidden


class StudentContext:
    """
    Authenticated student and their enrolled set
    """
    def __init__(self, principal: Principal):
        self.principal = principal
        self.object_id: ObjectId = principal.object_id
        self.user_id = principal.user_id
        self.email = principal.email
        self.user = principal.user
        self.enrolled_courses: List[ObjectId] = list(principal.user.get("enrolled_courses") or [])

    def is_enrolled(self, course_id: ObjectId) -> bool:
        return course_id in self.enrolled_courses


async def get_current_student(
    principal: Principal = Depends(require_roles(Role.STUDENT))
) -> StudentContext:
    """
    Dependency: caller must be a student

    Raises:
        401: Invalid token
        403: Admins/instructors blocked
    """
    return StudentContext(principal)


def verify_course_enrollment(course_id: ObjectId, student: StudentContext) -> None:
    if not student.is_enrolled(course_id):
        raise Forbidden("Not enrolled in this course")
