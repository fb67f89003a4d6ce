from datetime import datetime, timezone
from typing import List, Optional

from bson import ObjectId
from pydantic import BaseModel, Field, validator

from app.assignments.assignment_models import AssignmentStatus, SubmissionType

# ==================== SHARED VALIDATORS ====================

def _object_id_string(value: Optional[str], label: str) -> Optional[str]:
    if value is None:
        return value
    if not ObjectId.is_valid(value):
        raise ValueError(f'Invalid {label} ID format')
    return value

def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Dates are stored as naive UTC"""
    if value is not None and value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value

def _clean_title(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not 3 <= len(value) <= 100:
        raise ValueError('Title must be between 3 and 100 characters')
    return value

# ==================== REQUEST SCHEMAS ====================

class Attachment(BaseModel):
    url: str = Field(..., min_length=1)
    public_id: Optional[str] = None
    filename: Optional[str] = None

class AssignmentCreate(BaseModel):
    title: str
    description: str = Field("", max_length=1000)
    instructions: str = ""
    course_id: str
    module_id: str
    due_date: datetime
    points: int = Field(100, ge=0)
    submission_type: SubmissionType = SubmissionType.TEXT
    status: AssignmentStatus = AssignmentStatus.DRAFT
    attachments: List[Attachment] = []

    @validator('title')
    def validate_title(cls, v):
        return _clean_title(v)

    @validator('due_date')
    def validate_due_date(cls, v):
        return _naive_utc(v)

    @validator('description', 'instructions')
    def strip_text(cls, v):
        return v.strip()

    @validator('course_id')
    def validate_course_id(cls, v):
        return _object_id_string(v, 'course')

    @validator('module_id')
    def validate_module_id(cls, v):
        return _object_id_string(v, 'module')

class AssignmentUpdate(BaseModel):
    """
    Partial update; course_id/module_id are frozen once submissions exist
    """
    title: Optional[str] = None
    description: Optional[str] = Field(None, max_length=1000)
    instructions: Optional[str] = None
    course_id: Optional[str] = None
    module_id: Optional[str] = None
    due_date: Optional[datetime] = None
    points: Optional[int] = Field(None, ge=0)
    submission_type: Optional[SubmissionType] = None
    status: Optional[AssignmentStatus] = None
    attachments: Optional[List[Attachment]] = None

    @validator('title')
    def validate_title(cls, v):
        return _clean_title(v)

    @validator('due_date')
    def validate_due_date(cls, v):
        return _naive_utc(v)

    @validator('course_id')
    def validate_course_id(cls, v):
        return _object_id_string(v, 'course')

    @validator('module_id')
    def validate_module_id(cls, v):
        return _object_id_string(v, 'module')
