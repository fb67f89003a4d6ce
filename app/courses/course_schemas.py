from pydantic import BaseModel, Field, validator
from typing import Optional

from app.courses.course_models import CourseStatus, LessonType

# ==================== COURSE ====================

class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    price: float = Field(..., ge=0)
    status: CourseStatus
    image_url: str = ""

    @validator('title')
    def strip_title(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Course title is required')
        return v

class CourseUpdate(BaseModel):
    """
    Partial update: only fields present in the body are merged
    """
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    status: Optional[CourseStatus] = None
    image_url: Optional[str] = None

    @validator('title')
    def strip_title(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError('Course title cannot be empty')
        return v

# ==================== MODULE ====================

class ModuleCreate(BaseModel):
    title: str = Field(..., min_length=1)
    description: str = ""
    order: Optional[int] = Field(None, ge=1)
    duration: Optional[int] = Field(None, ge=0)

class ModuleUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    order: Optional[int] = Field(None, ge=1)
    duration: Optional[int] = Field(None, ge=0)

# ==================== LESSON ====================

class LessonCreate(BaseModel):
    title: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    duration: int = Field(0, ge=0)
    order: Optional[int] = Field(None, ge=1)
    type: LessonType = LessonType.VIDEO

class LessonUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    duration: Optional[int] = Field(None, ge=0)
    order: Optional[int] = Field(None, ge=1)
    type: Optional[LessonType] = None
