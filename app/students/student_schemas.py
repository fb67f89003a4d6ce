from enum import Enum
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, validator

from app.auth.auth_models import UserStatus
from app.core import config

# ==================== QUERY ENUMS ====================

class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"

class StudentSortField(str, Enum):
    FIRST_NAME = "first_name"
    LAST_NAME = "last_name"
    EMAIL = "email"
    STATUS = "status"
    CREATED_AT = "created_at"

# ==================== ADMIN REQUEST SCHEMAS ====================

class StudentUpdate(BaseModel):
    """
    Admin edit of a student account; a new password is re-hashed
    """
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    status: Optional[UserStatus] = None

    @validator('email')
    def normalize_email(cls, v):
        return v.lower() if v else v

    @validator('password')
    def validate_password(cls, v):
        if v is not None and len(v) < config.MIN_PASSWORD_LENGTH:
            raise ValueError(
                f'Password must be at least {config.MIN_PASSWORD_LENGTH} characters long'
            )
        return v
