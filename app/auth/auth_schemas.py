from pydantic import BaseModel, EmailStr, Field, validator
from typing import Optional

from app.core import config

# ==================== REQUEST SCHEMAS ====================

class RegisterRequest(BaseModel):
    """
    Student application / signup
    """
    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    phone: str = ""
    education: str = ""
    experience: str = ""
    motivation: str = ""
    how_heard: str = ""
    start_date: str = ""
    github_profile: str = ""
    country: Optional[str] = None

    @validator('email')
    def normalize_email(cls, v):
        return v.lower()

    @validator('password')
    def validate_password(cls, v):
        if len(v) < config.MIN_PASSWORD_LENGTH:
            raise ValueError(
                f'Password must be at least {config.MIN_PASSWORD_LENGTH} characters long'
            )
        return v

    @validator('first_name', 'last_name')
    def strip_names(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('must not be blank')
        return v

class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)

    @validator('email')
    def normalize_email(cls, v):
        return v.lower()

class ForgotPasswordRequest(BaseModel):
    email: EmailStr

    @validator('email')
    def normalize_email(cls, v):
        return v.lower()

class ResetPasswordRequest(BaseModel):
    """
    Password length is checked in the service so that an invalid token
    is reported before a weak password
    """
    token: str = Field(..., min_length=1)
    email: EmailStr
    new_password: str = Field(..., min_length=1)

    @validator('email')
    def normalize_email(cls, v):
        return v.lower()
