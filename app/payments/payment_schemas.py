from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, validator

from app.core import config

# ==================== REQUEST SCHEMAS ====================

class InitializePaymentRequest(BaseModel):
    """
    amount is in major units (e.g. 50.00 GHS).
    email defaults to the caller's account email.
    """
    email: Optional[EmailStr] = None
    amount: Decimal = Field(..., gt=0)
    course_id: str = Field(..., min_length=1)
    payment_method: str = config.PAYMENT_DEFAULT_METHOD

    @validator('payment_method')
    def validate_payment_method(cls, v):
        v = v.strip().lower()
        if not v:
            raise ValueError('payment_method must not be blank')
        return v
