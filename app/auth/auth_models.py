from enum import Enum
from bson import ObjectId

# ==================== ENUMS ====================

class Role(str, Enum):
    STUDENT = "student"
    ADMIN = "admin"
    INSTRUCTOR = "instructor"

class UserStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"

class PaymentStatus(str, Enum):
    PENDING = "pending"
    PARTIALLY_PAID = "partially_paid"
    SUCCESS = "success"

# ==================== PRINCIPAL ====================

class Principal:
    """
    Authenticated caller, resolved from the session token and the
    current user record (role is always taken from the database)
    """
    def __init__(self, user: dict, claims: dict):
        self.object_id: ObjectId = user["_id"]
        self.user_id = str(user["_id"])
        self.role = Role(user.get("role", Role.STUDENT.value))
        self.email = user.get("email")
        self.country = user.get("country") or claims.get("country")
        self.payment_status = PaymentStatus(
            claims.get("payment_status", PaymentStatus.PENDING.value)
        )
        self.user = user
