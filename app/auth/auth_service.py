import hmac
import logging
from datetime import timedelta
from typing import Tuple
from urllib.parse import urlencode

from pymongo.errors import DuplicateKeyError

from app.auth.auth_models import PaymentStatus, Role, UserStatus
from app.auth.auth_schemas import (
    RegisterRequest, LoginRequest, ForgotPasswordRequest, ResetPasswordRequest
)
from app.core import config
from app.core.database import serialize_doc, strip_fields, utcnow
from app.core.errors import (
    DuplicateEmail, InvalidCredentials, InvalidOrExpiredToken, ValidationError
)
from app.core.security import (
    CREDENTIAL_FIELDS, create_session_token, generate_reset_token,
    hash_password, hash_reset_token, verify_password
)
from app.notifications.mailer import EmailKind

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = (
    "If an account with that email exists, a password reset link has been sent."
)

# ==================== HELPERS ====================

def public_user(user: dict) -> dict:
    """User document minus credential fields, JSON-safe"""
    return serialize_doc(strip_fields(user, *CREDENTIAL_FIELDS))

def issue_token(user: dict, payment_status: PaymentStatus) -> str:
    return create_session_token(
        user_id=str(user["_id"]),
        role=user.get("role", Role.STUDENT.value),
        email=user["email"],
        country=user.get("country") or config.DEFAULT_COUNTRY,
        payment_status=payment_status.value
    )

async def compute_payment_status(db, user: dict) -> PaymentStatus:
    """
    success        - a successful transaction exists (or recorded on the user)
    partially_paid - a partial payment record exists
    pending        - otherwise
    """
    if (user.get("payment") or {}).get("status") == PaymentStatus.SUCCESS.value:
        return PaymentStatus.SUCCESS

    paid = await db.transactions.find_one({
        "user_id": user["_id"],
        "status": "success"
    })
    if paid:
        return PaymentStatus.SUCCESS

    partial = await db.partial_payments.find_one({
        "user_id": user["_id"],
        "status": PaymentStatus.PARTIALLY_PAID.value
    })
    if partial:
        return PaymentStatus.PARTIALLY_PAID

    return PaymentStatus.PENDING

# ==================== REGISTER / LOGIN ====================

async def register(db, notifier, data: RegisterRequest) -> Tuple[dict, str]:
    """
    Create a student account and issue its first session token

    Raises:
        409: Email already registered
    """
    if await db.users.find_one({"email": data.email}):
        raise DuplicateEmail()

    now = utcnow()
    user = {
        **data.dict(exclude={"password", "country"}),
        "password": hash_password(data.password),
        "country": data.country or config.DEFAULT_COUNTRY,
        "role": Role.STUDENT.value,
        "status": UserStatus.ACTIVE.value,
        "enrolled_courses": [],
        "created_at": now,
        "updated_at": now
    }

    try:
        result = await db.users.insert_one(user)
    except DuplicateKeyError:
        raise DuplicateEmail()
    user["_id"] = result.inserted_id

    notifier.enqueue(EmailKind.WELCOME, user["email"], {
        "first_name": user["first_name"],
        "last_name": user["last_name"]
    })

    logger.info(f"✅ Registered {user['email']}")
    return public_user(user), issue_token(user, PaymentStatus.PENDING)

async def login(db, data: LoginRequest) -> Tuple[dict, str]:
    """
    Unknown email, wrong password and deactivated accounts all fail the
    same way
    """
    user = await db.users.find_one({"email": data.email})
    if not user or not verify_password(data.password, user.get("password")):
        raise InvalidCredentials()
    if user.get("status") == UserStatus.INACTIVE.value:
        raise InvalidCredentials()

    payment_status = await compute_payment_status(db, user)

    view = public_user(user)
    view["payment"] = {**(view.get("payment") or {}), "status": payment_status.value}

    return view, issue_token(user, payment_status)

# ==================== PASSWORD RESET ====================

async def forgot_password(db, notifier, data: ForgotPasswordRequest) -> str:
    """Same answer whether or not the account exists"""
    user = await db.users.find_one({"email": data.email})
    if not user or user.get("status") == UserStatus.INACTIVE.value:
        return FORGOT_PASSWORD_MESSAGE

    token = generate_reset_token()
    await db.users.update_one(
        {"_id": user["_id"]},
        {"$set": {
            "reset_token_hash": hash_reset_token(token),
            "reset_token_expires": utcnow() + timedelta(minutes=config.RESET_TOKEN_TTL_MINUTES),
            "updated_at": utcnow()
        }}
    )

    query = urlencode({"token": token, "email": user["email"]})
    notifier.enqueue(EmailKind.PASSWORD_RESET, user["email"], {
        "first_name": user.get("first_name"),
        "reset_url": f"{config.FRONTEND_URL}/reset-password?{query}",
        "expires_minutes": config.RESET_TOKEN_TTL_MINUTES
    })

    return FORGOT_PASSWORD_MESSAGE

async def reset_password(db, data: ResetPasswordRequest) -> None:
    """
    Raises:
        400: Unknown user, token mismatch, expired token, weak password
    """
    user = await db.users.find_one({"email": data.email})
    if not user:
        raise InvalidOrExpiredToken()

    stored_hash = user.get("reset_token_hash")
    expires = user.get("reset_token_expires")
    if not stored_hash or not expires:
        raise InvalidOrExpiredToken()
    if not hmac.compare_digest(stored_hash, hash_reset_token(data.token)):
        raise InvalidOrExpiredToken()
    if expires < utcnow():
        raise InvalidOrExpiredToken()

    if len(data.new_password) < config.MIN_PASSWORD_LENGTH:
        raise ValidationError(
            f"Password must be at least {config.MIN_PASSWORD_LENGTH} characters long"
        )

    # Filter on the digest so a token can only be spent once
    result = await db.users.update_one(
        {"_id": user["_id"], "reset_token_hash": stored_hash},
        {
            "$set": {"password": hash_password(data.new_password), "updated_at": utcnow()},
            "$unset": {"reset_token_hash": "", "reset_token_expires": ""}
        }
    )
    if result.modified_count == 0:
        raise InvalidOrExpiredToken()

    logger.info(f"✅ Password reset for {user['email']}")
