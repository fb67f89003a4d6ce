"""
Payment & enrollment workflow

Transaction state machine: pending -> success | failed (both terminal).
A pending transaction is mutated exactly once, guarded by a
compare-and-set on its status; only the caller that wins the swap
sends notifications.
"""

import logging
import secrets
import time
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from pymongo import ReturnDocument

from app.auth.auth_models import PaymentStatus, Principal
from app.auth.auth_service import issue_token
from app.core import config
from app.core.database import serialize_doc, to_object_id, utcnow
from app.core.errors import (
    AlreadyEnrolled, NotFound, TransactionNotFound, ValidationError
)
from app.notifications.mailer import EmailKind
from app.payments.payment_models import GatewayVerification, TransactionStatus
from app.payments.payment_schemas import InitializePaymentRequest

logger = logging.getLogger(__name__)

VERIFIED_MESSAGE = "Payment verified successfully"
FAILED_MESSAGE = "Payment verification failed"

# ==================== HELPERS ====================

def to_minor_units(amount) -> int:
    """50.00 -> 5000, rounded half-up"""
    minor = (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(minor)

def generate_reference() -> str:
    return f"PAY-{int(time.time() * 1000)}-{secrets.randbelow(1_000_000):06d}"

def _outcome(status: TransactionStatus, payload: Optional[dict], token: Optional[str] = None) -> dict:
    return {
        "status": status.value,
        "message": VERIFIED_MESSAGE if status == TransactionStatus.SUCCESS else FAILED_MESSAGE,
        "data": serialize_doc(payload or {}),
        "token": token
    }

async def _find_owned(db, principal: Principal, reference: str) -> dict:
    """Another user's transaction is reported as missing"""
    txn = await db.transactions.find_one({
        "reference": reference,
        "user_id": principal.object_id
    })
    if not txn:
        raise TransactionNotFound()
    return txn

async def _enroll(db, txn: dict) -> dict:
    """
    Add the course to the user's enrolled set and record the payment.
    $addToSet makes repeats a no-op.
    """
    now = utcnow()
    user = await db.users.find_one_and_update(
        {"_id": txn["user_id"]},
        {
            "$addToSet": {"enrolled_courses": txn["course_id"]},
            "$set": {
                "payment": {
                    "status": PaymentStatus.SUCCESS.value,
                    "reference": txn["reference"],
                    "course_id": txn["course_id"],
                    "updated_at": now
                },
                "updated_at": now
            }
        },
        return_document=ReturnDocument.AFTER
    )
    if not user:
        raise NotFound("User not found")
    return user

def _notify_success(notifier, user: dict, course: Optional[dict], txn: dict, first_payment: bool) -> None:
    course_name = (course or {}).get("title") or "your course"
    notifier.enqueue(EmailKind.PAYMENT_CONFIRMATION, user.get("email"), {
        "first_name": user.get("first_name"),
        "course_name": course_name,
        "amount": f"{Decimal(txn['amount']) / 100:.2f}",
        "currency": txn.get("currency", config.PAYMENT_CURRENCY),
        "reference": txn["reference"],
        "paid_at": utcnow().strftime("%Y-%m-%d")
    })
    if first_payment:
        notifier.enqueue(EmailKind.WELCOME, user.get("email"), {
            "first_name": user.get("first_name"),
            "course_name": course_name
        })

# ==================== INITIALIZE ====================

async def initialize_payment(db, gateway, principal: Principal, data: InitializePaymentRequest) -> dict:
    """
    Start a checkout for one course

    Raises:
        400: Invalid course id / non-positive amount / amount below the course price
        404: Course not found
        409: Course already paid for (no gateway call)
        502: Gateway unreachable or rejected the request (nothing persisted)
    """
    course_id = to_object_id(data.course_id, "course id")
    amount = to_minor_units(data.amount)
    if amount <= 0:
        raise ValidationError("Amount must be greater than zero")

    course = await db.courses.find_one({"_id": course_id}, {"title": 1, "price": 1})
    if not course:
        raise NotFound("Course not found")
    if course.get("price") is not None and amount < to_minor_units(course["price"]):
        raise ValidationError("Amount is less than the course price")

    existing = await db.transactions.find_one({
        "user_id": principal.object_id,
        "course_id": course_id,
        "status": TransactionStatus.SUCCESS.value
    })
    if existing:
        raise AlreadyEnrolled()

    # Reuse a recent pending checkout for the same amount
    cutoff = utcnow() - timedelta(minutes=config.PENDING_PAYMENT_TTL_MINUTES)
    pending = await db.transactions.find_one(
        {
            "user_id": principal.object_id,
            "course_id": course_id,
            "status": TransactionStatus.PENDING.value,
            "amount": amount,
            "authorization_url": {"$ne": None},
            "created_at": {"$gte": cutoff}
        },
        sort=[("created_at", -1)]
    )
    if pending:
        logger.info(f"Reusing pending payment {pending['reference']} for {principal.email}")
        return {
            "status": "pending_payment",
            "authorization_url": pending["authorization_url"],
            "reference": pending["reference"],
            "reused": True
        }

    email = data.email or principal.email
    initialization = await gateway.initialize_transaction(
        email=email,
        amount=amount,
        currency=config.PAYMENT_CURRENCY,
        reference=generate_reference(),
        callback_url=f"{config.FRONTEND_URL}/payment/verify",
        metadata={
            "user_id": principal.user_id,
            "course_id": str(course_id),
            "payment_method": data.payment_method
        },
        channels=[data.payment_method]
    )

    now = utcnow()
    await db.transactions.insert_one({
        "user_id": principal.object_id,
        "course_id": course_id,
        "email": email,
        "amount": amount,
        "currency": config.PAYMENT_CURRENCY,
        "payment_method": data.payment_method,
        "status": TransactionStatus.PENDING.value,
        "reference": initialization.reference,
        "authorization_url": initialization.authorization_url,
        "access_code": initialization.access_code,
        "created_at": now,
        "updated_at": now
    })

    logger.info(f"🆕 Payment {initialization.reference} initialized for {email} ({amount} minor units)")
    return {
        "status": "pending_payment",
        "authorization_url": initialization.authorization_url,
        "reference": initialization.reference,
        "reused": False
    }

# ==================== VERIFY ====================

async def _settled_outcome(db, txn: dict) -> dict:
    """Outcome for a transaction that already reached a terminal state"""
    if txn["status"] == TransactionStatus.SUCCESS.value:
        user = await _enroll(db, txn)
        return _outcome(
            TransactionStatus.SUCCESS,
            txn.get("gateway_response"),
            issue_token(user, PaymentStatus.SUCCESS)
        )
    return _outcome(TransactionStatus.FAILED, txn.get("gateway_response"))

async def _compare_and_set(db, txn: dict, verification: GatewayVerification) -> Optional[dict]:
    now = utcnow()
    return await db.transactions.find_one_and_update(
        {"_id": txn["_id"], "status": TransactionStatus.PENDING.value},
        {"$set": {
            "status": verification.status.value,
            "gateway_response": verification.payload,
            "verified_at": now,
            "updated_at": now
        }},
        return_document=ReturnDocument.AFTER
    )

async def verify_payment(db, gateway, notifier, principal: Principal, reference: str) -> dict:
    """
    Settle a pending transaction against the gateway

    Safe to repeat: a settled transaction is answered from the stored
    verification payload without calling the gateway, and enrollment is
    re-applied so a crash between steps is repaired.

    Returns:
        {"status", "message", "data", "token"} where token is set only on success
    """
    reference = (reference or "").strip()
    if not reference:
        raise ValidationError("Payment reference required")

    txn = await _find_owned(db, principal, reference)

    if txn["status"] != TransactionStatus.PENDING.value:
        return await _settled_outcome(db, txn)

    verification = await gateway.verify_transaction(reference)

    updated = await _compare_and_set(db, txn, verification)
    if updated is None:
        # Lost the race to a concurrent verify
        current = await db.transactions.find_one({"_id": txn["_id"]})
        return await _settled_outcome(db, current)

    if not verification.succeeded:
        logger.warning(f"⚠️ Payment {reference} failed: {verification.payload.get('gateway_response')}")
        return _outcome(TransactionStatus.FAILED, verification.payload)

    user = await _enroll(db, updated)
    course = await db.courses.find_one({"_id": updated["course_id"]}, {"title": 1})

    successful = await db.transactions.count_documents({
        "user_id": updated["user_id"],
        "status": TransactionStatus.SUCCESS.value
    })
    _notify_success(notifier, user, course, updated, first_payment=successful == 1)

    logger.info(f"🎉 Payment {reference} verified, {user['email']} enrolled")
    return _outcome(
        TransactionStatus.SUCCESS,
        verification.payload,
        issue_token(user, PaymentStatus.SUCCESS)
    )

# ==================== STATUS ====================

async def get_payment_status(db, principal: Principal, reference: str) -> dict:
    txn = await _find_owned(db, principal, reference)
    view = serialize_doc(txn)
    view.pop("access_code", None)
    return view
