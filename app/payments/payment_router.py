"""
Paystack checkout endpoints

POST /payments/initialize      start a checkout, returns authorization_url
GET  /payments/verify          settle a checkout (idempotent)
GET  /payments/status/{ref}    read one of the caller's transactions
"""

from fastapi import APIRouter, Depends, Query, Response

from app.auth.auth_models import Principal
from app.core.dependencies import get_current_principal, get_db, get_gateway, get_notifier
from app.core.security import set_session_cookie
from app.payments import payment_service as service
from app.payments.payment_schemas import InitializePaymentRequest

router = APIRouter(prefix="/payments", tags=["Payment"])


@router.post("/initialize")
async def initialize_payment(
    data: InitializePaymentRequest,
    principal: Principal = Depends(get_current_principal),
    db=Depends(get_db),
    gateway=Depends(get_gateway)
):
    result = await service.initialize_payment(db, gateway, principal, data)
    return {"success": True, **result}


@router.get("/verify")
async def verify_payment(
    response: Response,
    reference: str = Query(""),
    principal: Principal = Depends(get_current_principal),
    db=Depends(get_db),
    gateway=Depends(get_gateway),
    notifier=Depends(get_notifier)
):
    """
    On success the session cookie is reissued with payment_status=success
    """
    outcome = await service.verify_payment(db, gateway, notifier, principal, reference)

    token = outcome.pop("token")
    if token:
        set_session_cookie(response, token)

    return {"success": True, **outcome}


@router.get("/status/{reference}")
async def get_payment_status(
    reference: str,
    principal: Principal = Depends(get_current_principal),
    db=Depends(get_db)
):
    transaction = await service.get_payment_status(db, principal, reference)
    return {"success": True, "data": transaction}
