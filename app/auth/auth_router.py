from fastapi import APIRouter, Depends, Response

from app.auth import auth_service as service
from app.auth.auth_schemas import (
    RegisterRequest, LoginRequest, ForgotPasswordRequest, ResetPasswordRequest
)
from app.core.dependencies import get_db, get_notifier
from app.core.security import clear_session_cookie, set_session_cookie

router = APIRouter(prefix="/auth", tags=["Auth"])

# ==================== SESSION ====================

@router.post("/register", status_code=201)
async def register(
    data: RegisterRequest,
    response: Response,
    db=Depends(get_db),
    notifier=Depends(get_notifier)
):
    """
    Create a student account

    - 409 if the email is already registered
    - Sets the session cookie and queues a welcome email
    """
    user, token = await service.register(db, notifier, data)
    set_session_cookie(response, token)
    return {
        "success": True,
        "message": "Registration successful",
        "user": user
    }

@router.post("/login")
async def login(data: LoginRequest, response: Response, db=Depends(get_db)):
    """
    Authenticate and set the session cookie.
    The token carries the caller's current payment status.
    """
    user, token = await service.login(db, data)
    set_session_cookie(response, token)
    return {
        "success": True,
        "message": "Login successful",
        "user": user
    }

@router.post("/logout")
async def logout(response: Response):
    clear_session_cookie(response)
    return {"success": True, "message": "Logged out successfully"}

# ==================== PASSWORD RESET ====================

@router.post("/forgot-password")
async def forgot_password(
    data: ForgotPasswordRequest,
    db=Depends(get_db),
    notifier=Depends(get_notifier)
):
    message = await service.forgot_password(db, notifier, data)
    return {"success": True, "message": message}

@router.post("/reset-password")
async def reset_password(data: ResetPasswordRequest, db=Depends(get_db)):
    """
    Single-use: the stored token is cleared on success
    """
    await service.reset_password(db, data)
    return {"success": True, "message": "Password has been reset successfully"}
