from typing import Optional

from fastapi import Depends, Header, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.auth.auth_models import Principal, Role, UserStatus
from app.core import config
from app.core.database import to_object_id
from app.core.errors import AuthError, Forbidden, ValidationError
from app.core.security import decode_session_token

# ==================== COLLABORATORS ====================

async def get_db(request: Request) -> AsyncIOMotorDatabase:
    """Database dependency"""
    return request.app.state.database.db

def get_gateway(request: Request):
    return request.app.state.gateway

def get_uploader(request: Request):
    return request.app.state.uploader

def get_notifier(request: Request):
    return request.app.state.notifier

# ==================== AUTH ====================

def _extract_token(request: Request, authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization.split(" ", 1)[1].strip() or None
    return request.cookies.get(config.COOKIE_NAME)

async def get_current_principal(
    request: Request,
    authorization: Optional[str] = Header(None),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> Principal:
    """
    Resolve the caller from the token cookie (or Bearer header)

    Raises:
        401: Missing/invalid/expired token, unknown or deactivated user
    """
    token = _extract_token(request, authorization)
    if not token:
        raise AuthError("Access denied. No token provided.")

    claims = decode_session_token(token)
    user_id = claims.get("sub")
    if not user_id:
        raise AuthError("Invalid token: missing user id")

    try:
        object_id = to_object_id(user_id)
    except ValidationError:
        raise AuthError("Invalid token: malformed user id")

    user = await db.users.find_one({"_id": object_id})
    if not user or user.get("status") == UserStatus.INACTIVE.value:
        raise AuthError("User not found. Please log in again.")

    return Principal(user, claims)

def require_roles(*roles: Role):
    """Allow-list role gate; no roles means any authenticated user"""
    async def role_dep(principal: Principal = Depends(get_current_principal)) -> Principal:
        if roles and principal.role not in roles:
            raise Forbidden()
        return principal
    return role_dep
