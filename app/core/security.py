import hashlib
import secrets
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Response
from jose import ExpiredSignatureError, JWTError, jwt
from passlib.context import CryptContext

from app.core import config
from app.core.errors import AuthError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

CREDENTIAL_FIELDS = ("password", "reset_token_hash", "reset_token_expires")


# ==================== PASSWORDS ====================

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return pwd_context.verify(password, hashed)
    except ValueError:
        return False


# ==================== RESET TOKENS ====================

def generate_reset_token() -> str:
    return secrets.token_urlsafe(32)


def hash_reset_token(token: str) -> str:
    """Only the digest is stored"""
    return hashlib.sha256(token.encode()).hexdigest()


# ==================== SESSION TOKENS ====================

def create_session_token(
    user_id: str,
    role: str,
    email: str,
    country: str,
    payment_status: str,
    expires_delta: Optional[timedelta] = None
) -> str:
    expire = datetime.utcnow() + (expires_delta or timedelta(days=config.TOKEN_EXPIRE_DAYS))
    claims = {
        "sub": user_id,
        "role": role,
        "email": email,
        "country": country,
        "payment_status": payment_status,
        "exp": expire,
    }
    return jwt.encode(claims, config.JWT_SECRET_KEY, algorithm=config.JWT_ALGORITHM)


def decode_session_token(token: str) -> dict:
    try:
        return jwt.decode(token, config.JWT_SECRET_KEY, algorithms=[config.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise AuthError("Session expired. Please log in again.")
    except JWTError:
        raise AuthError("Invalid or expired token.")


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=config.COOKIE_NAME,
        value=token,
        max_age=config.TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        httponly=True,
        secure=config.IS_PRODUCTION,
        samesite=config.COOKIE_SAMESITE,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=config.COOKIE_NAME,
        httponly=True,
        secure=config.IS_PRODUCTION,
        samesite=config.COOKIE_SAMESITE,
    )
