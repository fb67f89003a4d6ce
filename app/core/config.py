"""
Skillspad Backend Configuration
Environment-driven settings, read once at import time
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ==================== ENVIRONMENT ====================

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
IS_PRODUCTION = ENVIRONMENT == "production"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# ==================== DATABASE ====================

MONGO_URL = os.getenv("MONGO_URL", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "skillspad")

# ==================== SESSION ====================

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "dev-secret-change-me")
JWT_ALGORITHM = "HS256"
TOKEN_EXPIRE_DAYS = int(os.getenv("TOKEN_EXPIRE_DAYS", "7"))
COOKIE_NAME = os.getenv("COOKIE_NAME", "token")
COOKIE_SAMESITE = os.getenv("COOKIE_SAMESITE", "lax")

RESET_TOKEN_TTL_MINUTES = int(os.getenv("RESET_TOKEN_TTL_MINUTES", "60"))
MIN_PASSWORD_LENGTH = int(os.getenv("MIN_PASSWORD_LENGTH", "6"))
DEFAULT_COUNTRY = os.getenv("DEFAULT_COUNTRY", "GH")

# ==================== FRONTEND / CORS ====================

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000").rstrip("/")
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("ALLOWED_ORIGINS", FRONTEND_URL).split(",")
    if origin.strip()
]

# ==================== PAYSTACK ====================

PAYSTACK_BASE_URL = os.getenv("PAYSTACK_BASE_URL", "https://api.paystack.co")
PAYSTACK_SECRET_KEY = (
    os.getenv("PAYSTACK_SECRET_KEY_LIVE") if IS_PRODUCTION
    else os.getenv("PAYSTACK_SECRET_KEY_TEST")
)
PAYSTACK_TIMEOUT_SECONDS = float(os.getenv("PAYSTACK_TIMEOUT_SECONDS", "30"))
PAYMENT_CURRENCY = os.getenv("PAYMENT_CURRENCY", "GHS")
PAYMENT_DEFAULT_METHOD = os.getenv("PAYMENT_DEFAULT_METHOD", "mobile_money")
PENDING_PAYMENT_TTL_MINUTES = int(os.getenv("PENDING_PAYMENT_TTL_MINUTES", "60"))

# ==================== EMAIL ====================

SMTP_HOST = os.getenv("SMTP_HOST", "localhost")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER")
SMTP_PASS = os.getenv("SMTP_PASS")
SMTP_FROM = os.getenv("SMTP_FROM", "no-reply@skillspad.app")
SMTP_FROM_NAME = os.getenv("SMTP_FROM_NAME", "Skillspad")
SMTP_TIMEOUT_SECONDS = float(os.getenv("SMTP_TIMEOUT_SECONDS", "30"))

EMAIL_MAX_RETRIES = int(os.getenv("EMAIL_MAX_RETRIES", "3"))
EMAIL_RETRY_BASE_SECONDS = float(os.getenv("EMAIL_RETRY_BASE_SECONDS", "2"))
EMAIL_QUEUE_SIZE = int(os.getenv("EMAIL_QUEUE_SIZE", "500"))
EMAIL_WORKERS = int(os.getenv("EMAIL_WORKERS", "2"))
EMAIL_SHUTDOWN_TIMEOUT_SECONDS = float(os.getenv("EMAIL_SHUTDOWN_TIMEOUT_SECONDS", "10"))

# ==================== UPLOADS ====================

CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")
UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", "assignments")
MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(20 * 1024 * 1024)))
