"""
Assignment file storage on Cloudinary

The SDK is blocking, so every call is pushed to the thread pool.
"""

import io
import logging
import re
import secrets
import time
from typing import Optional

import cloudinary
import cloudinary.uploader
from starlette.concurrency import run_in_threadpool

from app.core import config
from app.core.errors import ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "application/zip",
    "application/x-rar-compressed",
    "application/vnd.rar",
    "application/x-zip-compressed",
    "multipart/x-zip",
}

INVALID_TYPE_MESSAGE = "Invalid file type. Only PDF, DOC, DOCX, TXT, ZIP, and RAR files are allowed."
TOO_LARGE_MESSAGE = "File size exceeds the 20MB limit"
NO_FILE_MESSAGE = "No file uploaded"

# .../upload/v1712345678/assignments/assignment_1_2.pdf -> assignments/assignment_1_2
_PUBLIC_ID_PATTERN = re.compile(r"/upload/(?:v\d+/)?(?P<public_id>[^?#]+?)(?:\.[A-Za-z0-9]+)?(?:[?#].*)?$")


def get_public_id(url: Optional[str]) -> Optional[str]:
    """Extract the provider public id from a delivery URL"""
    if not url:
        return None
    match = _PUBLIC_ID_PATTERN.search(url)
    return match.group("public_id") if match else None


def validate_upload(content_type: Optional[str], size: int) -> None:
    if size <= 0:
        raise ValidationError(NO_FILE_MESSAGE)
    if (content_type or "").lower() not in ALLOWED_MIME_TYPES:
        raise ValidationError(INVALID_TYPE_MESSAGE)
    if size > config.MAX_UPLOAD_BYTES:
        raise ValidationError(TOO_LARGE_MESSAGE)


def generate_public_id() -> str:
    return f"assignment_{int(time.time() * 1000)}_{secrets.randbelow(10**9)}"


class CloudinaryUploader:

    def __init__(
        self,
        cloud_name: str = None,
        api_key: str = None,
        api_secret: str = None,
        folder: str = None
    ):
        self.folder = folder or config.UPLOAD_FOLDER
        cloudinary.config(
            cloud_name=cloud_name or config.CLOUDINARY_CLOUD_NAME,
            api_key=api_key or config.CLOUDINARY_API_KEY,
            api_secret=api_secret or config.CLOUDINARY_API_SECRET,
            secure=True
        )

    async def store(self, content: bytes, filename: str, content_type: str) -> dict:
        stream = io.BytesIO(content)
        stream.name = filename

        result = await run_in_threadpool(
            cloudinary.uploader.upload,
            stream,
            folder=self.folder,
            public_id=generate_public_id(),
            resource_type="auto",
            use_filename=False
        )

        logger.info(f"✅ Uploaded {filename} as {result['public_id']}")
        return {
            "url": result["secure_url"],
            "public_id": result["public_id"],
            "resource_type": result.get("resource_type")
        }

    async def delete(self, public_id: str) -> bool:
        """
        True when the provider removed the file (or there was nothing to
        remove). Documents are stored as image or raw depending on type.
        """
        if not public_id:
            return True

        try:
            for resource_type in ("image", "raw"):
                result = await run_in_threadpool(
                    cloudinary.uploader.destroy,
                    public_id,
                    resource_type=resource_type,
                    invalidate=True
                )
                if result.get("result") == "ok":
                    logger.info(f"🗑️ Deleted {public_id} from Cloudinary")
                    return True
        except Exception as e:
            logger.error(f"❌ Error deleting {public_id} from Cloudinary: {e}")
            return False

        logger.warning(f"⚠️ Cloudinary did not delete {public_id}")
        return False
