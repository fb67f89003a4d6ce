from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from app.auth.auth_models import Role
from app.core import config
from app.core.dependencies import get_uploader, require_roles
from app.core.errors import ValidationError
from app.uploads.upload_service import NO_FILE_MESSAGE, validate_upload

router = APIRouter(
    prefix="/uploads",
    tags=["Uploads"],
    dependencies=[Depends(require_roles(Role.ADMIN, Role.INSTRUCTOR))]
)


@router.post("")
async def upload_file(
    file: Optional[UploadFile] = File(None),
    uploader=Depends(get_uploader)
):
    """
    Upload an assignment attachment (PDF, DOC, DOCX, TXT, ZIP, RAR; max 20MB)
    """
    if file is None or not file.filename:
        raise ValidationError(NO_FILE_MESSAGE)

    # One byte past the limit is enough to reject
    content = await file.read(config.MAX_UPLOAD_BYTES + 1)
    validate_upload(file.content_type, len(content))

    stored = await uploader.store(content, file.filename, file.content_type)

    return {
        "success": True,
        "message": "File uploaded successfully",
        "data": {
            "filename": stored["public_id"].rsplit("/", 1)[-1],
            "original_name": file.filename,
            "mimetype": file.content_type,
            "size": len(content),
            "url": stored["url"],
            "public_id": stored["public_id"]
        }
    }
