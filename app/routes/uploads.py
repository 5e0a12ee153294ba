import os
import uuid
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, File, UploadFile, status
from slugify import slugify

from ..auth.security import get_current_user
from ..config import settings
from ..errors import ValidationError
from ..models.models import User
from ..schemas.common import Attachment
from ..storage.local_provider import get_storage
from ..storage.provider import FileTooLarge, StorageProvider


router = APIRouter(prefix="/api/uploads", tags=["uploads"])
log = structlog.get_logger(__name__)


def storage_key(original_name: str) -> str:
    """A unique, filesystem-safe key that keeps a readable stem and the extension."""
    stem, ext = os.path.splitext(original_name or "upload")
    safe_stem = slugify(stem)[:80] or "file"
    safe_ext = slugify(ext.lstrip("."))[:20]
    return f"{safe_stem}-{uuid.uuid4().hex[:12]}" + (f".{safe_ext}" if safe_ext else "")


@router.post("", response_model=Attachment, status_code=status.HTTP_201_CREATED)
def upload_file(
    file: UploadFile = File(...),
    storage: StorageProvider = Depends(get_storage),
    user: User = Depends(get_current_user),
):
    original_name = file.filename or "upload"
    key = storage_key(original_name)
    try:
        size = storage.save(file.file, key, max_bytes=settings.max_upload_bytes)
    except FileTooLarge:
        log.info("file_rejected_too_large", original_name=original_name, limit=settings.max_upload_bytes)
        raise ValidationError("File too large")

    log.info("file_uploaded", key=key, size=size, by=str(user.id))
    return {
        "filename": key,
        "original_name": original_name,
        "path": f"/uploads/{key}",
        "size": size,
        "mime_type": file.content_type or "application/octet-stream",
        "uploaded_at": datetime.now(timezone.utc),
    }
