"""
Image upload storage for editorial content
"""
import uuid
from pathlib import Path
from typing import Optional

from seodash.config import get_settings
from seodash.exceptions import UploadRejectedError
from seodash.utils.logger import log

ALLOWED_IMAGE_TYPES = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
}


class UploadService:
    """Stores uploaded images under upload_dir and names them /uploads/<uuid>.<ext>"""

    def __init__(self, upload_dir: Optional[str] = None, max_bytes: Optional[int] = None):
        settings = get_settings()
        self.upload_dir = Path(upload_dir or settings.upload_dir)
        self.max_bytes = max_bytes or settings.max_upload_bytes

    def save_image(self, content: bytes, content_type: Optional[str]) -> str:
        """Validate and store an image; returns its public path."""
        extension = ALLOWED_IMAGE_TYPES.get((content_type or "").split(";")[0].strip().lower())
        if extension is None:
            raise UploadRejectedError(f"Only image uploads are accepted (got {content_type or 'unknown type'})")
        if not content:
            raise UploadRejectedError("Uploaded file is empty")
        if len(content) > self.max_bytes:
            raise UploadRejectedError(
                f"Image too large: {len(content)} bytes (limit {self.max_bytes})"
            )

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{uuid.uuid4().hex}.{extension}"
        (self.upload_dir / filename).write_bytes(content)
        log.info(f"Stored upload {filename} ({len(content)} bytes)")
        return f"/uploads/{filename}"
