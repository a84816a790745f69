"""Document upload adapter - agent images in a Supabase Storage bucket."""

import os
import re
import time
from typing import Optional, Union

from agent_panel.models.registration import DocumentCategory, UploadedFile
from agent_panel.services.supabase_client import SupabaseClient
from agent_panel.utils.config import AppConfig
from agent_panel.utils.errors import InvalidFileError, UploadError
from agent_panel.utils.logging import get_structured_logger, log_timing, mask_user_id

logger = get_structured_logger(__name__)


def validate_image(file: UploadedFile, max_bytes: Optional[int] = None, label: str = "File") -> None:
    """Reject non-image content types and files above the size limit."""
    max_bytes = max_bytes or AppConfig.MAX_UPLOAD_BYTES
    if not (file.content_type or "").startswith("image/"):
        raise InvalidFileError("Please upload an image file")
    if file.size > max_bytes:
        raise InvalidFileError(f"{label} should be less than {max_bytes // (1024 * 1024)}MB")


def safe_filename(filename: str) -> str:
    """Base name with anything outside [A-Za-z0-9._-] replaced."""
    name = os.path.basename((filename or "").replace("\\", "/"))
    name = re.sub(r"[^A-Za-z0-9._-]", "_", name)
    return name or "upload"


def build_storage_path(category: Union[DocumentCategory, str], identity_token: str,
                       filename: str, timestamped: bool = True) -> str:
    """``<category>/<identity>/<filename>``, with a millisecond prefix when timestamped."""
    category = DocumentCategory(category).value
    name = safe_filename(filename)
    if timestamped:
        name = f"{int(time.time() * 1000)}_{name}"
    return f"{category}/{identity_token}/{name}"


class DocumentStorage:
    """Stores images as submitted (no transcoding, no scanning)."""

    def __init__(self, bucket: Optional[str] = None, max_bytes: Optional[int] = None):
        self.bucket = bucket or AppConfig.STORAGE_BUCKET
        self.max_bytes = max_bytes or AppConfig.MAX_UPLOAD_BYTES

    def validate(self, file: UploadedFile, label: str = "File") -> None:
        validate_image(file, self.max_bytes, label)

    async def upload(self, identity_token: str, category: Union[DocumentCategory, str],
                     file: UploadedFile, timestamped: bool = True) -> str:
        """Store the file and return its public URL."""
        self.validate(file)
        path = build_storage_path(category, identity_token, file.filename, timestamped)

        async with SupabaseClient() as client:
            try:
                bucket = client.storage.from_(self.bucket)
                with log_timing("storage.upload", logger=logger, path_category=str(DocumentCategory(category).value),
                                user_id=mask_user_id(identity_token), size_bytes=file.size):
                    bucket.upload(path, file.data, {
                        "content-type": file.content_type,
                        "upsert": "false" if timestamped else "true",
                    })
                url = bucket.get_public_url(path)
            except Exception as e:
                logger.error("Upload failed", error=str(e), user_id=mask_user_id(identity_token))
                raise UploadError(f"Failed to upload {file.filename}. Please try again.")

        return url
