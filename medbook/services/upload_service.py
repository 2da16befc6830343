from typing import Optional
import logging

import httpx
from starlette.datastructures import UploadFile

from ..core.config import Settings, settings as default_settings

logger = logging.getLogger(__name__)

class UploadError(Exception):
    """Raised when a file could not be stored by the media service."""

class MediaUploader:
    """Stores uploaded files with the external media service and returns their URL."""

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.settings = config or default_settings
        self.transport = transport

    async def upload(self, file: UploadFile, folder: Optional[str] = None) -> str:
        url = self.settings.upload_url
        if not url or not self.settings.CLOUDINARY_UPLOAD_PRESET:
            raise UploadError("Media upload service is not configured")

        content = await file.read()
        if not content:
            raise UploadError("Uploaded file is empty")
        if len(content) > self.settings.MAX_UPLOAD_SIZE_BYTES:
            raise UploadError(
                f"Uploaded file exceeds {self.settings.MAX_UPLOAD_SIZE_BYTES} bytes"
            )

        form = {
            "upload_preset": self.settings.CLOUDINARY_UPLOAD_PRESET,
            "folder": folder or self.settings.UPLOAD_FOLDER,
        }
        files = {
            "file": (
                file.filename or "upload",
                content,
                file.content_type or "application/octet-stream",
            )
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.UPLOAD_TIMEOUT_SECONDS, transport=self.transport
            ) as client:
                response = await client.post(url, data=form, files=files)
        except httpx.HTTPError as e:
            raise UploadError(f"Media service unreachable: {e}") from e

        if response.status_code != 200:
            logger.warning(
                f"Media upload rejected: status={response.status_code} body={response.text[:200]}"
            )
            raise UploadError(f"Media service returned status {response.status_code}")

        payload = response.json()
        stored_url = payload.get("secure_url") or payload.get("url")
        if not stored_url:
            raise UploadError("Media service response did not include a URL")

        logger.info(f"Uploaded {file.filename} to {stored_url}")
        return stored_url
