# backend/app/services/cleanup.py
from pathlib import Path

from ..config import settings
from ..models import Image
from ..utils.files import delete_file
from ..utils.logging import service_logger


class CleanupService:
    """Service to handle removal of stored image blobs"""

    @staticmethod
    async def delete_image_artifacts(image: Image) -> bool:
        """Delete the stored file of an image. Failures are logged, not raised."""
        if not image.storage_path:
            return True

        image_path = settings.STORAGE_PATH / image.storage_path
        deleted = await delete_file(image_path)
        if deleted:
            service_logger.info(f"Deleted image file: {image_path}", extra={"image_id": image.id})
        else:
            service_logger.warning("Image file left on disk", extra={
                "image_id": image.id,
                "storage_path": image.storage_path
            })
        return deleted

    @staticmethod
    async def discard_partial_upload(saved_path: Path | None) -> None:
        """Remove a blob whose database record could not be created"""
        if saved_path is None:
            return
        if await delete_file(saved_path):
            service_logger.info(f"Discarded partial upload: {saved_path}")


cleanup_service = CleanupService()
