# backend/app/utils/files.py
import shutil
from pathlib import Path
from typing import Tuple
from uuid import uuid4

from fastapi import UploadFile
from PIL import Image as PILImage, UnidentifiedImageError

from ..errors import StorageIOError, ValidationError
from .logging import service_logger

MIME_TYPES = {
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.webp': 'image/webp',
    '.bmp': 'image/bmp',
}

async def save_upload_file(upload_file: UploadFile, directory: Path) -> Path:
    """Save an uploaded file with a unique name and return the path"""
    file_extension = Path(upload_file.filename or "").suffix.lower()
    unique_filename = f"{uuid4()}{file_extension}"
    file_path = directory / unique_filename

    try:
        directory.mkdir(parents=True, exist_ok=True)
        with file_path.open("wb") as buffer:
            shutil.copyfileobj(upload_file.file, buffer)
    except OSError as e:
        await delete_file(file_path)
        raise StorageIOError(f"Failed to store {upload_file.filename}", details=str(e))

    return file_path

def read_file_bytes(file_path: Path) -> bytes:
    try:
        return Path(file_path).read_bytes()
    except OSError as e:
        raise StorageIOError("Image file not found on disk", details=str(e))

async def delete_file(file_path: Path) -> bool:
    """Best-effort delete; returns False if the file could not be removed"""
    try:
        if file_path.exists():
            file_path.unlink()
        return True
    except OSError as e:
        service_logger.error(f"Error deleting file {file_path}: {e}")
        return False

def get_relative_path(absolute_path: Path, base_path: Path) -> str:
    """Convert absolute path to relative path for database storage"""
    absolute_path = Path(absolute_path).absolute()
    base_path = Path(base_path).absolute()

    try:
        return str(absolute_path.relative_to(base_path))
    except ValueError:
        if not absolute_path.is_absolute():
            return str(absolute_path)
        raise

def get_mime_type(file_path: Path | str) -> str:
    return MIME_TYPES.get(Path(file_path).suffix.lower(), 'image/jpeg')

def read_image_dimensions(file_path: Path) -> Tuple[int, int]:
    """Return (width, height) in pixels; raises ValidationError for non-images"""
    try:
        with PILImage.open(file_path) as img:
            return img.size
    except (UnidentifiedImageError, OSError) as e:
        raise ValidationError("Uploaded file is not a readable image", details=str(e))
