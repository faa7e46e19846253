# backend/app/schemas/image.py
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, Field

from .base import BaseSchema, TimestampMixin
from ..models.image import AnalysisStatus


class ImageMetadata(BaseModel):
    width: int
    height: int
    byte_size: int
    mime_type: str


class AnalysisResult(BaseModel):
    raw: Optional[Dict[str, Any]] = None
    summary: Optional[str] = None
    overall_score: Optional[float] = None
    processed_at: Optional[datetime] = None
    error_message: Optional[str] = None


class Image(BaseSchema, TimestampMixin):
    id: int
    project_id: int
    filename: str
    original_name: str
    storage_path: str
    metadata: ImageMetadata = Field(validation_alias=AliasChoices("image_metadata", "metadata"))
    analysis_status: AnalysisStatus
    analysis_result: Optional[AnalysisResult] = None


class AnalysisStatusUpdate(BaseModel):
    status: AnalysisStatus
    results: Optional[Dict[str, Any]] = None
    error_message: Optional[str] = None


class AnalysisRequest(BaseModel):
    """Options forwarded to the critique adapter"""
    role: str = "designer"
    focus_areas: List[str] = Field(default_factory=list)
    project_type: str = "general"
