# backend/app/schemas/feedback.py
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .base import BaseSchema, TimestampMixin
from ..models.feedback import FeedbackCategory, FeedbackStatus, Severity, TargetRole


def _dedupe(values):
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


class Coordinates(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    # Origin sign is checked together with the image bounds
    x: float
    y: float
    width: float = Field(..., ge=1)
    height: float = Field(..., ge=1)


class FeedbackBase(BaseSchema):
    category: FeedbackCategory
    severity: Severity
    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    coordinates: Coordinates
    target_roles: List[TargetRole] = Field(..., min_length=1)
    recommendations: List[str] = []
    priority: int = Field(3, ge=1, le=5)
    tags: List[str] = []

    @field_validator("target_roles", "tags")
    @classmethod
    def unique_values(cls, values):
        return _dedupe(values)


class FeedbackCreate(FeedbackBase):
    image_id: int


class FeedbackUpdate(BaseSchema):
    category: Optional[FeedbackCategory] = None
    severity: Optional[Severity] = None
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, min_length=1)
    coordinates: Optional[Coordinates] = None
    target_roles: Optional[List[TargetRole]] = Field(None, min_length=1)
    recommendations: Optional[List[str]] = None
    status: Optional[FeedbackStatus] = None
    priority: Optional[int] = Field(None, ge=1, le=5)
    tags: Optional[List[str]] = None

    @field_validator("target_roles", "tags")
    @classmethod
    def unique_values(cls, values):
        return _dedupe(values) if values is not None else values


class Feedback(FeedbackBase, TimestampMixin):
    id: int
    image_id: int
    status: FeedbackStatus
    resolved_at: Optional[datetime] = None
    comment_count: int = 0


class FeedbackStats(BaseModel):
    total: int = 0
    categories: Dict[str, int] = {}
    severities: Dict[str, int] = {}
    statuses: Dict[str, int] = {}
