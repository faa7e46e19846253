# backend/app/schemas/project.py
from typing import List, Optional

from pydantic import Field

from .base import BaseSchema, TimestampMixin
from .image import Image
from ..models.project import ProjectStatus

class ProjectBase(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None

class ProjectCreate(ProjectBase):
    pass

class ProjectUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None

class Project(ProjectBase, TimestampMixin):
    id: int
    status: ProjectStatus
    image_ids: List[int] = []

class ProjectDetail(Project):
    images: List[Image] = []
    image_count: int = 0
