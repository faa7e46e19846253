# backend/app/models/project.py
import enum

from sqlalchemy import Column, Integer, String, Text, Enum
from sqlalchemy.types import JSON

from ..database import Base
from .mixins import TimestampMixin


class ProjectStatus(str, enum.Enum):
    ACTIVE = "active"
    ARCHIVED = "archived"


class Project(TimestampMixin, Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(Enum(ProjectStatus), nullable=False, default=ProjectStatus.ACTIVE, index=True)

    # Ordered back-references to owned images. Reassign, never mutate in place.
    image_ids = Column(JSON, nullable=False, default=list)

    def push_image(self, image_id: int) -> None:
        self.image_ids = [*(self.image_ids or []), image_id]

    def pull_image(self, image_id: int) -> None:
        self.image_ids = [i for i in (self.image_ids or []) if i != image_id]
