# backend/app/models/image.py
import enum

from sqlalchemy import Column, Integer, String, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON

from ..database import Base
from .mixins import TimestampMixin


class AnalysisStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class Image(TimestampMixin, Base):
    __tablename__ = "images"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    filename = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    storage_path = Column(String(512), nullable=False)

    width = Column(Integer, nullable=False)
    height = Column(Integer, nullable=False)
    byte_size = Column(Integer, nullable=False)
    mime_type = Column(String(100), nullable=False)

    analysis_status = Column(
        Enum(AnalysisStatus),
        nullable=False,
        default=AnalysisStatus.PENDING,
        index=True
    )
    # {raw, summary, overall_score, processed_at, error_message}
    analysis_result = Column(JSON, nullable=True)

    project = relationship("Project")
    feedback = relationship(
        "Feedback",
        back_populates="image",
        cascade="all, delete-orphan",
        order_by="Feedback.created_at"
    )

    @property
    def image_metadata(self) -> dict:
        # `metadata` is reserved on declarative classes
        return {
            "width": self.width,
            "height": self.height,
            "byte_size": self.byte_size,
            "mime_type": self.mime_type,
        }
