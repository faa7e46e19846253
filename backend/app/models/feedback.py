# backend/app/models/feedback.py
import enum

from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON

from ..database import Base
from .mixins import TimestampMixin


class FeedbackCategory(str, enum.Enum):
    ACCESSIBILITY = "accessibility"
    VISUAL_HIERARCHY = "visual_hierarchy"
    CONTENT = "content"
    UX_PATTERNS = "ux_patterns"


class Severity(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TargetRole(str, enum.Enum):
    DESIGNER = "designer"
    DEVELOPER = "developer"
    PM = "pm"
    REVIEWER = "reviewer"


class FeedbackStatus(str, enum.Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class Feedback(TimestampMixin, Base):
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, index=True)
    image_id = Column(Integer, ForeignKey("images.id"), nullable=False, index=True)
    category = Column(Enum(FeedbackCategory), nullable=False, index=True)
    severity = Column(Enum(Severity), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)

    coordinates = Column(JSON, nullable=False)  # {x, y, width, height}
    target_roles = Column(JSON, nullable=False, default=list)
    recommendations = Column(JSON, nullable=False, default=list)
    tags = Column(JSON, nullable=False, default=list)

    status = Column(Enum(FeedbackStatus), nullable=False, default=FeedbackStatus.OPEN, index=True)
    priority = Column(Integer, nullable=False, default=3)
    resolved_at = Column(DateTime(timezone=True), nullable=True)

    image = relationship("Image", back_populates="feedback")
    comments = relationship(
        "Comment",
        back_populates="feedback",
        cascade="all, delete-orphan",
        order_by="Comment.created_at"
    )

    @property
    def comment_count(self) -> int:
        return len(self.comments)
