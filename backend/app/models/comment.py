# backend/app/models/comment.py
import enum

from sqlalchemy import Column, Integer, String, Text, ForeignKey, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.types import JSON

from ..database import Base
from .mixins import TimestampMixin


class AuthorRole(str, enum.Enum):
    DESIGNER = "designer"
    DEVELOPER = "developer"
    PM = "pm"
    REVIEWER = "reviewer"
    STAKEHOLDER = "stakeholder"


class CommentStatus(str, enum.Enum):
    ACTIVE = "active"
    EDITED = "edited"
    DELETED = "deleted"


class ReactionType(str, enum.Enum):
    LIKE = "like"
    LOVE = "love"
    THUMBS_UP = "thumbs_up"
    THUMBS_DOWN = "thumbs_down"
    LAUGH = "laugh"
    SAD = "sad"


class AttachmentType(str, enum.Enum):
    IMAGE = "image"
    DOCUMENT = "document"
    LINK = "link"


class Comment(TimestampMixin, Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    feedback_id = Column(Integer, ForeignKey("feedback.id"), nullable=False, index=True)
    # Plain id reference; a broken link is tolerated by the thread helpers
    parent_comment_id = Column(Integer, nullable=True, index=True)

    author_name = Column(String(255), nullable=False)
    author_role = Column(Enum(AuthorRole), nullable=False, index=True)
    author_avatar = Column(String(512), nullable=True)

    content = Column(Text, nullable=False)
    mentions = Column(JSON, nullable=False, default=list)
    attachments = Column(JSON, nullable=False, default=list)
    reactions = Column(JSON, nullable=False, default=list)
    edit_history = Column(JSON, nullable=False, default=list)
    status = Column(Enum(CommentStatus), nullable=False, default=CommentStatus.ACTIVE, index=True)

    feedback = relationship("Feedback", back_populates="comments")

    @property
    def author(self) -> dict:
        return {
            "name": self.author_name,
            "role": self.author_role,
            "avatar": self.author_avatar,
        }
