# backend/app/models/__init__.py
from ..database import Base
from .project import Project, ProjectStatus
from .image import Image, AnalysisStatus
from .feedback import Feedback, FeedbackCategory, FeedbackStatus, Severity, TargetRole
from .comment import Comment, CommentStatus, AuthorRole, ReactionType, AttachmentType

__all__ = [
    "Base",
    "Project",
    "ProjectStatus",
    "Image",
    "AnalysisStatus",
    "Feedback",
    "FeedbackCategory",
    "FeedbackStatus",
    "Severity",
    "TargetRole",
    "Comment",
    "CommentStatus",
    "AuthorRole",
    "ReactionType",
    "AttachmentType"
]
