# backend/app/schemas/__init__.py
from .project import Project, ProjectCreate, ProjectUpdate, ProjectDetail
from .image import Image, ImageMetadata, AnalysisResult, AnalysisStatusUpdate, AnalysisRequest
from .feedback import Feedback, FeedbackCreate, FeedbackUpdate, FeedbackStats, Coordinates
from .comment import (
    Comment, CommentCreate, CommentUpdate, CommentDetail,
    ReactionCreate, ReactionRemove
)

__all__ = [
    "Project", "ProjectCreate", "ProjectUpdate", "ProjectDetail",
    "Image", "ImageMetadata", "AnalysisResult", "AnalysisStatusUpdate", "AnalysisRequest",
    "Feedback", "FeedbackCreate", "FeedbackUpdate", "FeedbackStats", "Coordinates",
    "Comment", "CommentCreate", "CommentUpdate", "CommentDetail",
    "ReactionCreate", "ReactionRemove"
]
