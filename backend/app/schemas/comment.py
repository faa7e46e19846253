# backend/app/schemas/comment.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .base import BaseSchema, TimestampMixin
from ..models.comment import AttachmentType, AuthorRole, CommentStatus, ReactionType


class CommentAuthor(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    role: AuthorRole
    avatar: Optional[str] = None


class ReactionAuthor(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    role: Optional[AuthorRole] = None


class Mention(BaseModel):
    user_id: str
    name: str


class Attachment(BaseModel):
    filename: Optional[str] = None
    url: Optional[str] = None
    type: Optional[AttachmentType] = None


class Reaction(BaseModel):
    type: ReactionType
    author: ReactionAuthor
    created_at: datetime


class EditRecord(BaseModel):
    previous_content: str
    edited_at: datetime
    reason: Optional[str] = None


class CommentCreate(BaseSchema):
    feedback_id: int
    parent_comment_id: Optional[int] = None
    author: CommentAuthor
    content: str = Field(..., min_length=1)
    mentions: List[Mention] = []
    attachments: List[Attachment] = []


class CommentUpdate(BaseSchema):
    content: Optional[str] = Field(None, min_length=1)
    mentions: Optional[List[Mention]] = None
    attachments: Optional[List[Attachment]] = None
    reason: Optional[str] = None


class ReactionCreate(BaseSchema):
    type: ReactionType
    author: ReactionAuthor


class ReactionRemove(BaseSchema):
    author_name: str = Field(..., min_length=1)


class Comment(BaseSchema, TimestampMixin):
    id: int
    feedback_id: int
    parent_comment_id: Optional[int] = None
    author: CommentAuthor
    content: str
    mentions: List[Mention] = []
    attachments: List[Attachment] = []
    reactions: List[Reaction] = []
    status: CommentStatus
    edit_history: List[EditRecord] = []


class CommentDetail(Comment):
    replies: List[Comment] = []
    thread_depth: int = 0
