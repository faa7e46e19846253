# backend/app/api/comments.py
import json
from typing import Optional, Sequence

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.comment import AuthorRole, Comment, CommentStatus
from ..models.feedback import Feedback
from ..schemas.comment import (
    CommentCreate, CommentUpdate, Comment as CommentSchema, CommentDetail,
    ReactionCreate, ReactionRemove
)
from ..services.comment_tree import CommentNode
from ..services.comments import comment_service
from ..utils.logging import api_logger
from .common import Pagination, envelope, get_or_404, paginate, pagination_params

router = APIRouter(prefix="/api/comments", tags=["comments"])


def _thread_json(forest: Sequence[CommentNode]) -> str:
    """Encode a reply forest as a JSON array of comments with nested `replies`.

    Written with an explicit stack: reply chains can be deeper than the
    recursion limit that bounds both pydantic and the json module.
    """
    chunks = ["["]
    stack = [iter(forest)]
    first = [True]
    while stack:
        node = next(stack[-1], None)
        if node is None:
            stack.pop()
            first.pop()
            chunks.append("]")
            if stack:
                chunks.append("}")
            continue

        if not first[-1]:
            chunks.append(", ")
        first[-1] = False

        fields = CommentSchema.model_validate(node.comment).model_dump(mode="json")
        # Reopen the object to append its replies array
        chunks.append(json.dumps(fields)[:-1] + ', "replies": [')
        stack.append(iter(node.replies))
        first.append(True)

    return "".join(chunks)


@router.get("")
async def list_comments(
        feedback_id: Optional[int] = None,
        parent_comment_id: Optional[int] = None,
        author_role: Optional[AuthorRole] = None,
        pagination: Pagination = Depends(pagination_params),
        db: Session = Depends(get_db)
):
    api_logger.info("Listing comments", extra={
        "feedback_id": feedback_id,
        "parent_comment_id": parent_comment_id,
        "author_role": author_role.value if author_role else None
    })

    query = db.query(Comment).filter(Comment.status != CommentStatus.DELETED)
    if feedback_id is not None:
        query = query.filter(Comment.feedback_id == feedback_id)
    if parent_comment_id is not None:
        query = query.filter(Comment.parent_comment_id == parent_comment_id)
    if author_role:
        query = query.filter(Comment.author_role == author_role)
    query = query.order_by(Comment.created_at.desc(), Comment.id.desc())

    comments, page_info = paginate(query, pagination)
    return envelope([CommentSchema.model_validate(c) for c in comments], **page_info)


@router.get("/thread/{feedback_id}")
async def get_comment_thread(feedback_id: int, db: Session = Depends(get_db)):
    """Reply forest of a feedback item, deleted comments included as tombstones"""
    get_or_404(db, Feedback, feedback_id, "Feedback")
    forest = comment_service.get_comment_tree(db, feedback_id)

    total = sum(1 for root in forest for _ in root.walk())
    api_logger.info("Comment thread retrieved", extra={
        "feedback_id": feedback_id,
        "root_count": len(forest),
        "comment_count": total
    })
    body = f'{{"success": true, "count": {len(forest)}, "total": {total}, "data": {_thread_json(forest)}}}'
    return Response(content=body, media_type="application/json")


@router.post("", status_code=201)
async def create_comment(comment: CommentCreate, db: Session = Depends(get_db)):
    api_logger.info("Creating comment", extra={
        "feedback_id": comment.feedback_id,
        "parent_comment_id": comment.parent_comment_id,
        "author_name": comment.author.name
    })

    get_or_404(db, Feedback, comment.feedback_id, "Feedback")
    comment_service.resolve_parent(db, comment.feedback_id, comment.parent_comment_id)

    try:
        db_comment = Comment(
            feedback_id=comment.feedback_id,
            parent_comment_id=comment.parent_comment_id,
            author_name=comment.author.name,
            author_role=comment.author.role,
            author_avatar=comment.author.avatar,
            content=comment.content,
            mentions=[m.model_dump(mode="json") for m in comment.mentions],
            attachments=[a.model_dump(mode="json") for a in comment.attachments],
            reactions=[],
            edit_history=[],
            status=CommentStatus.ACTIVE
        )
        db.add(db_comment)
        db.commit()
        db.refresh(db_comment)
    except Exception as e:
        api_logger.error("Error creating comment", extra={
            "feedback_id": comment.feedback_id,
            "error": str(e)
        })
        db.rollback()
        raise

    api_logger.info("Successfully created comment", extra={"comment_id": db_comment.id})
    return envelope(CommentSchema.model_validate(db_comment), message="Comment created successfully")


@router.get("/{comment_id}")
async def get_comment(comment_id: int, db: Session = Depends(get_db)):
    comment = get_or_404(db, Comment, comment_id, "Comment")

    detail = CommentDetail.model_validate(comment)
    detail.replies = [CommentSchema.model_validate(c) for c in comment_service.find_children(db, comment.id)]
    detail.thread_depth = comment_service.get_thread_depth(db, comment)
    return envelope(detail)


@router.put("/{comment_id}")
async def update_comment(comment_id: int, update: CommentUpdate, db: Session = Depends(get_db)):
    api_logger.info("Updating comment", extra={
        "comment_id": comment_id,
        "update_fields": list(update.model_dump(exclude_unset=True).keys())
    })

    comment = get_or_404(db, Comment, comment_id, "Comment")
    try:
        if update.content is not None:
            comment_service.edit_content(comment, update.content, update.reason)
        if update.mentions is not None:
            comment.mentions = [m.model_dump(mode="json") for m in update.mentions]
        if update.attachments is not None:
            comment.attachments = [a.model_dump(mode="json") for a in update.attachments]

        db.commit()
        db.refresh(comment)
    except Exception:
        db.rollback()
        raise

    api_logger.info("Successfully updated comment", extra={
        "comment_id": comment_id,
        "status": comment.status.value
    })
    return envelope(CommentSchema.model_validate(comment), message="Comment updated successfully")


@router.delete("/{comment_id}")
async def delete_comment(comment_id: int, db: Session = Depends(get_db)):
    """Soft delete; replies stay attached to the tombstone"""
    api_logger.info("Deleting comment", extra={"comment_id": comment_id})

    comment = get_or_404(db, Comment, comment_id, "Comment")
    try:
        comment_service.soft_delete(comment)
        db.commit()
    except Exception as e:
        db.rollback()
        api_logger.error(f"Failed to delete comment: {str(e)}")
        raise

    return envelope(message="Comment deleted successfully")


@router.post("/{comment_id}/reaction")
async def add_reaction(comment_id: int, reaction: ReactionCreate, db: Session = Depends(get_db)):
    comment = get_or_404(db, Comment, comment_id, "Comment")
    try:
        comment_service.add_reaction(comment, reaction.type.value, reaction.author.model_dump(mode="json"))
        db.commit()
        db.refresh(comment)
    except Exception as e:
        api_logger.error("Error adding reaction", extra={
            "comment_id": comment_id,
            "error": str(e)
        })
        db.rollback()
        raise

    api_logger.info("Reaction added", extra={
        "comment_id": comment_id,
        "reaction_type": reaction.type.value,
        "author_name": reaction.author.name
    })
    return envelope(CommentSchema.model_validate(comment), message="Reaction added successfully")


@router.delete("/{comment_id}/reaction")
async def remove_reaction(comment_id: int, reaction: ReactionRemove, db: Session = Depends(get_db)):
    comment = get_or_404(db, Comment, comment_id, "Comment")
    try:
        comment_service.remove_reaction(comment, reaction.author_name)
        db.commit()
        db.refresh(comment)
    except Exception as e:
        api_logger.error("Error removing reaction", extra={
            "comment_id": comment_id,
            "error": str(e)
        })
        db.rollback()
        raise

    api_logger.info("Reaction removed", extra={
        "comment_id": comment_id,
        "author_name": reaction.author_name
    })
    return envelope(CommentSchema.model_validate(comment), message="Reaction removed successfully")


@router.get("/{comment_id}/replies")
async def list_replies(comment_id: int, db: Session = Depends(get_db)):
    get_or_404(db, Comment, comment_id, "Comment")
    replies = comment_service.find_children(db, comment_id)
    return envelope([CommentSchema.model_validate(c) for c in replies], count=len(replies))
