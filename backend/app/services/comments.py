# backend/app/services/comments.py
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy.orm import Session

from ..errors import ConflictError, NotFoundError
from ..models.comment import Comment, CommentStatus
from ..models.mixins import utcnow
from ..utils.logging import service_logger
from .comment_tree import CommentNode, build_comment_tree, get_thread_depth

TOMBSTONE = "[This comment has been deleted]"
DEFAULT_EDIT_REASON = "Content updated"


def _iso(moment: datetime) -> str:
    return moment.isoformat()


def add_reaction(reactions: List[Dict[str, Any]], reaction_type: str, author: Mapping[str, Any],
                 now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    """Return a new reaction list with `author`'s reaction set to `reaction_type`.

    An author (matched by name) keeps at most one reaction: an existing entry
    is overwritten in place, otherwise a new one is appended.
    """
    stamp = _iso(now or utcnow())
    result = []
    replaced = False
    for reaction in reactions or []:
        if not replaced and reaction.get("author", {}).get("name") == author["name"]:
            result.append({**reaction, "type": reaction_type, "created_at": stamp})
            replaced = True
        else:
            result.append(dict(reaction))

    if not replaced:
        result.append({
            "type": reaction_type,
            "author": {"name": author["name"], "role": author.get("role")},
            "created_at": stamp,
        })
    return result


def remove_reaction(reactions: List[Dict[str, Any]], author_name: str) -> List[Dict[str, Any]]:
    """Return a new reaction list without any entry by `author_name`"""
    return [dict(r) for r in reactions or [] if r.get("author", {}).get("name") != author_name]


class CommentService:
    """Thread-aware operations on stored comments"""

    @staticmethod
    def find_children(db: Session, parent_id: int, include_deleted: bool = False) -> List[Comment]:
        """Direct replies to a comment, oldest first"""
        query = db.query(Comment).filter(Comment.parent_comment_id == parent_id)
        if not include_deleted:
            query = query.filter(Comment.status != CommentStatus.DELETED)
        return query.order_by(Comment.created_at, Comment.id).all()

    @staticmethod
    def get_comment_tree(db: Session, feedback_id: int) -> List[CommentNode]:
        """All comments of a feedback item, including tombstones, as a reply forest"""
        comments = (
            db.query(Comment)
            .filter(Comment.feedback_id == feedback_id)
            .order_by(Comment.created_at, Comment.id)
            .all()
        )
        forest = build_comment_tree(comments)
        service_logger.debug("Built comment tree", extra={
            "feedback_id": feedback_id,
            "comment_count": len(comments),
            "root_count": len(forest)
        })
        return forest

    @staticmethod
    def get_thread_depth(db: Session, comment: Comment) -> int:
        return get_thread_depth(comment, lambda comment_id: db.get(Comment, comment_id))

    @staticmethod
    def resolve_parent(db: Session, feedback_id: int, parent_comment_id: Optional[int]) -> Optional[Comment]:
        """Load the parent of a new reply and make sure it sits in the same thread"""
        if parent_comment_id is None:
            return None

        parent = db.get(Comment, parent_comment_id)
        if parent is None:
            raise NotFoundError("Parent comment not found", details={"parent_comment_id": parent_comment_id})

        if parent.feedback_id != feedback_id:
            raise ConflictError(
                "Parent comment does not belong to the specified feedback",
                details={
                    "parent_comment_id": parent_comment_id,
                    "parent_feedback_id": parent.feedback_id,
                    "feedback_id": feedback_id
                }
            )
        return parent

    @staticmethod
    def edit_content(comment: Comment, content: str, reason: Optional[str] = None,
                     now: Optional[datetime] = None) -> bool:
        """Replace content, recording the previous text. Returns True if it changed."""
        if comment.status == CommentStatus.DELETED:
            raise ConflictError("Deleted comments cannot be edited", details={"comment_id": comment.id})

        if content == comment.content:
            return False

        comment.edit_history = [
            *(comment.edit_history or []),
            {
                "previous_content": comment.content,
                "edited_at": _iso(now or utcnow()),
                "reason": reason or DEFAULT_EDIT_REASON,
            }
        ]
        comment.content = content
        comment.status = CommentStatus.EDITED
        return True

    @staticmethod
    def soft_delete(comment: Comment) -> None:
        comment.status = CommentStatus.DELETED
        comment.content = TOMBSTONE

    @staticmethod
    def add_reaction(comment: Comment, reaction_type: str, author: Mapping[str, Any]) -> None:
        comment.reactions = add_reaction(comment.reactions, reaction_type, author)
        comment.updated_at = utcnow()

    @staticmethod
    def remove_reaction(comment: Comment, author_name: str) -> None:
        comment.reactions = remove_reaction(comment.reactions, author_name)
        comment.updated_at = utcnow()


comment_service = CommentService()
