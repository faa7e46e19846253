# backend/app/api/feedback.py
import time
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy import String, cast, select
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.comment import Comment
from ..models.feedback import Feedback, FeedbackCategory, FeedbackStatus, Severity, TargetRole
from ..models.image import Image
from ..schemas.comment import Comment as CommentSchema
from ..schemas.feedback import FeedbackCreate, FeedbackUpdate, Feedback as FeedbackSchema, FeedbackStats
from ..services.annotations import apply_status, check_status_transition, validate_coordinates
from ..services.export import feedback_statistics
from ..utils.logging import api_logger
from .common import Pagination, envelope, get_or_404, paginate, pagination_params

router = APIRouter(prefix="/api/feedback", tags=["feedback"])


def _targets_role(role: TargetRole):
    # target_roles is a JSON array of fixed enum tokens
    return cast(Feedback.target_roles, String).like(f'%"{role.value}"%')


def _project_image_ids(project_id: int):
    return select(Image.id).where(Image.project_id == project_id)


@router.get("")
async def list_feedback(
        image_id: Optional[int] = None,
        project_id: Optional[int] = None,
        category: Optional[FeedbackCategory] = None,
        severity: Optional[Severity] = None,
        role: Optional[TargetRole] = None,
        status: Optional[FeedbackStatus] = None,
        pagination: Pagination = Depends(pagination_params),
        db: Session = Depends(get_db)
):
    filters = {
        "image_id": image_id,
        "project_id": project_id,
        "category": category.value if category else None,
        "severity": severity.value if severity else None,
        "role": role.value if role else None,
        "status": status.value if status else None,
    }
    api_logger.info("Listing feedback", extra={"filters": filters})

    start_time = time.time()
    query = db.query(Feedback)
    if image_id is not None:
        query = query.filter(Feedback.image_id == image_id)
    if project_id is not None:
        query = query.filter(Feedback.image_id.in_(_project_image_ids(project_id)))
    if category:
        query = query.filter(Feedback.category == category)
    if severity:
        query = query.filter(Feedback.severity == severity)
    if status:
        query = query.filter(Feedback.status == status)
    if role:
        query = query.filter(_targets_role(role))
    query = query.order_by(Feedback.created_at.desc(), Feedback.id.desc())

    items, page_info = paginate(query, pagination)
    api_logger.info("Successfully listed feedback", extra={
        "total": page_info["total"],
        "execution_time_ms": round((time.time() - start_time) * 1000, 2)
    })
    return envelope([FeedbackSchema.model_validate(f) for f in items], **page_info)


@router.post("", status_code=201)
async def create_feedback(feedback: FeedbackCreate, db: Session = Depends(get_db)):
    api_logger.info("Creating new feedback", extra={
        "image_id": feedback.image_id,
        "category": feedback.category.value
    })

    image = get_or_404(db, Image, feedback.image_id, "Image")
    validate_coordinates(feedback.coordinates.model_dump(), image.width, image.height)

    try:
        db_feedback = Feedback(
            image_id=image.id,
            category=feedback.category,
            severity=feedback.severity,
            title=feedback.title,
            description=feedback.description,
            coordinates=feedback.coordinates.model_dump(),
            target_roles=[role.value for role in feedback.target_roles],
            recommendations=feedback.recommendations,
            tags=feedback.tags,
            priority=feedback.priority,
            status=FeedbackStatus.OPEN
        )
        db.add(db_feedback)
        db.commit()
        db.refresh(db_feedback)
    except Exception as e:
        api_logger.error("Error creating feedback", extra={
            "image_id": feedback.image_id,
            "error": str(e)
        })
        db.rollback()
        raise

    api_logger.info("Successfully created feedback", extra={
        "feedback_id": db_feedback.id,
        "image_id": db_feedback.image_id
    })
    return envelope(FeedbackSchema.model_validate(db_feedback), message="Feedback created successfully")


@router.get("/role/{role}")
async def list_feedback_for_role(
        role: TargetRole,
        image_id: Optional[int] = None,
        project_id: Optional[int] = None,
        status: FeedbackStatus = Query(FeedbackStatus.OPEN),
        db: Session = Depends(get_db)
):
    """Feedback addressed to one role, highest priority first"""
    query = db.query(Feedback).filter(_targets_role(role), Feedback.status == status)
    if image_id is not None:
        query = query.filter(Feedback.image_id == image_id)
    elif project_id is not None:
        query = query.filter(Feedback.image_id.in_(_project_image_ids(project_id)))

    items = query.order_by(Feedback.priority.desc(), Feedback.created_at.desc(), Feedback.id.desc()).all()
    api_logger.info("Listed role-based feedback", extra={"role": role.value, "count": len(items)})
    return envelope([FeedbackSchema.model_validate(f) for f in items], role=role.value, count=len(items))


@router.get("/stats/{image_id}")
async def feedback_stats(image_id: int, db: Session = Depends(get_db)):
    get_or_404(db, Image, image_id, "Image")
    items = db.query(Feedback).filter(Feedback.image_id == image_id).all()
    return envelope(FeedbackStats(**feedback_statistics(items)))


@router.get("/{feedback_id}")
async def get_feedback(feedback_id: int, db: Session = Depends(get_db)):
    feedback = get_or_404(db, Feedback, feedback_id, "Feedback")
    return envelope(FeedbackSchema.model_validate(feedback))


@router.put("/{feedback_id}")
async def update_feedback(feedback_id: int, update: FeedbackUpdate, db: Session = Depends(get_db)):
    changes = update.model_dump(exclude_unset=True, exclude_none=True)
    api_logger.info("Updating feedback", extra={
        "feedback_id": feedback_id,
        "update_fields": list(changes.keys())
    })

    db_feedback = get_or_404(db, Feedback, feedback_id, "Feedback")

    if update.coordinates is not None:
        image = get_or_404(db, Image, db_feedback.image_id, "Image")
        validate_coordinates(update.coordinates.model_dump(), image.width, image.height)

    if update.status is not None:
        check_status_transition(db_feedback.status, update.status)

    try:
        for field, value in changes.items():
            if field == "status":
                apply_status(db_feedback, update.status)
            elif field == "coordinates":
                db_feedback.coordinates = update.coordinates.model_dump()
            elif field == "target_roles":
                db_feedback.target_roles = [role.value for role in update.target_roles]
            else:
                setattr(db_feedback, field, value)

        db.commit()
        db.refresh(db_feedback)
    except Exception as e:
        api_logger.error("Error updating feedback", extra={
            "feedback_id": feedback_id,
            "error": str(e)
        })
        db.rollback()
        raise

    api_logger.info("Successfully updated feedback", extra={
        "feedback_id": feedback_id,
        "status": db_feedback.status.value
    })
    return envelope(FeedbackSchema.model_validate(db_feedback), message="Feedback updated successfully")


@router.delete("/{feedback_id}")
async def delete_feedback(feedback_id: int, db: Session = Depends(get_db)):
    """Hard delete; the feedback's comments go with it"""
    api_logger.info("Deleting feedback", extra={"feedback_id": feedback_id})

    feedback = get_or_404(db, Feedback, feedback_id, "Feedback")
    try:
        db.delete(feedback)
        db.commit()
    except Exception as e:
        db.rollback()
        api_logger.error(f"Failed to delete feedback: {str(e)}")
        raise

    return envelope(message="Feedback deleted successfully")


@router.get("/{feedback_id}/comments")
async def list_feedback_comments(feedback_id: int, db: Session = Depends(get_db)):
    """Flat list of a feedback item's comments, newest first"""
    get_or_404(db, Feedback, feedback_id, "Feedback")
    comments = (
        db.query(Comment)
        .filter(Comment.feedback_id == feedback_id)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
        .all()
    )
    return envelope([CommentSchema.model_validate(c) for c in comments], count=len(comments))
