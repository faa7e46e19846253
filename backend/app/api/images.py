# backend/app/api/images.py
import time
from pathlib import Path
from typing import Literal, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import FileResponse, Response
from sqlalchemy.orm import Session

from ..config import settings
from ..database import get_db
from ..errors import NotFoundError, ValidationError
from ..models.comment import Comment
from ..models.feedback import Feedback
from ..models.image import AnalysisStatus, Image
from ..models.mixins import utcnow
from ..models.project import Project
from ..schemas.feedback import Feedback as FeedbackSchema
from ..schemas.image import AnalysisRequest, AnalysisStatusUpdate, Image as ImageSchema
from ..services.analysis import analysis_service, transition
from ..services.cleanup import cleanup_service
from ..services.export import export_service
from ..utils.files import get_mime_type, get_relative_path, read_image_dimensions, save_upload_file
from ..utils.logging import api_logger
from .common import Pagination, envelope, get_or_404, paginate, pagination_params

router = APIRouter(prefix="/api/images", tags=["images"])

EXPORT_MEDIA_TYPES = {
    "json": "application/json",
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}


def _validate_upload(file: UploadFile) -> None:
    extension = Path(file.filename or "").suffix.lower()
    if extension not in settings.ALLOWED_IMAGE_EXTENSIONS:
        raise ValidationError(
            "Only image files are allowed",
            details={"filename": file.filename, "allowed": settings.ALLOWED_IMAGE_EXTENSIONS}
        )
    if file.content_type and not file.content_type.startswith("image/"):
        raise ValidationError("Only image files are allowed", details={"content_type": file.content_type})
    if file.size is not None and file.size > settings.MAX_UPLOAD_SIZE:
        raise ValidationError(
            "Image exceeds the maximum upload size",
            details={"size": file.size, "max_size": settings.MAX_UPLOAD_SIZE}
        )


@router.get("")
async def list_images(
        project_id: Optional[int] = None,
        status: Optional[AnalysisStatus] = None,
        pagination: Pagination = Depends(pagination_params),
        db: Session = Depends(get_db)
):
    api_logger.info("Listing images", extra={
        "project_id": project_id,
        "status": status.value if status else None
    })

    query = db.query(Image)
    if project_id is not None:
        query = query.filter(Image.project_id == project_id)
    if status:
        query = query.filter(Image.analysis_status == status)
    query = query.order_by(Image.created_at.desc(), Image.id.desc())

    images, page_info = paginate(query, pagination)
    return envelope([ImageSchema.model_validate(i) for i in images], **page_info)


@router.post("/upload", status_code=201)
async def upload_image(
        image: UploadFile = File(...),
        project_id: int = Form(...),
        db: Session = Depends(get_db)
):
    api_logger.info("Starting image upload", extra={
        "project_id": project_id,
        "file_name": image.filename,
        "file_size": image.size,
        "content_type": image.content_type
    })

    project = get_or_404(db, Project, project_id, "Project")
    _validate_upload(image)

    start_time = time.time()
    saved_path = None
    try:
        saved_path = await save_upload_file(image, settings.UPLOADS_PATH)
        byte_size = saved_path.stat().st_size
        if byte_size > settings.MAX_UPLOAD_SIZE:
            raise ValidationError(
                "Image exceeds the maximum upload size",
                details={"size": byte_size, "max_size": settings.MAX_UPLOAD_SIZE}
            )
        width, height = read_image_dimensions(saved_path)

        db_image = Image(
            project_id=project_id,
            filename=saved_path.name,
            original_name=image.filename,
            storage_path=get_relative_path(saved_path, settings.STORAGE_PATH),
            width=width,
            height=height,
            byte_size=byte_size,
            mime_type=get_mime_type(saved_path),
            analysis_status=AnalysisStatus.PENDING
        )
        db.add(db_image)
        db.commit()
        db.refresh(db_image)
    except Exception as e:
        db.rollback()
        api_logger.error(f"Error processing upload for file {image.filename}", extra={
            "file_name": image.filename,
            "error_type": type(e).__name__,
            "error_message": str(e)
        })
        await cleanup_service.discard_partial_upload(saved_path)
        raise

    # Second, separate write: the project back-reference
    project.push_image(db_image.id)
    db.commit()

    api_logger.info(f"Image {db_image.id} uploaded successfully", extra={
        "image_id": db_image.id,
        "project_id": project_id,
        "dimensions": f"{width}x{height}",
        "execution_time_ms": round((time.time() - start_time) * 1000, 2)
    })
    return envelope(ImageSchema.model_validate(db_image), message="Image uploaded successfully")


@router.get("/{image_id}")
async def get_image(image_id: int, db: Session = Depends(get_db)):
    api_logger.debug(f"Fetching image {image_id}", extra={"image_id": image_id})
    image = get_or_404(db, Image, image_id, "Image")
    return envelope(ImageSchema.model_validate(image))


@router.get("/{image_id}/file")
async def get_image_file(image_id: int, db: Session = Depends(get_db)):
    image = get_or_404(db, Image, image_id, "Image")
    file_path = settings.STORAGE_PATH / image.storage_path
    if not file_path.exists():
        api_logger.warning("Image file missing on disk", extra={
            "image_id": image_id,
            "storage_path": image.storage_path
        })
        raise NotFoundError("Image file not found on disk", details={"image_id": image_id})

    return FileResponse(
        file_path,
        media_type=image.mime_type,
        headers={"Cache-Control": "public, max-age=86400"}
    )


@router.put("/{image_id}/analysis-status")
async def update_analysis_status(image_id: int, update: AnalysisStatusUpdate, db: Session = Depends(get_db)):
    api_logger.info("Updating analysis status", extra={
        "image_id": image_id,
        "status": update.status.value
    })

    image = get_or_404(db, Image, image_id, "Image")
    transition(image, update.status)

    if update.results is not None or update.error_message:
        result = dict(image.analysis_result or {})
        if update.results is not None:
            result["raw"] = update.results
            result["processed_at"] = utcnow().isoformat()
        if update.error_message:
            result["error_message"] = update.error_message
        image.analysis_result = result

    db.commit()
    db.refresh(image)
    return envelope(ImageSchema.model_validate(image), message="Analysis status updated successfully")


@router.delete("/{image_id}")
async def delete_image(image_id: int, db: Session = Depends(get_db)):
    """Hard delete: record, stored file, feedback and their comments"""
    api_logger.info(f"Deleting image {image_id}", extra={"image_id": image_id})

    image = get_or_404(db, Image, image_id, "Image")
    project = db.get(Project, image.project_id)
    try:
        if project is not None:
            project.pull_image(image.id)

        await cleanup_service.delete_image_artifacts(image)

        db.delete(image)
        db.commit()
    except Exception as e:
        db.rollback()
        api_logger.error(f"Failed to delete image: {str(e)}", extra={"image_id": image_id})
        raise

    api_logger.info(f"Successfully deleted image {image_id}")
    return envelope(message="Image deleted successfully")


@router.post("/{image_id}/analyze")
async def analyze_image(image_id: int, request: Optional[AnalysisRequest] = None, db: Session = Depends(get_db)):
    options = (request or AnalysisRequest()).model_dump()
    api_logger.info("Analysis request received", extra={"image_id": image_id, "options": options})

    image = get_or_404(db, Image, image_id, "Image")
    created = await analysis_service.analyze_image(db, image, options)
    db.refresh(image)

    return envelope(
        {
            "image": ImageSchema.model_validate(image),
            "feedback": [FeedbackSchema.model_validate(f) for f in created],
        },
        message="Analysis completed successfully",
        feedback_count=len(created)
    )


@router.get("/{image_id}/analysis")
async def get_analysis(image_id: int, db: Session = Depends(get_db)):
    image = get_or_404(db, Image, image_id, "Image")
    feedback = (
        db.query(Feedback)
        .filter(Feedback.image_id == image_id)
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .all()
    )
    return envelope(
        {
            "image": ImageSchema.model_validate(image),
            "feedback": [FeedbackSchema.model_validate(f) for f in feedback],
        },
        feedback_count=len(feedback)
    )


@router.get("/{image_id}/download/{format}")
async def download_feedback(
        image_id: int,
        format: Literal["json", "pdf", "docx"],
        db: Session = Depends(get_db)
):
    api_logger.info("Starting feedback export", extra={"image_id": image_id, "format": format})

    image = get_or_404(db, Image, image_id, "Image")
    project = db.get(Project, image.project_id)
    feedback = (
        db.query(Feedback)
        .filter(Feedback.image_id == image_id)
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .all()
    )

    comments_by_feedback = {}
    if feedback:
        comments = (
            db.query(Comment)
            .filter(Comment.feedback_id.in_([f.id for f in feedback]))
            .order_by(Comment.created_at, Comment.id)
            .all()
        )
        for comment in comments:
            comments_by_feedback.setdefault(comment.feedback_id, []).append(comment)

    payload = export_service.build_payload(image, project, feedback, comments_by_feedback)
    content = export_service.render(payload, format)

    stem = Path(image.original_name).stem or f"image-{image.id}"
    filename = f"feedback-{stem}-{int(time.time())}.{format}"
    api_logger.info("Feedback export successful", extra={
        "image_id": image_id,
        "format": format,
        "byte_size": len(content)
    })
    return Response(
        content=content,
        media_type=EXPORT_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
