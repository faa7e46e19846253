# backend/app/services/analysis.py
import time
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ConflictError, ExternalAdapterError, StorageIOError
from ..models.feedback import Feedback
from ..models.image import AnalysisStatus, Image
from ..models.mixins import utcnow
from ..utils.files import read_file_bytes
from ..utils.logging import service_logger
from .annotations import finding_to_feedback
from .critique import CritiqueResult, critique_service

ANALYSIS_TRANSITIONS: Dict[AnalysisStatus, set] = {
    AnalysisStatus.PENDING: {AnalysisStatus.PROCESSING},
    AnalysisStatus.PROCESSING: {AnalysisStatus.COMPLETED, AnalysisStatus.FAILED},
    AnalysisStatus.COMPLETED: set(),
    AnalysisStatus.FAILED: {AnalysisStatus.PROCESSING},
}


def _as_utc(moment: Optional[datetime]) -> Optional[datetime]:
    if moment is None:
        return None
    # SQLite hands timestamps back without tzinfo
    return moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)


def is_stale(image: Image, now: Optional[datetime] = None) -> bool:
    """True when an image has sat in processing longer than the configured limit"""
    if image.analysis_status != AnalysisStatus.PROCESSING:
        return False
    last_change = _as_utc(image.updated_at)
    if last_change is None:
        return True
    limit = timedelta(seconds=settings.ANALYSIS_STALE_AFTER_SECONDS)
    return (now or utcnow()) - last_change > limit


def can_transition(image: Image, new_status: AnalysisStatus, now: Optional[datetime] = None) -> bool:
    current = AnalysisStatus(image.analysis_status)
    if new_status in ANALYSIS_TRANSITIONS[current]:
        return True
    # A stale processing image may be restarted
    return new_status == AnalysisStatus.PROCESSING and is_stale(image, now)


def transition(image: Image, new_status: AnalysisStatus, now: Optional[datetime] = None) -> None:
    """Move an image through pending -> processing -> completed | failed"""
    if not can_transition(image, new_status, now):
        raise ConflictError(
            f"Cannot move analysis from '{AnalysisStatus(image.analysis_status).value}' to '{new_status.value}'",
            details={"image_id": image.id}
        )
    image.analysis_status = new_status
    image.updated_at = now or utcnow()


class AnalysisService:
    """Runs a critique for one image and materializes its findings as feedback"""

    def __init__(self, critique=None):
        self.critique = critique or critique_service

    @staticmethod
    def mark_completed(image: Image, result: CritiqueResult) -> None:
        transition(image, AnalysisStatus.COMPLETED)
        image.analysis_result = {
            "raw": result.raw,
            "summary": result.summary,
            "overall_score": result.overall_score,
            "processed_at": utcnow().isoformat(),
            "error_message": None,
        }

    @staticmethod
    def mark_failed(image: Image, error_message: str, raw: Optional[Dict[str, Any]] = None) -> None:
        transition(image, AnalysisStatus.FAILED)
        image.analysis_result = {
            "raw": raw,
            "summary": None,
            "overall_score": None,
            "processed_at": utcnow().isoformat(),
            "error_message": error_message,
        }

    async def analyze_image(self, db: Session, image: Image, options: Optional[Dict[str, Any]] = None) -> List[Feedback]:
        """Analyze `image`, returning the feedback records created from its findings.

        Raises ConflictError when the image cannot enter processing, and
        ExternalAdapterError/StorageIOError after the image has been marked failed.
        """
        start_time = time.perf_counter()
        service_logger.info("Starting image analysis", extra={
            "image_id": image.id,
            "analysis_status": AnalysisStatus(image.analysis_status).value,
            "options": options
        })

        transition(image, AnalysisStatus.PROCESSING)
        db.commit()

        try:
            image_bytes = read_file_bytes(settings.STORAGE_PATH / Path(image.storage_path))
            result = await self.critique.analyze(image_bytes, image.mime_type, options or {})
        except StorageIOError as e:
            service_logger.error("Image file unavailable for analysis", extra={
                "image_id": image.id,
                "error": e.message
            })
            self.mark_failed(image, e.message)
            db.commit()
            raise
        except Exception as e:
            service_logger.error("Unexpected analysis error", extra={
                "image_id": image.id,
                "error_type": type(e).__name__,
                "error": str(e)
            }, exc_info=True)
            self.mark_failed(image, str(e))
            db.commit()
            raise ExternalAdapterError("AI analysis failed", details=str(e))

        if not result.success:
            service_logger.warning("AI analysis returned no usable result", extra={
                "image_id": image.id,
                "error": result.error
            })
            self.mark_failed(image, result.error or "AI analysis failed", result.raw)
            db.commit()
            raise ExternalAdapterError("AI analysis failed", details=result.error)

        self.mark_completed(image, result)
        db.commit()

        # Findings are independent writes; a malformed one is normalized rather than dropped
        created = [
            Feedback(**finding_to_feedback(finding.model_dump(), image.id, image.width, image.height))
            for finding in result.findings
        ]
        db.add_all(created)
        db.commit()
        for feedback in created:
            db.refresh(feedback)

        service_logger.info("Image analysis completed", extra={
            "image_id": image.id,
            "feedback_count": len(created),
            "processing_time_ms": round((time.perf_counter() - start_time) * 1000, 2)
        })
        return created


analysis_service = AnalysisService()
