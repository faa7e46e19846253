# backend/app/services/annotations.py
"""Rules for feedback regions, AI token mapping and status changes."""
import math
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..config import settings
from ..errors import ConflictError, ValidationError
from ..models.feedback import FeedbackCategory, FeedbackStatus, Severity, TargetRole
from ..models.mixins import utcnow

DEFAULT_CATEGORY = FeedbackCategory.VISUAL_HIERARCHY
DEFAULT_TARGET_ROLES = [TargetRole.DESIGNER]
DEFAULT_SEVERITY = Severity.MEDIUM
DEFAULT_REGION_SIZE = 50

CATEGORY_MAP: Dict[str, FeedbackCategory] = {
    'layout': FeedbackCategory.VISUAL_HIERARCHY,
    'color': FeedbackCategory.VISUAL_HIERARCHY,
    'spacing': FeedbackCategory.VISUAL_HIERARCHY,
    'hierarchy': FeedbackCategory.VISUAL_HIERARCHY,
    'visual_hierarchy': FeedbackCategory.VISUAL_HIERARCHY,
    'typography': FeedbackCategory.CONTENT,
    'branding': FeedbackCategory.CONTENT,
    'content': FeedbackCategory.CONTENT,
    'copy': FeedbackCategory.CONTENT,
    'accessibility': FeedbackCategory.ACCESSIBILITY,
    'contrast': FeedbackCategory.ACCESSIBILITY,
    'usability': FeedbackCategory.UX_PATTERNS,
    'navigation': FeedbackCategory.UX_PATTERNS,
    'interaction': FeedbackCategory.UX_PATTERNS,
    'ux_patterns': FeedbackCategory.UX_PATTERNS,
}

TARGET_ROLE_MAP: Dict[str, List[TargetRole]] = {
    'designer': [TargetRole.DESIGNER],
    'developer': [TargetRole.DEVELOPER],
    'pm': [TargetRole.PM],
    'reviewer': [TargetRole.REVIEWER],
    'client': [TargetRole.PM],
    'stakeholder': [TargetRole.PM],
    'all': [TargetRole.DESIGNER, TargetRole.DEVELOPER, TargetRole.PM],
}

# Forward-only workflow. Same-status saves are always allowed.
FORWARD_TRANSITIONS: Dict[FeedbackStatus, set] = {
    FeedbackStatus.OPEN: {FeedbackStatus.IN_PROGRESS, FeedbackStatus.RESOLVED, FeedbackStatus.DISMISSED},
    FeedbackStatus.IN_PROGRESS: {FeedbackStatus.RESOLVED, FeedbackStatus.DISMISSED},
    FeedbackStatus.RESOLVED: set(),
    FeedbackStatus.DISMISSED: set(),
}


def _token(value: Any) -> str:
    return str(value or '').strip().lower()


def validate_coordinates(coordinates: Mapping[str, float], image_width: int, image_height: int) -> None:
    """Raise ValidationError unless the region lies inside the image"""
    x = coordinates['x']
    y = coordinates['y']
    width = coordinates['width']
    height = coordinates['height']

    # NaN compares false against every bound
    if not all(math.isfinite(v) for v in (x, y, width, height)):
        raise ValidationError(
            "Coordinates must be finite numbers",
            details={"coordinates": {"x": str(x), "y": str(y), "width": str(width), "height": str(height)}}
        )

    if x < 0 or y < 0 or x + width > image_width or y + height > image_height:
        raise ValidationError(
            "Coordinates are outside image bounds",
            details={
                "coordinates": {"x": x, "y": y, "width": width, "height": height},
                "image": {"width": image_width, "height": image_height},
            }
        )


def map_category(token: Any) -> FeedbackCategory:
    return CATEGORY_MAP.get(_token(token), DEFAULT_CATEGORY)


def map_target_roles(token: Any) -> List[TargetRole]:
    return list(TARGET_ROLE_MAP.get(_token(token), DEFAULT_TARGET_ROLES))


def map_severity(token: Any) -> Severity:
    try:
        return Severity(_token(token))
    except ValueError:
        return DEFAULT_SEVERITY


def _number(value: Any, default: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if number == number else default  # NaN


def clamp_region(finding: Mapping[str, Any], image_width: int, image_height: int) -> Dict[str, float]:
    """Fit an AI-proposed region inside the image.

    Missing sizes default to DEFAULT_REGION_SIZE. The result always passes
    validate_coordinates for images of at least 1x1 pixels.
    """
    x = min(max(_number(finding.get('x'), 0), 0), max(image_width - 1, 0))
    y = min(max(_number(finding.get('y'), 0), 0), max(image_height - 1, 0))
    width = _number(finding.get('width'), DEFAULT_REGION_SIZE) or DEFAULT_REGION_SIZE
    height = _number(finding.get('height'), DEFAULT_REGION_SIZE) or DEFAULT_REGION_SIZE

    width = max(1, min(width, image_width - x))
    height = max(1, min(height, image_height - y))
    return {"x": x, "y": y, "width": width, "height": height}


def finding_to_feedback(finding: Mapping[str, Any], image_id: int, image_width: int, image_height: int) -> Dict[str, Any]:
    """Map one AI finding onto Feedback column values"""
    suggestion = str(finding.get('suggestion') or '').strip()
    title = str(finding.get('title') or '').strip() or "Untitled finding"
    description = str(finding.get('description') or '').strip() or title

    return {
        "image_id": image_id,
        "category": map_category(finding.get('category')),
        "severity": map_severity(finding.get('severity')),
        "title": title[:255],
        "description": description,
        "coordinates": clamp_region(finding, image_width, image_height),
        "target_roles": [role.value for role in map_target_roles(finding.get('target_role'))],
        "recommendations": [suggestion] if suggestion else [],
        "tags": [],
        "priority": 3,
        "status": FeedbackStatus.OPEN,
    }


def check_status_transition(current: FeedbackStatus, new: FeedbackStatus, policy: Optional[str] = None) -> None:
    """Reject out-of-order transitions when the forward_only policy is active"""
    policy = policy or settings.FEEDBACK_STATUS_POLICY
    if policy == "permissive" or current == new:
        return

    if new not in FORWARD_TRANSITIONS[FeedbackStatus(current)]:
        raise ConflictError(
            f"Cannot move feedback from '{FeedbackStatus(current).value}' to '{FeedbackStatus(new).value}'",
            details={"policy": policy}
        )


def apply_status(feedback: Any, new_status: FeedbackStatus, now: Optional[datetime] = None) -> None:
    """Set status; stamp resolved_at the first time the item is resolved"""
    feedback.status = new_status
    if new_status == FeedbackStatus.RESOLVED and feedback.resolved_at is None:
        feedback.resolved_at = now or utcnow()
