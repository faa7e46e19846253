# backend/app/api/common.py
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Type

from fastapi import Query
from sqlalchemy.orm import Query as SAQuery, Session

from ..config import settings
from ..errors import NotFoundError


@dataclass
class Pagination:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def pagination_params(
        page: int = Query(1, ge=1),
        limit: Optional[int] = Query(None, ge=1)
) -> Pagination:
    limit = min(limit or settings.DEFAULT_PAGE_LIMIT, settings.MAX_PAGE_LIMIT)
    return Pagination(page=page, limit=limit)


def paginate(query: SAQuery, pagination: Pagination) -> Tuple[List[Any], Dict[str, int]]:
    """Run `query` for one page and return (items, pagination fields)"""
    total = query.order_by(None).count()
    items = query.offset(pagination.offset).limit(pagination.limit).all()
    return items, {
        "count": len(items),
        "total": total,
        "page": pagination.page,
        "pages": math.ceil(total / pagination.limit),
    }


def envelope(data: Any = None, message: Optional[str] = None, **extra) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": True}
    body.update(extra)
    if data is not None:
        body["data"] = data
    if message:
        body["message"] = message
    return body


def get_or_404(db: Session, model: Type, object_id: int, label: str):
    instance = db.get(model, object_id)
    if instance is None:
        raise NotFoundError(f"{label} not found", details={f"{label.lower()}_id": object_id})
    return instance
