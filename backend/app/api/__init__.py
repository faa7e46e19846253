# backend/app/api/__init__.py
from .projects import router as projects_router
from .images import router as images_router
from .feedback import router as feedback_router
from .comments import router as comments_router

__all__ = ["projects_router", "images_router", "feedback_router", "comments_router"]
