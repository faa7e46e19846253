# backend/app/services/__init__.py
from .analysis import analysis_service
from .cleanup import cleanup_service
from .comments import comment_service
from .critique import critique_service
from .export import export_service

__all__ = ["analysis_service", "cleanup_service", "comment_service", "critique_service", "export_service"]
