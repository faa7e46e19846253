# backend/app/errors.py
from typing import Any, Optional


class DesignSightError(Exception):
    """Base class for errors that map onto an API error envelope"""
    status_code = 500
    kind = "error"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message, "kind": self.kind}
        if self.details is not None:
            body["details"] = self.details
        return body


class NotFoundError(DesignSightError):
    status_code = 404
    kind = "not_found"


class ValidationError(DesignSightError):
    status_code = 400
    kind = "validation_error"


class ConflictError(DesignSightError):
    status_code = 409
    kind = "conflict"


class ExternalAdapterError(DesignSightError):
    status_code = 502
    kind = "external_adapter_error"


class StorageIOError(DesignSightError):
    status_code = 500
    kind = "storage_io_error"


__all__ = [
    "DesignSightError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "ExternalAdapterError",
    "StorageIOError",
]
