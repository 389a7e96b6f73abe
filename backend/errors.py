"""Error taxonomy shared by the store, the HTTP handlers and the assistant."""
from typing import Optional


class TaskError(Exception):
    """Base class. `message` is safe to show to API callers."""

    status_code = 500

    def __init__(self, message: str, details: Optional[list[dict]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class TaskValidationError(TaskError):
    status_code = 400

    @classmethod
    def from_pydantic(cls, exc) -> "TaskValidationError":
        """Build from a pydantic ValidationError, one detail per offending field."""
        details = []
        for err in exc.errors():
            field = ".".join(str(part) for part in err["loc"] if part not in ("body", "query", "path")) or "input"
            details.append({"field": field, "message": err["msg"]})
        return cls("Invalid input data", details)


class NotFoundError(TaskError):
    status_code = 404

    def __init__(self, message: str = "Task not found"):
        super().__init__(message)


class StoreError(TaskError):
    status_code = 500

    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message)


class ExternalServiceError(TaskError):
    """Model call failed. Never surfaced over HTTP; the assistant recovers locally."""

    status_code = 502
