"""Workflow error kinds raised by the service layer.

Each error is an ``HTTPException`` so FastAPI can render it directly, and
carries a ``kind`` so callers outside HTTP can branch on it.
"""

from fastapi import HTTPException, status


class WorkflowError(HTTPException):
    """Base class for workflow failures."""

    kind = "WorkflowError"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, detail: str):
        super().__init__(status_code=self.status_code, detail=detail)


class NotFoundError(WorkflowError):
    """Referenced entity is absent."""

    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class ValidationError(WorkflowError):
    """Malformed input (bad date, unknown enum value, missing field)."""

    kind = "ValidationError"
    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransitionError(WorkflowError):
    """Status move not in the allowed graph."""

    kind = "InvalidTransition"
    status_code = status.HTTP_409_CONFLICT


class ForbiddenError(WorkflowError):
    """Principal lacks the required capability."""

    kind = "Forbidden"
    status_code = status.HTTP_403_FORBIDDEN


class ConflictError(WorkflowError):
    """Uniqueness or cross-entity integrity violation."""

    kind = "Conflict"
    status_code = status.HTTP_409_CONFLICT


class InternalError(WorkflowError):
    """Store or transaction failure. Never carries raw store error text."""

    kind = "InternalError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, detail: str = "Internal error while processing the request"):
        super().__init__(detail)
