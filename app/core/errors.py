"""
Dispatch error taxonomy.

Services raise these; app.main turns them into JSON responses with the
status code declared on each class.
"""
from __future__ import annotations

from typing import Optional


class DispatchError(Exception):
    status_code = 400
    code = "dispatch_error"

    def __init__(self, message: str, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.request_id = request_id

    def to_dict(self) -> dict:
        return {"detail": self.message, "code": self.code, "request_id": self.request_id}


class NotFoundError(DispatchError):
    status_code = 404
    code = "not_found"


class InvalidTransitionError(DispatchError):
    status_code = 409
    code = "invalid_transition"

    def __init__(
        self,
        message: str,
        request_id: Optional[str] = None,
        current: Optional[str] = None,
        attempted: Optional[str] = None,
        reason: Optional[str] = None,
    ):
        super().__init__(message, request_id=request_id)
        self.current = current
        self.attempted = attempted
        self.reason = reason

    def to_dict(self) -> dict:
        out = super().to_dict()
        out.update({"current": self.current, "attempted": self.attempted, "reason": self.reason})
        return out


class AssignmentConflictError(DispatchError):
    status_code = 409
    code = "assignment_conflict"


class ConcurrentModificationError(DispatchError):
    status_code = 409
    code = "concurrent_modification"


class HandoffFailureError(DispatchError):
    status_code = 502
    code = "handoff_failure"


class StorageUnavailableError(DispatchError):
    status_code = 503
    code = "storage_unavailable"


class NotADriverError(DispatchError):
    status_code = 403
    code = "not_a_driver"


class IntegrityConflictError(DispatchError):
    """A write collided with a uniqueness or reference constraint."""

    status_code = 409
    code = "integrity_conflict"
