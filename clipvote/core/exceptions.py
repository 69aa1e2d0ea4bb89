"""Custom exceptions for ClipVote."""

from typing import Any, Dict, List, Optional


class ClipVoteException(Exception):
    """Base exception for all ClipVote errors."""

    def __init__(
        self,
        message: str,
        code: str = "INTERNAL_ERROR",
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or []
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API response."""
        result = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ValidationError(ClipVoteException):
    """Raised when input validation fails."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class NotFoundError(ClipVoteException):
    """Raised when a resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            code="NOT_FOUND",
        )


class StoreUnavailableError(ClipVoteException):
    """Raised when the key-value store is not configured or unreachable."""

    def __init__(self, message: str = "Key-value store unavailable"):
        super().__init__(message, code="STORE_UNAVAILABLE")


class QueueError(ClipVoteException):
    """Raised when queue operations fail."""

    def __init__(self, message: str, operation: str):
        super().__init__(
            message=message,
            code="QUEUE_ERROR",
            details=[{"operation": operation}],
        )


class LockNotAcquiredError(ClipVoteException):
    """Raised when a lease lock is held by another process."""

    def __init__(self, job_name: str):
        super().__init__(
            message=f"Lock held by another instance: {job_name}",
            code="LOCK_HELD",
            details=[{"job": job_name}],
        )


class EventProcessingError(ClipVoteException):
    """Raised when a single queued event cannot be persisted."""

    def __init__(self, event_id: str, message: str):
        super().__init__(
            message=f"Event {event_id} failed: {message}",
            code="EVENT_PROCESSING_ERROR",
            details=[{"event_id": event_id}],
        )
        self.reason = message
