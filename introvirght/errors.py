"""
introvirght.errors — Exception Taxonomy
========================================

Every error carries a machine-readable ``code`` so callers can branch on
it without parsing English messages.

Recoverable errors (``ProfileNotFound``, ``ConcurrentModification``) are
handled inside the engagement service; ``InvalidEventType`` is surfaced to
the caller; embedding and vector-store errors are isolated by the vector
service and the background queue.
"""

from __future__ import annotations

from typing import Any


class IntrovirghtError(Exception):
    """Base class for all application-level errors."""

    code: str = "INTERNAL_ERROR"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.details:
            payload["details"] = self.details
        return payload


class ProfileNotFound(IntrovirghtError):
    code = "PROFILE_NOT_FOUND"

    def __init__(self, user_id: str):
        super().__init__(
            message=f"No engagement profile for user {user_id}.",
            details={"user_id": user_id},
        )


class ConcurrentModification(IntrovirghtError):
    code = "CONCURRENT_MODIFICATION"

    def __init__(self, user_id: str, attempts: int):
        super().__init__(
            message=(
                f"Engagement profile for user {user_id} changed concurrently; "
                f"gave up after {attempts} attempts."
            ),
            details={"user_id": user_id, "attempts": attempts},
        )


class InvalidEventType(IntrovirghtError):
    code = "INVALID_EVENT_TYPE"

    def __init__(self, event_type: object):
        super().__init__(
            message=f"Unknown engagement event type: {event_type!r}.",
            details={"event_type": str(event_type)},
        )


class EmbeddingGenerationFailed(IntrovirghtError):
    code = "EMBEDDING_FAILED"

    def __init__(self, reason: str, entry_id: str | None = None):
        super().__init__(
            message=f"Could not generate embedding: {reason}",
            details={"entry_id": entry_id} if entry_id else {},
        )


class VectorStoreUnavailable(IntrovirghtError):
    code = "VECTOR_STORE_UNAVAILABLE"

    def __init__(self, operation: str):
        super().__init__(
            message=f"Vector store unavailable during {operation}.",
            details={"operation": operation},
        )
