"""Custom exceptions for the FeedRank engine.

Composition failures carry an HTTP status and a user-facing message so the
API can render them directly. Upstream degradations are not exceptions; they
are reported as warnings on a successful response.
"""

from typing import Any, Dict, Optional


class FeedRankException(Exception):
    """Base exception for FeedRank errors."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize exception.

        Args:
            message: Human-readable error message
            status_code: HTTP status code for API responses
            details: Additional error details for debugging
        """
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class EmptyPoolError(FeedRankException):
    """Raised when there are no candidate products to compose a feed from."""

    def __init__(self, context: Optional[Dict[str, Any]] = None):
        super().__init__(
            message="No products are available for this feed right now.",
            status_code=404,
            details={"context": context or {}},
        )


class FeedCompositionError(FeedRankException):
    """Raised when a page of sections could not be composed.

    Already delivered sections stay valid; the same page can be retried.
    """

    def __init__(self, page: int, error: Exception):
        message = f"Failed to compose feed page {page}: {str(error)}"
        super().__init__(
            message=message,
            status_code=500,
            details={
                "page": page,
                "retryable": True,
                "error": str(error),
                "error_type": type(error).__name__,
            },
        )


class SessionNotFoundError(FeedRankException):
    """Raised when a feed session id is unknown."""

    def __init__(self, session_id: str):
        super().__init__(
            message=f"Feed session '{session_id}' not found.",
            status_code=404,
            details={"session_id": session_id},
        )
