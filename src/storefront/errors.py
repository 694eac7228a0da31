from __future__ import annotations

from typing import Literal

SourceFailureReason = Literal["unpublished", "http_error", "empty", "network"]


class StorefrontError(Exception):
    retryable: bool = True


class SourceUnavailable(StorefrontError):
    """Every configured feed URL failed or returned an empty body."""

    def __init__(self, message: str, reason: SourceFailureReason, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.reason = reason
        self.status_code = status_code


class InquiryValidationError(StorefrontError, ValueError):
    retryable = False

    def __init__(self, message: str, field: str) -> None:
        super().__init__(message)
        self.message = message
        self.field = field


class RelaySubmissionFailure(StorefrontError):
    """The contact relay rejected or never received an inquiry."""

    def __init__(self, message: str, details: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details
        self.status_code = status_code
