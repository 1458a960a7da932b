"""
Errors - Arsenal Module
Failure taxonomy for the lease analysis pipeline.
"""

from enum import Enum
from typing import Optional


class FailureKind(str, Enum):
    """Why the model path did not produce an assessment."""

    UNAVAILABLE = "unavailable"
    REFUSED = "refused"
    MISCONFIGURED = "misconfigured"
    MALFORMED_REPLY = "malformed_reply"


class PipelineError(Exception):
    """Base exception for lease pipeline errors."""


class AnalysisValidationError(PipelineError):
    """Raised when the caller did not supply enough lease text."""


class AuthError(PipelineError):
    """Raised for a missing or rejected bearer credential."""


class ModelClientError(PipelineError):
    """Base exception for model invocation failures."""

    kind: FailureKind = FailureKind.UNAVAILABLE

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ModelUnavailableError(ModelClientError):
    """Raised for network, timeout and HTTP failures."""

    kind = FailureKind.UNAVAILABLE


class ModelRefusedError(ModelClientError):
    """Raised when the model blocks the request or returns no candidates."""

    kind = FailureKind.REFUSED


class ModelMisconfiguredError(ModelClientError):
    """Raised when no usable credential is configured."""

    kind = FailureKind.MISCONFIGURED


class MalformedReplyError(PipelineError):
    """Raised when the model reply cannot be parsed as a JSON object."""

    kind = FailureKind.MALFORMED_REPLY


class AnalysisNotFoundError(PipelineError):
    """Raised when an analysis id has no stored record."""


class AnalysisForbiddenError(PipelineError):
    """Raised when a caller asks for another user's analysis."""


class ProfileNotFoundError(PipelineError):
    """Raised when a user has no stored profile."""
