"""
Error handling utilities for consistent error responses.
"""
from typing import Iterable, Optional

from fastapi import status
from fastapi.responses import JSONResponse

from crop_review.models.jobs import ErrorInfo


# Standard error codes
class ErrorCodes:
    """Standard error codes."""

    INVALID_INPUT = "INVALID_INPUT"
    NOT_FOUND = "NOT_FOUND"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    UNSUPPORTED_MEDIA_TYPE = "UNSUPPORTED_MEDIA_TYPE"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    INVALID_CROP_SPEC = "INVALID_CROP_SPEC"
    DECODE_FAILURE = "DECODE_FAILURE"
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    STORAGE_FAILURE = "STORAGE_FAILURE"
    CLEANUP_FAILURE = "CLEANUP_FAILURE"


class APIError(Exception):
    """Base exception for API errors."""

    def __init__(
        self,
        code: str,
        message: str,
        http_status: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        retryable: bool = False,
        details: Optional[dict] = None,
    ):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.retryable = retryable
        self.details = details or {}
        super().__init__(self.message)


class InvalidCropSpecError(APIError):
    """Crop type or custom dimensions are not acceptable."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code=ErrorCodes.INVALID_CROP_SPEC,
            message=message,
            http_status=status.HTTP_400_BAD_REQUEST,
            details=details,
        )


class DecodeFailureError(APIError):
    """Source image is unreadable or corrupt."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code=ErrorCodes.DECODE_FAILURE,
            message=message,
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


class UnsupportedFormatError(APIError):
    """Source image encoding is not one we transform."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code=ErrorCodes.UNSUPPORTED_FORMAT,
            message=message,
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


class StorageFailureError(APIError):
    """Writing an upload or derived image to disk failed."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__(
            code=ErrorCodes.STORAGE_FAILURE,
            message=message,
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details=details,
        )


class NotFoundError(APIError):
    """Crop job id is unknown or has already been removed/moved."""

    def __init__(self, message: str = "Crop not found", job_id: Optional[str] = None):
        super().__init__(
            code=ErrorCodes.NOT_FOUND,
            message=message,
            http_status=status.HTTP_404_NOT_FOUND,
            details={"cropId": job_id} if job_id else None,
        )
        self.job_id = job_id


class CleanupFailureError(APIError):
    """
    File removal failed after a state transition was committed.

    The transition is not rolled back; ``details["transitionCommitted"]`` is
    always true so clients can tell this apart from a failed action.
    """

    def __init__(self, job_id: str, action: str, failed_paths: Iterable[str]):
        self.job_id = job_id
        self.action = action
        self.failed_paths = list(failed_paths)
        super().__init__(
            code=ErrorCodes.CLEANUP_FAILURE,
            message=f"Crop {action} recorded, but file cleanup failed.",
            http_status=status.HTTP_500_INTERNAL_SERVER_ERROR,
            details={
                "cropId": job_id,
                "action": action,
                "transitionCommitted": True,
                "failedPaths": self.failed_paths,
            },
        )


def create_error_response(error: APIError) -> JSONResponse:
    """
    Create a standardized error response.

    Args:
        error: APIError instance

    Returns:
        JSONResponse with error envelope
    """
    error_info = ErrorInfo(
        code=error.code,
        message=error.message,
        retryable=error.retryable,
        details=error.details if error.details else None,
    )
    return JSONResponse(
        status_code=error.http_status,
        content={"error": error_info.model_dump(exclude_none=True)},
    )
