"""
Structured error handling for the video studio.

Provides:
- Categorized error codes for all failure scenarios
- User-friendly error messages
- HTTP status mapping used by the routers
- Retry logic determination
"""

from enum import Enum
from typing import Optional, Dict, Any

import structlog

logger = structlog.get_logger()


class ErrorCode(Enum):
    """
    Enumeration of all possible error codes.

    Organized by category:
    - Client Errors: input validation and missing resources
    - State Errors: operations not allowed in the project's current state
    - Provider Errors: generator/analyzer/render service failures
    - System Errors: infrastructure and storage issues
    """

    # Client Errors
    INVALID_INPUT = "INVALID_INPUT"
    MISSING_REQUIRED_FIELD = "MISSING_REQUIRED_FIELD"
    INVALID_SCENE_ORDER = "INVALID_SCENE_ORDER"
    PROJECT_NOT_FOUND = "PROJECT_NOT_FOUND"
    SCENE_NOT_FOUND = "SCENE_NOT_FOUND"
    PRODUCT_IMAGE_NOT_FOUND = "PRODUCT_IMAGE_NOT_FOUND"
    JOB_NOT_FOUND = "JOB_NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"

    # State Errors
    INVALID_STATE = "INVALID_STATE"
    ALREADY_GENERATING = "ALREADY_GENERATING"
    NOTHING_TO_UNDO = "NOTHING_TO_UNDO"
    NOTHING_TO_REDO = "NOTHING_TO_REDO"
    QUALITY_GATE_BLOCKED = "QUALITY_GATE_BLOCKED"
    JOB_ALREADY_FINISHED = "JOB_ALREADY_FINISHED"

    # Provider Errors
    SCRIPT_GENERATION_FAILED = "SCRIPT_GENERATION_FAILED"
    VOICE_GENERATION_FAILED = "VOICE_GENERATION_FAILED"
    IMAGE_GENERATION_FAILED = "IMAGE_GENERATION_FAILED"
    VIDEO_GENERATION_FAILED = "VIDEO_GENERATION_FAILED"
    MUSIC_GENERATION_FAILED = "MUSIC_GENERATION_FAILED"
    ANALYSIS_FAILED = "ANALYSIS_FAILED"
    RENDER_FAILED = "RENDER_FAILED"
    API_RATE_LIMIT = "API_RATE_LIMIT"
    API_TIMEOUT = "API_TIMEOUT"

    # System Errors
    REDIS_CONNECTION_ERROR = "REDIS_CONNECTION_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    STORAGE_ERROR = "STORAGE_ERROR"
    PERMISSION_DENIED = "PERMISSION_DENIED"


CLIENT_ERROR_CODES = {
    ErrorCode.INVALID_INPUT,
    ErrorCode.MISSING_REQUIRED_FIELD,
    ErrorCode.INVALID_SCENE_ORDER,
    ErrorCode.NOTHING_TO_UNDO,
    ErrorCode.NOTHING_TO_REDO,
    ErrorCode.QUALITY_GATE_BLOCKED,
    ErrorCode.INVALID_STATE,
}

HTTP_STATUS_BY_CODE = {
    ErrorCode.INVALID_INPUT: 400,
    ErrorCode.MISSING_REQUIRED_FIELD: 400,
    ErrorCode.INVALID_SCENE_ORDER: 400,
    ErrorCode.INVALID_STATE: 400,
    ErrorCode.NOTHING_TO_UNDO: 400,
    ErrorCode.NOTHING_TO_REDO: 400,
    ErrorCode.QUALITY_GATE_BLOCKED: 400,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.PERMISSION_DENIED: 403,
    ErrorCode.PROJECT_NOT_FOUND: 404,
    ErrorCode.SCENE_NOT_FOUND: 404,
    ErrorCode.PRODUCT_IMAGE_NOT_FOUND: 404,
    ErrorCode.JOB_NOT_FOUND: 404,
    ErrorCode.ALREADY_GENERATING: 409,
    ErrorCode.JOB_ALREADY_FINISHED: 409,
    ErrorCode.SCRIPT_GENERATION_FAILED: 502,
    ErrorCode.VOICE_GENERATION_FAILED: 502,
    ErrorCode.IMAGE_GENERATION_FAILED: 502,
    ErrorCode.VIDEO_GENERATION_FAILED: 502,
    ErrorCode.MUSIC_GENERATION_FAILED: 502,
    ErrorCode.ANALYSIS_FAILED: 502,
    ErrorCode.RENDER_FAILED: 502,
    ErrorCode.API_RATE_LIMIT: 429,
    ErrorCode.API_TIMEOUT: 504,
}


class StudioError(Exception):
    """
    Base exception for studio errors.

    Carries an error code for categorization, a detailed message for logs,
    a context dictionary, and a user-friendly message for API responses.

    Example:
        >>> raise StudioError(
        ...     ErrorCode.INVALID_INPUT,
        ...     "Narration cannot be empty",
        ...     {"field": "narration"}
        ... )
    """

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_message: Optional[str] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        self._user_message = user_message
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CODE.get(self.code, 500)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to the `detail` body used in HTTP error responses.

        Example:
            >>> SceneNotFoundError("scene_1").to_dict()["error"]
            'SCENE_NOT_FOUND'
        """
        return {
            "error": self.code.value,
            "message": self.message,
            "details": self.details,
            "userMessage": self.get_user_friendly_message(),
        }

    def get_user_friendly_message(self) -> str:
        """
        Returns the custom user message if given, otherwise a predefined one.
        """
        if self._user_message:
            return self._user_message

        friendly_messages = {
            ErrorCode.INVALID_INPUT: "Please check your input and try again.",
            ErrorCode.MISSING_REQUIRED_FIELD: "Required field is missing. Please check your request.",
            ErrorCode.INVALID_SCENE_ORDER: "The new scene order doesn't match the project's scenes.",
            ErrorCode.PROJECT_NOT_FOUND: "Project not found.",
            ErrorCode.SCENE_NOT_FOUND: "Scene not found.",
            ErrorCode.PRODUCT_IMAGE_NOT_FOUND: "Product image not found.",
            ErrorCode.JOB_NOT_FOUND: "Job not found. It may have expired.",
            ErrorCode.FORBIDDEN: "You don't have access to this project.",

            ErrorCode.INVALID_STATE: "This action isn't available right now.",
            ErrorCode.ALREADY_GENERATING: "Assets are already being generated for this project.",
            ErrorCode.NOTHING_TO_UNDO: "Nothing to undo.",
            ErrorCode.NOTHING_TO_REDO: "Nothing to redo.",
            ErrorCode.QUALITY_GATE_BLOCKED: "Some scenes need attention before rendering.",
            ErrorCode.JOB_ALREADY_FINISHED: "This job has already finished.",

            ErrorCode.SCRIPT_GENERATION_FAILED: "Failed to generate script. Please try again.",
            ErrorCode.VOICE_GENERATION_FAILED: "Failed to generate voiceover. Please try again.",
            ErrorCode.IMAGE_GENERATION_FAILED: "Failed to generate image. Please try again.",
            ErrorCode.VIDEO_GENERATION_FAILED: "Failed to generate video. Please try again.",
            ErrorCode.MUSIC_GENERATION_FAILED: "Failed to generate music. Please try again.",
            ErrorCode.ANALYSIS_FAILED: "Quality analysis is temporarily unavailable.",
            ErrorCode.RENDER_FAILED: "Rendering service error. Please try again.",
            ErrorCode.API_RATE_LIMIT: "Too many requests. Please wait a moment and try again.",
            ErrorCode.API_TIMEOUT: "Request timed out. Please try again.",

            ErrorCode.REDIS_CONNECTION_ERROR: "System temporarily unavailable. Please try again.",
            ErrorCode.DATABASE_ERROR: "Database error occurred. Please try again or contact support.",
            ErrorCode.STORAGE_ERROR: "Storage error occurred. Please try again or contact support.",
            ErrorCode.PERMISSION_DENIED: "Permission denied. Please contact support.",
        }

        return friendly_messages.get(
            self.code,
            "An error occurred. Please try again or contact support."
        )

    def log_error(self) -> None:
        """
        Log client and retryable errors as warnings, everything else as errors.
        """
        log_data = {
            "error_code": self.code.value,
            "message": self.message,
            "details": self.details,
        }

        if self.code in CLIENT_ERROR_CODES or self.http_status < 500:
            logger.warning("studio_client_error", **log_data)
        elif should_retry(self):
            logger.warning("studio_retryable_error", **log_data)
        else:
            logger.error("studio_error", **log_data)

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


def should_retry(error: Exception) -> bool:
    """
    Determines if an error is transient and should be retried.

    Example:
        >>> should_retry(StudioError(ErrorCode.API_TIMEOUT, "slow"))
        True
        >>> should_retry(ValidationError("bad input"))
        False
    """
    transient_error_codes = [
        ErrorCode.API_RATE_LIMIT,
        ErrorCode.API_TIMEOUT,
        ErrorCode.REDIS_CONNECTION_ERROR,
        ErrorCode.DATABASE_ERROR,
        ErrorCode.STORAGE_ERROR,
    ]

    if isinstance(error, ProviderError) and error.retryable:
        return True

    if isinstance(error, StudioError):
        return error.code in transient_error_codes

    if isinstance(error, (TimeoutError, ConnectionError)):
        return True

    return False


class ValidationError(StudioError):
    """
    Error for input validation failures.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict] = None,
        code: ErrorCode = ErrorCode.INVALID_INPUT,
    ):
        error_details = details or {}
        if field:
            error_details["field"] = field
        super().__init__(code, message, error_details)


class ProjectNotFoundError(StudioError):
    def __init__(self, project_id: str):
        super().__init__(
            ErrorCode.PROJECT_NOT_FOUND,
            f"Project {project_id} not found",
            {"projectId": project_id},
        )


class SceneNotFoundError(StudioError):
    def __init__(self, scene_ref: Any, project_id: Optional[str] = None):
        details = {"scene": scene_ref}
        if project_id:
            details["projectId"] = project_id
        super().__init__(
            ErrorCode.SCENE_NOT_FOUND,
            f"Scene {scene_ref} not found",
            details,
        )


class ProductImageNotFoundError(StudioError):
    def __init__(self, image_id: str):
        super().__init__(
            ErrorCode.PRODUCT_IMAGE_NOT_FOUND,
            f"Product image {image_id} not found",
            {"imageId": image_id},
        )


class JobNotFoundError(StudioError):
    def __init__(self, job_id: str):
        super().__init__(
            ErrorCode.JOB_NOT_FOUND,
            f"Video job {job_id} not found",
            {"jobId": job_id},
        )


class ForbiddenError(StudioError):
    def __init__(self, project_id: str):
        super().__init__(
            ErrorCode.FORBIDDEN,
            "You do not have access to this project",
            {"projectId": project_id},
        )


class InvalidStateError(StudioError):
    """
    Operation not allowed in the project's (or job's) current state.
    """

    def __init__(
        self,
        message: str,
        code: ErrorCode = ErrorCode.INVALID_STATE,
        details: Optional[Dict] = None,
    ):
        super().__init__(code, message, details)


class ProviderError(StudioError):
    """
    Failure of an external generator, analyzer or render service.

    Service names map onto the matching *_FAILED code.
    """

    SERVICE_CODES = {
        "script": ErrorCode.SCRIPT_GENERATION_FAILED,
        "voiceover": ErrorCode.VOICE_GENERATION_FAILED,
        "image": ErrorCode.IMAGE_GENERATION_FAILED,
        "video": ErrorCode.VIDEO_GENERATION_FAILED,
        "music": ErrorCode.MUSIC_GENERATION_FAILED,
        "analysis": ErrorCode.ANALYSIS_FAILED,
        "render": ErrorCode.RENDER_FAILED,
    }

    def __init__(
        self,
        service: str,
        message: str,
        retryable: bool = False,
        details: Optional[Dict] = None,
        code: Optional[ErrorCode] = None,
    ):
        self.service = service
        self.retryable = retryable
        error_details = details or {}
        error_details["service"] = service
        super().__init__(
            code or self.SERVICE_CODES.get(service, ErrorCode.RENDER_FAILED),
            message,
            error_details,
        )


class RateLimitedError(ProviderError):
    """
    The provider asked us to back off.
    """

    def __init__(self, service: str, retry_after: int, message: str = "Rate limited"):
        self.retry_after = retry_after
        super().__init__(
            service,
            message,
            retryable=True,
            details={"retryAfter": retry_after},
            code=ErrorCode.API_RATE_LIMIT,
        )
