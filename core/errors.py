"""Domain exceptions for the interview service.

Every exception carries the HTTP status and error code it maps to at the
request boundary (see ``core.middleware.error_handling``). Services raise
these; routes never translate them by hand.
"""

from fastapi import status


class InterviewServiceError(Exception):
    """Base exception for all interview service errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    code: str = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(InterviewServiceError):
    """Raised when caller input is malformed."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class NotFoundError(InterviewServiceError):
    """Raised when a role, question, link or candidate does not exist."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class ExpiredError(InterviewServiceError):
    """Raised when an interview link is past its expiry."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "LINK_EXPIRED"


class AlreadyUsedError(InterviewServiceError):
    """Raised when a write is attempted through a link that was already used."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "LINK_ALREADY_USED"


class EmailMismatchError(InterviewServiceError):
    """Raised when the candidate email does not match the invitation."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "EMAIL_MISMATCH"


class ConflictError(InterviewServiceError):
    """Raised on a duplicate unique key."""

    status_code = status.HTTP_409_CONFLICT
    code = "CONFLICT"


class OwnershipError(InterviewServiceError):
    """Raised when an interviewer touches a resource they do not own."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "PERMISSION_DENIED"


class NoAnswersError(NotFoundError):
    """Raised when an interview has no recorded answers to assemble."""

    code = "NO_ANSWERS"


class StorageError(InterviewServiceError):
    """Raised when object storage fails on a critical path."""

    code = "STORAGE_ERROR"


class NotificationError(InterviewServiceError):
    """Raised when an email could not be delivered."""

    code = "NOTIFICATION_ERROR"


class StitchingError(InterviewServiceError):
    """Raised when the final interview video could not be produced."""

    code = "STITCHING_ERROR"


class TranscodingError(StitchingError):
    """Raised when the ffmpeg process exits with an error."""

    code = "TRANSCODING_ERROR"

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        super().__init__(message)
