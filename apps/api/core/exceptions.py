"""
Custom exception classes and error handling.

Domain errors raised by the check-in lifecycle, plus the HTTP forms the
API surface turns them into.
"""
from fastapi import HTTPException, status
from typing import Optional, Dict, Any


class CheckinError(Exception):
    """Base class for check-in lifecycle errors."""


class ScheduleDataError(CheckinError):
    """A timing carries schedule data that cannot be interpreted (e.g. active days)."""

    def __init__(self, timing_id: Any, detail: str):
        super().__init__(f"Timing {timing_id}: {detail}")
        self.timing_id = timing_id
        self.detail = detail


class InvalidTransitionError(CheckinError):
    """The check-in is no longer in a status that allows the requested change."""

    def __init__(self, checkin_id: Any, current_status: Optional[str], target_status: str):
        super().__init__(
            f"Check-in {checkin_id} cannot move from {current_status} to {target_status}"
        )
        self.checkin_id = checkin_id
        self.current_status = current_status
        self.target_status = target_status


class JobFatalError(CheckinError):
    """A job cannot run at all (store or gateway unavailable). The next invocation retries."""


class APIException(HTTPException):
    """Base API exception with consistent structure."""

    def __init__(
        self,
        status_code: int,
        detail: str,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class NotFoundError(APIException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found: {identifier}",
            error_code="NOT_FOUND"
        )


class ConflictError(APIException):
    """Resource conflict (e.g., state already moved on)."""

    def __init__(self, detail: str):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            error_code="CONFLICT"
        )
