"""Error taxonomy for code validation and check-in."""
from typing import Any, Dict, Optional


class ErrorCode:
    """Machine-readable error codes returned to API callers."""
    INVALID_CODE = 'INVALID_CODE'
    CODE_NOT_FOUND_OR_EXPIRED = 'CODE_NOT_FOUND_OR_EXPIRED'
    ALREADY_MARKED = 'ALREADY_MARKED'
    LOCATION_UNAVAILABLE = 'LOCATION_UNAVAILABLE'
    LOCATION_TIMEOUT = 'LOCATION_TIMEOUT'
    OUT_OF_RANGE = 'OUT_OF_RANGE'
    STORE_ERROR = 'STORE_ERROR'
    LEDGER_ERROR = 'LEDGER_ERROR'


class AttendanceError(Exception):
    """Base class for failures surfaced by the attendance workflow."""

    code = None
    status_code = 400
    default_message = 'Attendance request failed'

    def __init__(self, message: str = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'error': True,
            'message': self.message,
            'status_code': self.status_code,
            'error_code': self.code
        }
        if self.details:
            result['details'] = self.details
        return result


class InvalidCodeError(AttendanceError):
    code = ErrorCode.INVALID_CODE
    status_code = 400
    default_message = 'Attendance code must be 6 letters or digits'


class CodeNotFoundError(AttendanceError):
    code = ErrorCode.CODE_NOT_FOUND_OR_EXPIRED
    status_code = 404
    default_message = 'Invalid or expired attendance code'


class AlreadyMarkedError(AttendanceError):
    code = ErrorCode.ALREADY_MARKED
    status_code = 409
    default_message = 'Attendance already marked for this code'


class LocationUnavailableError(AttendanceError):
    """Device could not supply a position (permission denied or no fix)."""

    code = ErrorCode.LOCATION_UNAVAILABLE
    status_code = 422
    default_message = 'Location information is unavailable. Please try again.'

    PERMISSION_DENIED = 'PERMISSION_DENIED'
    UNAVAILABLE = 'UNAVAILABLE'

    def __init__(self, message: str = None, reason: str = UNAVAILABLE):
        super().__init__(message, details={'reason': reason})
        self.reason = reason


class LocationTimeoutError(AttendanceError):
    code = ErrorCode.LOCATION_TIMEOUT
    status_code = 408
    default_message = 'Location request timed out. Please try again.'


class OutOfRangeError(AttendanceError):
    """Student is outside the issuer's geofence."""

    code = ErrorCode.OUT_OF_RANGE
    status_code = 403

    def __init__(self, distance_meters: Optional[float], allowed_radius_meters: float):
        if distance_meters is None:
            message = 'Could not verify your distance from the class location'
        else:
            message = (
                f'You must be within {allowed_radius_meters:.0f}m of the class location '
                f'to mark attendance. You are {distance_meters:.0f}m away.'
            )
        super().__init__(message, details={
            'distance_meters': None if distance_meters is None else round(distance_meters, 1),
            'allowed_radius_meters': allowed_radius_meters
        })
        self.distance_meters = distance_meters
        self.allowed_radius_meters = allowed_radius_meters


class StoreError(AttendanceError):
    code = ErrorCode.STORE_ERROR
    status_code = 503
    default_message = 'Could not reach the attendance store. Please try again.'


class LedgerError(AttendanceError):
    """Raised by ledger mirrors; logged by the dispatcher, never returned to callers."""

    code = ErrorCode.LEDGER_ERROR
    status_code = 502
    default_message = 'Ledger request failed'
