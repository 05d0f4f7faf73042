"""
Portal error hierarchy

Services raise these; the app factory turns them into API error envelopes.
"""


class PortalError(Exception):
    """Base class for errors that map to a client-facing response"""

    status_code = 400
    error_code = 'BAD_REQUEST'

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(PortalError):
    """Invalid user input, reported per field"""

    status_code = 422
    error_code = 'VALIDATION_ERROR'

    # Recurrence rule failures
    EMPTY_WEEKDAY_SET = 'EMPTY_WEEKDAY_SET'
    INVALID_WEEKDAY = 'INVALID_WEEKDAY'
    INVALID_INTERVAL = 'INVALID_INTERVAL'
    END_DATE_BEFORE_START = 'END_DATE_BEFORE_START'
    NO_OCCURRENCES = 'NO_OCCURRENCES'
    SERIES_TOO_LONG = 'SERIES_TOO_LONG'

    # Attendance edit failures
    INVALID_STATUS = 'INVALID_STATUS'
    UNMARK_NOT_SUPPORTED = 'UNMARK_NOT_SUPPORTED'
    NOT_ENROLLED = 'NOT_ENROLLED'
    NOT_SCHEDULED = 'NOT_SCHEDULED'
    FUTURE_DATE = 'FUTURE_DATE'

    # Generic field failures
    REQUIRED = 'REQUIRED'
    INVALID_FORMAT = 'INVALID_FORMAT'

    def __init__(self, message, field=None, code=None, details=None):
        if details is None and field:
            details = {field: message}
        super().__init__(message, details=details)
        self.field = field
        self.code = code


class NotFoundError(PortalError):
    """Referenced class, schedule, group or student does not exist"""

    status_code = 404
    error_code = 'NOT_FOUND'

    def __init__(self, resource='Resource'):
        super().__init__(f'{resource} not found')
        self.resource = resource


class PermissionDeniedError(PortalError):
    """Caller is authenticated but may not act on the resource"""

    status_code = 403
    error_code = 'FORBIDDEN'


class ConflictError(PortalError):
    """Write collided with existing state (e.g. concurrent attendance save)"""

    status_code = 409
    error_code = 'CONFLICT'


class PreconditionError(PortalError, ValueError):
    """A core value was built from arguments that break its invariants"""

    status_code = 400
    error_code = 'BAD_REQUEST'
