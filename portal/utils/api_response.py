"""
API Response Utilities
JSON envelope shared by every portal endpoint:

    {"success": bool, "message": str, "data": ..., "meta": {...},
     "error_code": str, "details": {...}, "timestamp": iso8601}
"""
from flask import jsonify
from typing import Any, Optional, Dict
from datetime import datetime


class APIResponse:
    """Standardized API response formatter"""

    @staticmethod
    def _envelope(success: bool, message: str, **fields) -> Dict:
        body = {'success': success, 'message': message}
        body.update({key: value for key, value in fields.items() if value is not None})
        body['timestamp'] = datetime.utcnow().isoformat()
        return body

    @staticmethod
    def success(data: Any = None, message: str = "Success",
                status_code: int = 200, meta: Optional[Dict] = None) -> tuple:
        """
        Format successful API response

        Args:
            data: Response payload (always present, may be null)
            message: Success message
            status_code: HTTP status code
            meta: Counts, recurrence group ids, the "now" used for grouping
        """
        body = APIResponse._envelope(True, message, meta=meta or None)
        body['data'] = data
        return jsonify(body), status_code

    @staticmethod
    def created(data: Any, message: str = "Resource created successfully",
                meta: Optional[Dict] = None) -> tuple:
        return APIResponse.success(data=data, message=message, status_code=201, meta=meta)

    @staticmethod
    def error(message: str, error_code: str = None,
              status_code: int = 400, details: Any = None) -> tuple:
        """
        Format error API response

        Args:
            message: Error message shown to the user
            error_code: Machine-readable code, e.g. EMPTY_WEEKDAY_SET
            status_code: HTTP status code
            details: Field-level messages keyed by field name
        """
        body = APIResponse._envelope(False, message, error_code=error_code, details=details or None)
        return jsonify(body), status_code

    @staticmethod
    def from_error(error) -> tuple:
        """Envelope for a PortalError; validation errors report their specific code"""
        return APIResponse.error(
            message=error.message,
            error_code=getattr(error, 'code', None) or error.error_code,
            status_code=error.status_code,
            details=error.details
        )

    @staticmethod
    def unauthorized(message: str = "Authentication required") -> tuple:
        return APIResponse.error(message=message, error_code='UNAUTHORIZED', status_code=401)

    @staticmethod
    def forbidden(message: str = "Access denied") -> tuple:
        return APIResponse.error(message=message, error_code='FORBIDDEN', status_code=403)

    @staticmethod
    def validation_error(errors: Dict, message: str = "Validation failed") -> tuple:
        return APIResponse.error(
            message=message,
            error_code='VALIDATION_ERROR',
            status_code=422,
            details=errors
        )

    @staticmethod
    def server_error(message: str = "Operation failed") -> tuple:
        """Generic 500; the cause is logged, never returned"""
        return APIResponse.error(message=message, error_code='INTERNAL_ERROR', status_code=500)
