"""
Authentication and Authorization Decorators
Role-based access control for the JSON API
"""
from functools import wraps
from flask import current_app
from flask_login import current_user

from portal.utils.api_response import APIResponse
from config.constants import UserRole


def api_login_required(f):
    """
    Decorator for API endpoints that require an authenticated, active account.
    Returns JSON error responses instead of redirects.

    Usage:
        @api_login_required
        def api_endpoint():
            ...
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return APIResponse.unauthorized('Please log in to access this endpoint')

        return f(*args, **kwargs)
    return decorated_function


def roles_required(*roles):
    """
    Restrict an API endpoint to the given roles.

    Usage:
        @roles_required(UserRole.STUDENT)
        def student_endpoint():
            ...
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return APIResponse.unauthorized('Please log in to access this endpoint')

            if current_user.role not in roles:
                current_app.logger.warning(
                    f"API: {current_user.role} user {current_user.get_id()} denied access to a "
                    f"{'/'.join(roles)} endpoint"
                )
                return APIResponse.forbidden('You do not have permission to access this endpoint')

            return f(*args, **kwargs)
        return decorated_function
    return decorator


# Teachers and system admins
staff_required = roles_required(*UserRole.STAFF)

student_required = roles_required(UserRole.STUDENT)
