"""
Request parsing helpers
Turn raw JSON / query-string values into typed values, raising field-level
ValidationError on bad input.
"""
import calendar
from datetime import datetime, date, time

from portal.core.errors import ValidationError


def require(data, field):
    """Fetch a required key from a request payload"""
    value = data.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f'{field} is required', field=field, code=ValidationError.REQUIRED)
    return value


def parse_datetime(value, field, clock=None):
    """
    Parse an ISO 8601 timestamp.
    Aware values are converted to portal time when a clock is given.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            # fromisoformat() before 3.11 rejects a trailing 'Z'
            parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
        except (TypeError, ValueError):
            raise ValidationError(
                f'Invalid datetime format for {field} (use ISO 8601)',
                field=field,
                code=ValidationError.INVALID_FORMAT,
            )

    if parsed.tzinfo is not None:
        if clock is None:
            return parsed.replace(tzinfo=None)
        return clock.localize(parsed)
    return parsed


def parse_date(value, field):
    """Parse a YYYY-MM-DD date (a full timestamp is truncated to its date)"""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(
            f'Invalid date format for {field} (use YYYY-MM-DD)',
            field=field,
            code=ValidationError.INVALID_FORMAT,
        )


def parse_month(value, field='month'):
    """
    Parse YYYY-MM into the first and last day of that month

    Returns:
        tuple: (first_date, last_date)
    """
    try:
        month_start = datetime.strptime(str(value), '%Y-%m').date()
    except (TypeError, ValueError):
        raise ValidationError(
            f'Invalid month format for {field} (use YYYY-MM)',
            field=field,
            code=ValidationError.INVALID_FORMAT,
        )
    last_day = calendar.monthrange(month_start.year, month_start.month)[1]
    return month_start, month_start.replace(day=last_day)


def parse_weekdays(value, field='weekdays'):
    """Accept a list of day numbers (0=Sunday); range checking is left to the rule validator"""
    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f'{field} must be a list of day numbers', field=field,
                              code=ValidationError.INVALID_FORMAT)
    try:
        return [int(day) for day in value]
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a list of day numbers', field=field,
                              code=ValidationError.INVALID_FORMAT)


def parse_int(value, field):
    if isinstance(value, bool):
        raise ValidationError(f'{field} must be an integer', field=field,
                              code=ValidationError.INVALID_FORMAT)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer', field=field,
                              code=ValidationError.INVALID_FORMAT)


def day_bounds(start_date, end_date):
    """Inclusive datetime range covering whole days"""
    return datetime.combine(start_date, time.min), datetime.combine(end_date, time.max)
