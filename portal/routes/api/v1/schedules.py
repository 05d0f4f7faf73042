"""
API Schedule Endpoints
Single and recurring session management, calendar listings grouped by
temporal state
"""
from flask import Blueprint, request
from flask_login import current_user

from portal.decorators.auth import api_login_required, staff_required, student_required
from portal.services.scheduling_service import SchedulingService
from portal.utils.api_response import APIResponse
from portal.utils.helpers import (
    require,
    parse_datetime,
    parse_date,
    parse_weekdays,
    parse_int,
    day_bounds,
)
from portal.core.errors import ValidationError

bp = Blueprint('api_schedules', __name__, url_prefix='/api/v1/schedules')


def _serialize_groups(grouped, now):
    return {
        state: [schedule.to_dict(now) for schedule in schedules]
        for state, schedules in grouped.items()
    }


def _range_args():
    """Optional ?start=&end= dates, widened to whole days"""
    start = request.args.get('start')
    end = request.args.get('end')
    start_date = parse_date(start, 'start') if start else None
    end_date = parse_date(end, 'end') if end else None

    if start_date and end_date and end_date < start_date:
        raise ValidationError('end must not be before start', field='end',
                              code=ValidationError.INVALID_FORMAT)

    start_dt = day_bounds(start_date, start_date)[0] if start_date else None
    end_dt = day_bounds(end_date, end_date)[1] if end_date else None
    return start_dt, end_dt


def _recurrence_args(payload):
    """The recurrence block of a create/preview payload, or None for a single session"""
    recurrence = payload.get('recurrence')
    if not recurrence:
        return None
    if not isinstance(recurrence, dict):
        raise ValidationError('recurrence must be an object', field='recurrence',
                              code=ValidationError.INVALID_FORMAT)

    end_date = recurrence.get('end_date')
    return {
        'weekdays': parse_weekdays(recurrence.get('weekdays')),
        'interval': parse_int(recurrence.get('interval', 1), 'interval'),
        'end_date': parse_date(end_date, 'end_date') if end_date else None,
    }


@bp.route('', methods=['GET'])
@staff_required
def list_schedules():
    """
    Sessions of the current teacher grouped into PAST / UPCOMING / FUTURE

    Query Parameters:
        - start: First day (YYYY-MM-DD)
        - end: Last day (YYYY-MM-DD)
        - class_id: Filter by class ID
    """
    start, end = _range_args()
    class_id = request.args.get('class_id', type=int)

    service = SchedulingService()
    grouped, now = service.list_schedules(current_user, start, end, class_id)

    return APIResponse.success(
        data=_serialize_groups(grouped, now),
        message='Schedules retrieved successfully',
        meta={'now': now.isoformat(), 'total': sum(len(v) for v in grouped.values())}
    )


@bp.route('/student', methods=['GET'])
@student_required
def list_student_schedules():
    """Sessions of every class the current student is enrolled in"""
    start, end = _range_args()

    service = SchedulingService()
    grouped, now = service.list_student_schedules(current_user, start, end)

    return APIResponse.success(
        data=_serialize_groups(grouped, now),
        message='Schedules retrieved successfully',
        meta={'now': now.isoformat(), 'total': sum(len(v) for v in grouped.values())}
    )


@bp.route('', methods=['POST'])
@staff_required
def create_schedule():
    """
    Create a single session or a recurring series

    Request Body:
        {
            "class_id": 1,
            "title": "HSK 1 - Lesson",
            "start_time": "2024-03-04T18:00:00",
            "end_time": "2024-03-04T19:30:00",
            "location": "Room 2",                      (optional)
            "description": "...",                      (optional)
            "meeting_link": "https://...",             (optional)
            "recurrence": {                            (optional)
                "weekdays": [1, 3],
                "interval": 1,
                "end_date": "2024-03-17"               (optional, default +2 months)
            }
        }
    """
    payload = request.get_json(silent=True) or {}
    service = SchedulingService()

    start_time = parse_datetime(require(payload, 'start_time'), 'start_time', service.clock)
    end_time = parse_datetime(require(payload, 'end_time'), 'end_time', service.clock)

    created, group_id = service.create_schedules(
        current_user,
        class_id=parse_int(require(payload, 'class_id'), 'class_id'),
        title=require(payload, 'title'),
        start_time=start_time,
        end_time=end_time,
        location=payload.get('location'),
        description=payload.get('description'),
        meeting_link=payload.get('meeting_link'),
        recurrence=_recurrence_args(payload),
    )

    now = service.now()
    return APIResponse.created(
        data=[schedule.to_dict(now) for schedule in created],
        message=f'{len(created)} session(s) created successfully',
        meta={'count': len(created), 'recurrence_group_id': group_id}
    )


@bp.route('/preview', methods=['POST'])
@staff_required
def preview_schedule():
    """Number of sessions a recurrence would create, without creating them"""
    payload = request.get_json(silent=True) or {}
    service = SchedulingService()

    start_time = parse_datetime(require(payload, 'start_time'), 'start_time', service.clock)
    recurrence = _recurrence_args(payload) or {'weekdays': [], 'interval': 1, 'end_date': None}

    data = service.preview_recurrence(
        start_time,
        recurrence['weekdays'],
        recurrence['interval'],
        recurrence['end_date'],
    )
    return APIResponse.success(data=data, message='Preview generated')


@bp.route('/<int:schedule_id>', methods=['GET'])
@api_login_required
def get_schedule(schedule_id):
    service = SchedulingService()
    schedule = service.get_schedule(schedule_id, current_user)
    return APIResponse.success(data=schedule.to_dict(service.now()))


@bp.route('/<int:schedule_id>', methods=['PATCH'])
@staff_required
def update_schedule(schedule_id):
    """
    Edit one occurrence

    Request Body (any of):
        start_time, end_time, location, status
    """
    payload = request.get_json(silent=True) or {}
    service = SchedulingService()

    changes = {}
    for field, value in payload.items():
        if field in ('start_time', 'end_time'):
            changes[field] = parse_datetime(require(payload, field), field, service.clock)
        elif field == 'status':
            changes[field] = str(value or '').strip().upper()
        else:
            changes[field] = value

    if not changes:
        return APIResponse.validation_error({'body': 'No fields to update'})

    schedule = service.update_schedule(schedule_id, changes, current_user)
    return APIResponse.success(
        data=schedule.to_dict(service.now()),
        message='Schedule updated successfully'
    )


@bp.route('/<int:schedule_id>', methods=['DELETE'])
@staff_required
def delete_schedule(schedule_id):
    SchedulingService().delete_schedule(schedule_id, current_user)
    return APIResponse.success(
        data={'deleted_ids': [schedule_id]},
        message='Schedule deleted successfully'
    )


@bp.route('/groups/<group_id>', methods=['DELETE'])
@staff_required
def delete_schedule_group(group_id):
    """Delete every occurrence of a recurring series"""
    deleted = SchedulingService().delete_schedule_group(group_id, current_user)
    return APIResponse.success(
        data={'deleted_ids': deleted},
        message=f'{len(deleted)} session(s) deleted',
        meta={'count': len(deleted)}
    )
