"""
API Attendance Endpoints
Monthly attendance matrix per class and batch saving of teacher edits
"""
from flask import Blueprint, request
from flask_login import current_user

from portal.decorators.auth import staff_required, student_required
from portal.services.attendance_service import AttendanceService
from portal.utils.api_response import APIResponse
from portal.utils.helpers import require, parse_date, parse_month, parse_int
from portal.core.attendance_matrix import AttendanceEdit
from portal.core.errors import ValidationError

bp = Blueprint('api_attendance', __name__, url_prefix='/api/v1/attendance')


def _month_arg(service):
    """?month=YYYY-MM, defaulting to the current month"""
    month = request.args.get('month') or service.clock.now().strftime('%Y-%m')
    return parse_month(month)


def _parse_edits(payload):
    edits = payload.get('edits')
    if edits is None:
        raise ValidationError('edits is required', field='edits', code=ValidationError.REQUIRED)
    if not isinstance(edits, list):
        raise ValidationError('edits must be a list', field='edits', code=ValidationError.INVALID_FORMAT)

    parsed = []
    for item in edits:
        if not isinstance(item, dict):
            raise ValidationError('Each edit must be an object', field='edits',
                                  code=ValidationError.INVALID_FORMAT)
        parsed.append(AttendanceEdit(
            student_id=parse_int(require(item, 'student_id'), 'student_id'),
            date=parse_date(require(item, 'date'), 'date'),
            status=str(require(item, 'status')),
            note=item.get('notes'),
        ))
    return parsed


@bp.route('/classes', methods=['GET'])
@staff_required
def list_classes():
    """Classes the current teacher takes attendance for"""
    classes = AttendanceService.list_teacher_classes(current_user)
    return APIResponse.success(
        data=[class_obj.to_dict() for class_obj in classes],
        message='Classes retrieved successfully',
        meta={'total': len(classes)}
    )


@bp.route('/<int:class_id>', methods=['GET'])
@staff_required
def get_matrix(class_id):
    """
    Attendance matrix of a class for one month

    Query Parameters:
        - month: YYYY-MM (default: current month)

    Returns:
        students, dates (with per-status totals and temporal state) and
        attendance_map[student_id][date] = {id, status, notes}
    """
    service = AttendanceService()
    month_start, month_end = _month_arg(service)
    data = service.get_matrix(class_id, month_start, month_end, current_user)
    return APIResponse.success(data=data, message='Attendance retrieved successfully')


@bp.route('/<int:class_id>', methods=['POST'])
@staff_required
def save_attendance(class_id):
    """
    Save a batch of attendance edits in one transaction

    Request Body:
        {
            "edits": [
                {"student_id": 3, "date": "2024-03-04", "status": "PRESENT", "notes": "late"}
            ]
        }
    """
    payload = request.get_json(silent=True) or {}
    edits = _parse_edits(payload)

    result = AttendanceService().save_attendance(class_id, edits, current_user)
    return APIResponse.success(
        data=result,
        message=f"Saved {result['saved']} attendance record(s)"
    )


@bp.route('/<int:class_id>/me', methods=['GET'])
@student_required
def get_own_attendance(class_id):
    """The current student's attendance in a class for one month"""
    service = AttendanceService()
    month_start, month_end = _month_arg(service)
    data = service.get_student_attendance(current_user, class_id, month_start, month_end)
    return APIResponse.success(data=data, message='Attendance retrieved successfully')
