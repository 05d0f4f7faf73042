"""
Attendance service
Builds the monthly student x date attendance matrix of a class and saves
batches of teacher edits as one idempotent upsert.
"""

from datetime import date
from typing import Dict, Iterable, List

from flask import current_app
from sqlalchemy.exc import IntegrityError

from portal import db
from portal.core.errors import ValidationError, NotFoundError, PermissionDeniedError, ConflictError
from portal.core.attendance_matrix import (
    AttendanceEdit,
    RosterEntry,
    build_matrix,
    index_records,
    apply_batch,
)
from portal.core.temporal import classify_date
from portal.models.attendance import Attendance
from portal.models.class_model import PortalClass
from portal.models.schedule import Schedule
from portal.utils.helpers import day_bounds
from config.constants import ClassStatus


class AttendanceService:
    """Service for the attendance matrix and batch saves"""

    def __init__(self, clock=None):
        self.clock = clock or current_app.extensions['clock']

    @staticmethod
    def _get_class(class_id) -> PortalClass:
        class_obj = db.session.get(PortalClass, class_id)
        if class_obj is None:
            raise NotFoundError('Class')
        return class_obj

    def _get_managed_class(self, class_id, user) -> PortalClass:
        class_obj = self._get_class(class_id)
        if not class_obj.is_managed_by(user):
            current_app.logger.warning(
                f'User {user.id} tried to access attendance of class {class_id}'
            )
            raise PermissionDeniedError('You can only take attendance for your own classes')
        return class_obj

    @staticmethod
    def _roster(class_obj) -> List[RosterEntry]:
        return [
            RosterEntry(
                student_id=student.id,
                name=student.display_name,
                email=student.email,
                image=student.image,
            )
            for student in class_obj.enrolled_students()
        ]

    @staticmethod
    def _session_dates(class_id, start_date, end_date) -> List[date]:
        start, end = day_bounds(start_date, end_date)
        return [schedule.date for schedule in Schedule.find_by_class_and_range(class_id, start, end)]

    def _date_states(self, dates: Iterable[date]) -> Dict[date, str]:
        now = self.clock.now()
        return {day: classify_date(day, now) for day in dates}

    # ==================== READ ====================

    @staticmethod
    def list_teacher_classes(user) -> List[PortalClass]:
        """Classes a teacher can take attendance for; every active class for an admin"""
        if user.is_admin:
            return PortalClass.query.filter_by(
                status=ClassStatus.ACTIVE
            ).order_by(PortalClass.class_name).all()
        return PortalClass.get_for_teacher(user.id)

    def get_matrix(self, class_id, month_start: date, month_end: date, user) -> Dict:
        """
        Attendance matrix of a class for one month

        Returns:
            dict: class info, students, dates (with totals and state) and attendance_map
        """
        class_obj = self._get_managed_class(class_id, user)

        roster = self._roster(class_obj)
        session_dates = self._session_dates(class_id, month_start, month_end)
        records = [
            row.to_record()
            for row in Attendance.find_by_class_and_range(class_id, month_start, month_end)
        ]

        matrix = build_matrix(roster, session_dates, records)
        current_app.logger.debug(
            f'Attendance matrix for class {class_id} {month_start:%Y-%m}: '
            f'{len(matrix.students)} students x {len(matrix.schedule_dates)} dates'
        )

        data = matrix.to_dict(self._date_states(matrix.schedule_dates))
        data['class'] = class_obj.to_dict()
        data['month'] = month_start.strftime('%Y-%m')
        return data

    def get_student_attendance(self, student, class_id, month_start: date, month_end: date) -> Dict:
        """A student's own row of the class matrix, with a small summary"""
        class_obj = self._get_class(class_id)
        if not class_obj.is_enrolled(student.id):
            raise PermissionDeniedError('You are not enrolled in this class')

        roster = [RosterEntry(
            student_id=student.id,
            name=student.display_name,
            email=student.email,
            image=student.image,
        )]
        session_dates = self._session_dates(class_id, month_start, month_end)
        records = [
            row.to_record()
            for row in Attendance.find_by_class_and_range(
                class_id, month_start, month_end, student_id=student.id
            )
        ]

        matrix = build_matrix(roster, session_dates, records)
        totals = {'PRESENT': 0, 'ABSENT': 0, 'UNMARKED': 0}
        for cell in matrix.cells[student.id].values():
            totals[cell.status] += 1

        data = matrix.to_dict(self._date_states(matrix.schedule_dates))
        data['class'] = class_obj.to_dict()
        data['month'] = month_start.strftime('%Y-%m')
        data['summary'] = totals
        return data

    # ==================== WRITE ====================

    def _check_edits(self, class_obj, edits: List[AttendanceEdit]):
        """Every edit must target an enrolled student on a past or current scheduled date"""
        roster_ids = {entry.student_id for entry in self._roster(class_obj)}
        first = min(edit.date for edit in edits)
        last = max(edit.date for edit in edits)
        scheduled = set(self._session_dates(class_obj.id, first, last))
        today = self.clock.now().date()

        for edit in edits:
            if edit.student_id not in roster_ids:
                raise ValidationError(
                    f'Student {edit.student_id} is not enrolled in this class',
                    field='student_id',
                    code=ValidationError.NOT_ENROLLED,
                )
            if edit.date not in scheduled:
                raise ValidationError(
                    f'No session is scheduled on {edit.date.isoformat()}',
                    field='date',
                    code=ValidationError.NOT_SCHEDULED,
                )
            if edit.date > today:
                raise ValidationError(
                    'Attendance cannot be taken for a future date',
                    field='date',
                    code=ValidationError.FUTURE_DATE,
                )

    def save_attendance(self, class_id, edits: List[AttendanceEdit], user) -> Dict:
        """
        Save a batch of edits atomically

        Edits for a (student, date) that already has a record update it, the
        rest insert; repeating the same batch leaves the same stored state.

        Returns:
            dict: counts of saved, created and updated records
        """
        class_obj = self._get_managed_class(class_id, user)
        if not edits:
            return {'saved': 0, 'created': 0, 'updated': 0}

        self._check_edits(class_obj, edits)

        first = min(edit.date for edit in edits)
        last = max(edit.date for edit in edits)
        existing = index_records(
            row.to_record()
            for row in Attendance.find_by_class_and_range(class_id, first, last)
        )
        plan = apply_batch(existing, edits)

        try:
            Attendance.upsert_batch(class_id, user.id, plan)
            db.session.commit()
        except IntegrityError as e:
            db.session.rollback()
            current_app.logger.warning(f'Concurrent attendance save on class {class_id}: {str(e)}')
            raise ConflictError('Attendance was changed by someone else, reload and try again')
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f'Error saving attendance for class {class_id}: {str(e)}')
            raise

        current_app.logger.info(
            f'User {user.id} saved attendance for class {class_id}: '
            f'{len(plan.creates)} created, {len(plan.updates)} updated'
        )
        return {
            'saved': len(plan),
            'created': len(plan.creates),
            'updated': len(plan.updates),
        }
