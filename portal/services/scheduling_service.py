"""
Scheduling service for single and recurring class sessions.
Validates recurrence rules, expands them into sessions and persists each
series atomically; lists sessions bucketed by temporal state.
"""

import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from flask import current_app

from portal import db
from portal.core.errors import ValidationError, NotFoundError, PermissionDeniedError
from portal.core.recurrence import (
    RecurrenceRule,
    SessionTemplate,
    GeneratedSession,
    validate_recurrence_rule,
    expand_sessions,
    preview_occurrence_count,
    default_recurrence_end_date,
)
from portal.core.temporal import group_by_state
from portal.models.class_model import PortalClass
from portal.models.schedule import Schedule
from config.constants import ScheduleStatus, DayOfWeek


class SchedulingService:
    """Manages schedule creation, editing and calendar views"""

    def __init__(self, clock=None):
        self.clock = clock or current_app.extensions['clock']

    def now(self) -> datetime:
        return self.clock.now()

    @property
    def max_recurrence_months(self) -> int:
        return current_app.config.get('MAX_RECURRENCE_MONTHS', 12)

    # ==================== ACCESS ====================

    @staticmethod
    def _get_managed_class(class_id, user) -> PortalClass:
        class_obj = db.session.get(PortalClass, class_id)
        if class_obj is None:
            raise NotFoundError('Class')
        if not class_obj.is_managed_by(user):
            current_app.logger.warning(
                f'User {user.id} tried to manage schedules of class {class_id} they do not teach'
            )
            raise PermissionDeniedError('You can only manage schedules of your own classes')
        return class_obj

    @staticmethod
    def _get_schedule(schedule_id) -> Schedule:
        schedule = db.session.get(Schedule, schedule_id)
        if schedule is None:
            raise NotFoundError('Schedule')
        return schedule

    # ==================== CREATION ====================

    @staticmethod
    def _check_times(start_time: datetime, end_time: datetime):
        if end_time <= start_time:
            raise ValidationError(
                'End time must be after start time',
                field='end_time',
                code=ValidationError.INVALID_FORMAT,
            )
        if end_time.date() != start_time.date():
            raise ValidationError(
                'A session must start and end on the same day',
                field='end_time',
                code=ValidationError.INVALID_FORMAT,
            )

    @classmethod
    def _build_template(cls, class_obj, title, start_time, end_time, location=None,
                        description=None, meeting_link=None) -> SessionTemplate:
        if not title or not str(title).strip():
            raise ValidationError('Title is required', field='title', code=ValidationError.REQUIRED)
        cls._check_times(start_time, end_time)

        return SessionTemplate(
            title=str(title).strip(),
            class_id=class_obj.id,
            owner_id=class_obj.teacher_id,
            start_time=start_time,
            end_time=end_time,
            location=location or None,
            description=description or None,
            meeting_link=meeting_link or None,
        )

    def build_rule(self, start_time: datetime, weekdays, interval=1, end_date=None) -> RecurrenceRule:
        """Recurrence rule with the configured default end date filled in"""
        if end_date is None:
            months = current_app.config.get('DEFAULT_RECURRENCE_MONTHS', 2)
            end_date = default_recurrence_end_date(start_time.date(), months)
        return RecurrenceRule.create(weekdays=weekdays or [], end_date=end_date, interval=interval)

    def create_schedules(
        self,
        user,
        class_id: int,
        title: str,
        start_time: datetime,
        end_time: datetime,
        location: Optional[str] = None,
        description: Optional[str] = None,
        meeting_link: Optional[str] = None,
        recurrence: Optional[Dict] = None,
    ) -> Tuple[List[Schedule], Optional[str]]:
        """
        Create one session, or a whole recurring series in one transaction

        Args:
            user: Acting teacher or admin
            recurrence: None for a single session, otherwise
                {'weekdays': [int], 'interval': int, 'end_date': date | None}

        Returns:
            tuple: (created schedules in canonical order, recurrence group id or None)
        """
        class_obj = self._get_managed_class(class_id, user)
        template = self._build_template(
            class_obj, title, start_time, end_time,
            location=location, description=description, meeting_link=meeting_link,
        )

        group_id = None
        if recurrence is None:
            sessions = [GeneratedSession(
                title=template.title,
                class_id=template.class_id,
                owner_id=template.owner_id,
                start_time=template.start_time,
                end_time=template.end_time,
                location=template.location,
                description=template.description,
                meeting_link=template.meeting_link,
            )]
        else:
            rule = self.build_rule(
                start_time,
                recurrence.get('weekdays'),
                recurrence.get('interval', 1),
                recurrence.get('end_date'),
            )
            validate_recurrence_rule(rule, start_time.date(), self.max_recurrence_months)
            sessions = expand_sessions(template, rule, self.max_recurrence_months)
            if not sessions:
                raise ValidationError(
                    'The selected weekdays never occur before the end date',
                    field='weekdays',
                    code=ValidationError.NO_OCCURRENCES,
                )
            group_id = uuid.uuid4().hex

        try:
            created = Schedule.create_many(sessions, recurrence_group_id=group_id)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f'Error creating schedules for class {class_id}: {str(e)}')
            raise

        current_app.logger.info(
            f'User {user.id} created {len(created)} session(s) for class {class_id}'
            + (f' in group {group_id}' if group_id else '')
        )
        return created, group_id

    def preview_recurrence(self, start_time: datetime, weekdays, interval=1, end_date=None) -> Dict:
        """How many sessions a rule would create, for the create form"""
        rule = self.build_rule(start_time, weekdays, interval, end_date)
        count = preview_occurrence_count(start_time.date(), rule, self.max_recurrence_months)
        return {
            'count': count,
            'end_date': rule.end_date.isoformat(),
            'weekdays': sorted(rule.weekdays),
            'weekday_names': [DayOfWeek.NAMES[day] for day in sorted(rule.weekdays)],
            'interval': rule.interval,
        }

    # ==================== RETRIEVAL ====================

    def list_schedules(self, user, start=None, end=None, class_id=None) -> Tuple[Dict[str, List[Schedule]], datetime]:
        """
        Sessions of a teacher (every session for an admin) grouped by temporal state

        Returns:
            tuple: ({state: [Schedule]}, now used for the grouping)
        """
        if user.is_admin:
            query = Schedule.query
            if start:
                query = query.filter(Schedule.start_time >= start)
            if end:
                query = query.filter(Schedule.start_time <= end)
            if class_id:
                query = query.filter(Schedule.class_id == class_id)
            schedules = query.order_by(Schedule.start_time, Schedule.id).all()
        else:
            schedules = Schedule.find_by_teacher_and_range(user.id, start, end, class_id)

        now = self.now()
        return group_by_state(schedules, now), now

    def list_student_schedules(self, student, start=None, end=None) -> Tuple[Dict[str, List[Schedule]], datetime]:
        """Sessions of every class the student is enrolled in, grouped by state"""
        class_ids = [c.id for c in PortalClass.get_for_student(student.id)]
        schedules = Schedule.find_by_classes_and_range(class_ids, start, end)
        now = self.now()
        return group_by_state(schedules, now), now

    def get_schedule(self, schedule_id, user) -> Schedule:
        schedule = self._get_schedule(schedule_id)
        class_obj = schedule.class_
        if class_obj.is_managed_by(user) or class_obj.is_enrolled(user.id):
            return schedule
        raise PermissionDeniedError('You do not have access to this schedule')

    # ==================== MODIFICATION ====================

    def update_schedule(self, schedule_id, changes: Dict, user) -> Schedule:
        """
        Edit a single occurrence; only time, location and status may change

        Args:
            changes: Already-parsed values keyed by field name
        """
        schedule = self._get_schedule(schedule_id)
        self._get_managed_class(schedule.class_id, user)

        immutable = sorted(set(changes) - set(Schedule.MUTABLE_FIELDS))
        if immutable:
            raise ValidationError(
                f"Only {', '.join(Schedule.MUTABLE_FIELDS)} can be changed",
                details={field: 'Field cannot be changed' for field in immutable},
                code=ValidationError.INVALID_FORMAT,
            )

        if 'status' in changes and changes['status'] not in ScheduleStatus.ALL:
            raise ValidationError(
                f"Invalid status. Must be one of: {', '.join(ScheduleStatus.ALL)}",
                field='status',
                code=ValidationError.INVALID_STATUS,
            )

        self._check_times(
            changes.get('start_time', schedule.start_time),
            changes.get('end_time', schedule.end_time),
        )

        for field, value in changes.items():
            setattr(schedule, field, value)

        try:
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f'Error updating schedule {schedule_id}: {str(e)}')
            raise

        current_app.logger.info(f'User {user.id} updated schedule {schedule_id}: {sorted(changes)}')
        return schedule

    def delete_schedule(self, schedule_id, user) -> int:
        """Delete a single occurrence, leaving the rest of its group intact"""
        schedule = self._get_schedule(schedule_id)
        self._get_managed_class(schedule.class_id, user)

        try:
            db.session.delete(schedule)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f'Error deleting schedule {schedule_id}: {str(e)}')
            raise

        current_app.logger.info(f'User {user.id} deleted schedule {schedule_id}')
        return schedule_id

    def delete_schedule_group(self, group_id, user) -> List[int]:
        """
        Delete every occurrence of a recurrence group atomically

        Returns:
            List of deleted schedule ids
        """
        members = Schedule.find_by_group_id(group_id)
        if not members:
            raise NotFoundError('Recurrence group')
        for class_id in {member.class_id for member in members}:
            self._get_managed_class(class_id, user)

        try:
            deleted = Schedule.delete_by_group_id(group_id)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            current_app.logger.error(f'Error deleting recurrence group {group_id}: {str(e)}')
            raise

        current_app.logger.info(f'User {user.id} deleted {len(deleted)} sessions of group {group_id}')
        return deleted
