"""
Schedule Model
Persisted class sessions, optionally linked into a recurrence group
"""

from datetime import datetime
from portal import db
from sqlalchemy import event, Index

from config.constants import ScheduleStatus
from portal.core.temporal import classify


class Schedule(db.Model):
    """
    Schedule Model
    One concrete calendar session of a class. Sessions generated from one
    recurrence rule share a recurrence_group_id.
    """
    __tablename__ = 'schedules'

    # Fields editable on a stored session
    MUTABLE_FIELDS = ('start_time', 'end_time', 'location', 'status')

    # Primary Fields
    id = db.Column(db.Integer, primary_key=True, autoincrement=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False)
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text)
    start_time = db.Column(db.DateTime, nullable=False)
    end_time = db.Column(db.DateTime, nullable=False)
    location = db.Column(db.String(200))
    meeting_link = db.Column(db.String(500))

    status = db.Column(db.String(20), default=ScheduleStatus.SCHEDULED, nullable=False)

    recurrence_group_id = db.Column(db.String(32), index=True)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    class_ = db.relationship('PortalClass', back_populates='schedules')
    teacher = db.relationship('User')

    # Table constraints
    __table_args__ = (
        db.CheckConstraint("status IN ('SCHEDULED', 'COMPLETED', 'CANCELLED')", name='check_schedule_status'),
        db.CheckConstraint('end_time > start_time', name='check_schedule_time_range'),
        Index('idx_schedules_class_start', 'class_id', 'start_time'),
        Index('idx_schedules_teacher_start', 'teacher_id', 'start_time'),
    )

    def __repr__(self):
        return f'<Schedule {self.id}: class {self.class_id} at {self.start_time}>'

    @property
    def date(self):
        return self.start_time.date()

    @property
    def duration_minutes(self):
        """Session duration in minutes"""
        return int((self.end_time - self.start_time).total_seconds() / 60)

    @property
    def is_recurring(self):
        return self.recurrence_group_id is not None

    def state(self, now):
        """PAST / UPCOMING / FUTURE relative to the given time"""
        return classify(self.start_time, self.end_time, now)

    def to_dict(self, now=None):
        """
        Convert schedule to dictionary

        Args:
            now: When given, include the temporal state relative to it

        Returns:
            dict: Schedule data
        """
        data = {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'class_id': self.class_id,
            'class_name': self.class_.class_name if self.class_ else None,
            'class_code': self.class_.class_code if self.class_ else None,
            'teacher_id': self.teacher_id,
            'start_time': self.start_time.isoformat(),
            'end_time': self.end_time.isoformat(),
            'duration_minutes': self.duration_minutes,
            'location': self.location,
            'meeting_link': self.meeting_link,
            'status': self.status,
            'recurrence_group_id': self.recurrence_group_id,
        }
        if now is not None:
            data['state'] = self.state(now)
        return data

    # ======================
    # Store operations
    # ======================

    @staticmethod
    def create_many(sessions, recurrence_group_id=None):
        """
        Stage generated sessions for insert, in the given order.
        The caller owns the transaction and commits once.

        Args:
            sessions: Iterable of GeneratedSession
            recurrence_group_id: Group id shared by all sessions (None for a single session)

        Returns:
            List of Schedule objects with ids assigned
        """
        rows = []
        for session in sessions:
            row = Schedule(
                class_id=session.class_id,
                teacher_id=session.owner_id,
                title=session.title,
                description=session.description,
                start_time=session.start_time,
                end_time=session.end_time,
                location=session.location,
                meeting_link=session.meeting_link,
                status=ScheduleStatus.SCHEDULED,
                recurrence_group_id=recurrence_group_id,
            )
            db.session.add(row)
            rows.append(row)
        db.session.flush()
        return rows

    @staticmethod
    def find_by_class_and_range(class_id, start, end):
        """Sessions of a class starting within [start, end], in canonical order"""
        return Schedule.query.filter(
            Schedule.class_id == class_id,
            Schedule.start_time >= start,
            Schedule.start_time <= end
        ).order_by(Schedule.start_time, Schedule.id).all()

    @staticmethod
    def find_by_teacher_and_range(teacher_id, start=None, end=None, class_id=None):
        query = Schedule.query.filter(Schedule.teacher_id == teacher_id)
        if start:
            query = query.filter(Schedule.start_time >= start)
        if end:
            query = query.filter(Schedule.start_time <= end)
        if class_id:
            query = query.filter(Schedule.class_id == class_id)
        return query.order_by(Schedule.start_time, Schedule.id).all()

    @staticmethod
    def find_by_classes_and_range(class_ids, start=None, end=None):
        if not class_ids:
            return []
        query = Schedule.query.filter(Schedule.class_id.in_(class_ids))
        if start:
            query = query.filter(Schedule.start_time >= start)
        if end:
            query = query.filter(Schedule.start_time <= end)
        return query.order_by(Schedule.start_time, Schedule.id).all()

    @staticmethod
    def find_by_group_id(group_id):
        return Schedule.query.filter_by(
            recurrence_group_id=group_id
        ).order_by(Schedule.start_time, Schedule.id).all()

    @staticmethod
    def delete_by_group_id(group_id):
        """
        Delete a whole recurrence group with a single DELETE statement.
        The caller commits.

        Returns:
            List of deleted schedule ids
        """
        ids = [row.id for row in db.session.query(Schedule.id).filter(
            Schedule.recurrence_group_id == group_id
        ).all()]
        if ids:
            Schedule.query.filter(
                Schedule.recurrence_group_id == group_id
            ).delete(synchronize_session=False)
            db.session.expire_all()
        return ids


# Event listeners for automatic timestamp updates
@event.listens_for(Schedule, 'before_update')
def receive_before_update(mapper, connection, target):
    """Update the updated_at timestamp before updating"""
    target.updated_at = datetime.utcnow()
