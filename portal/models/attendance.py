"""
Attendance Model
Per-day attendance of a student in a class, keyed by (student, class, date).
"""
from datetime import datetime
from portal import db
from sqlalchemy import Index

from portal.core.attendance_matrix import AttendanceRecord, PlannedWrite


class Attendance(db.Model):
    """
    Attendance records for students on the scheduled dates of a class.

    Attributes:
        id: Primary key
        student_id: Foreign key to users table
        class_id: Foreign key to classes table
        teacher_id: Teacher who last marked the record
        date: Calendar date of the session
        status: PRESENT or ABSENT (UNMARKED is never stored)
        notes: Optional free-text note
    """
    __tablename__ = 'attendance'

    # Primary Key
    id = db.Column(db.Integer, primary_key=True)

    # Foreign Keys
    student_id = db.Column(
        db.Integer,
        db.ForeignKey('users.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    class_id = db.Column(
        db.Integer,
        db.ForeignKey('classes.id', ondelete='CASCADE'),
        nullable=False,
        index=True
    )
    teacher_id = db.Column(
        db.Integer,
        db.ForeignKey('users.id', ondelete='SET NULL'),
        nullable=True
    )

    # Attendance Details
    date = db.Column(db.Date, nullable=False)
    status = db.Column(db.String(20), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    marked_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    # Relationships
    student = db.relationship('User', foreign_keys=[student_id])
    marker = db.relationship('User', foreign_keys=[teacher_id])

    # Natural key and indexes
    __table_args__ = (
        db.UniqueConstraint('student_id', 'class_id', 'date', name='uq_attendance_student_class_date'),
        db.CheckConstraint("status IN ('PRESENT', 'ABSENT')", name='check_attendance_status'),
        Index('idx_attendance_class_date', 'class_id', 'date'),
    )

    def __repr__(self):
        return f'<Attendance {self.student_id} - Class {self.class_id} - {self.date} - {self.status}>'

    def to_record(self):
        """View of this row used by the matrix builder"""
        return AttendanceRecord(
            student_id=self.student_id,
            date=self.date,
            status=self.status,
            note=self.notes,
            record_id=self.id,
        )

    def to_dict(self):
        return {
            'id': self.id,
            'student_id': self.student_id,
            'class_id': self.class_id,
            'teacher_id': self.teacher_id,
            'date': self.date.isoformat(),
            'status': self.status,
            'notes': self.notes,
            'marked_at': self.marked_at.isoformat() if self.marked_at else None,
        }

    # ======================
    # Store operations
    # ======================

    @staticmethod
    def find_by_class_and_range(class_id, start_date, end_date, student_id=None):
        """Stored records of a class between two dates (inclusive)"""
        query = Attendance.query.filter(
            Attendance.class_id == class_id,
            Attendance.date >= start_date,
            Attendance.date <= end_date
        )
        if student_id is not None:
            query = query.filter(Attendance.student_id == student_id)
        return query.all()

    @staticmethod
    def upsert_batch(class_id, teacher_id, plan):
        """
        Stage the writes of an UpsertPlan. The caller commits once so the
        batch lands all-or-nothing.

        Returns:
            List of Attendance objects written
        """
        saved = []
        update_ids = [write.record_id for write in plan.updates]
        existing = {}
        if update_ids:
            existing = {
                row.id: row for row in Attendance.query.filter(Attendance.id.in_(update_ids)).all()
            }

        now = datetime.utcnow()
        for write in plan:
            if write.action == PlannedWrite.UPDATE:
                row = existing.get(write.record_id)
                if row is None:
                    # Deleted since the plan was built; recreate under the same key
                    row = Attendance(student_id=write.student_id, class_id=class_id, date=write.date)
                    db.session.add(row)
            else:
                row = Attendance(student_id=write.student_id, class_id=class_id, date=write.date)
                db.session.add(row)

            row.status = write.status
            row.notes = write.note
            row.teacher_id = teacher_id
            row.marked_at = now
            saved.append(row)

        db.session.flush()
        return saved
