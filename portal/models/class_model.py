"""
Class Model
Represents a taught class and the students enrolled in it
"""

from datetime import datetime
from portal import db
from config.constants import ClassStatus, EnrollmentStatus


class PortalClass(db.Model):
    """
    PortalClass Model
    A class group run by one teacher, e.g. "HSK 1 - Evening"
    """
    __tablename__ = 'classes'

    # Primary Fields
    id = db.Column(db.Integer, primary_key=True)
    class_code = db.Column(db.String(20), unique=True, nullable=False)
    class_name = db.Column(db.String(200), nullable=False)
    level = db.Column(db.String(50))
    teacher_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False, index=True)

    # Status
    status = db.Column(db.String(20), default=ClassStatus.ACTIVE, nullable=False)

    # Timestamps
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    teacher = db.relationship('User', back_populates='taught_classes')
    enrollments = db.relationship('Enrollment', back_populates='class_', lazy='dynamic', cascade='all, delete-orphan')
    schedules = db.relationship('Schedule', back_populates='class_', lazy='dynamic', cascade='all, delete-orphan')

    def __repr__(self):
        return f'<PortalClass {self.id}: {self.class_name}>'

    def to_dict(self):
        """Convert class to dictionary"""
        return {
            'id': self.id,
            'class_code': self.class_code,
            'class_name': self.class_name,
            'level': self.level,
            'teacher_id': self.teacher_id,
            'status': self.status,
            'enrolled_count': self.enrolled_count,
        }

    @property
    def enrolled_count(self):
        """Number of students with an active enrollment"""
        return self.enrollments.filter_by(status=EnrollmentStatus.ENROLLED).count()

    def is_managed_by(self, user):
        """
        Check if a user may manage this class's schedule and attendance

        Args:
            user: User object

        Returns:
            bool: True for the class teacher or a system admin
        """
        return user.is_admin or self.teacher_id == user.id

    def is_enrolled(self, student_id):
        """Check if a student currently has an active enrollment"""
        return self.enrollments.filter_by(
            student_id=student_id,
            status=EnrollmentStatus.ENROLLED
        ).first() is not None

    def enrolled_students(self):
        """
        Roster: students with an active enrollment, ordered by name

        Returns:
            List of User objects
        """
        from portal.models.user import User

        return User.query.join(
            Enrollment, Enrollment.student_id == User.id
        ).filter(
            Enrollment.class_id == self.id,
            Enrollment.status == EnrollmentStatus.ENROLLED
        ).order_by(
            db.func.coalesce(User.full_name, User.name), User.id
        ).all()

    @staticmethod
    def get_for_teacher(teacher_id, active_only=True):
        """Classes taught by a teacher, ordered by name"""
        query = PortalClass.query.filter_by(teacher_id=teacher_id)
        if active_only:
            query = query.filter_by(status=ClassStatus.ACTIVE)
        return query.order_by(PortalClass.class_name).all()

    @staticmethod
    def get_for_student(student_id):
        """Classes a student is actively enrolled in"""
        return PortalClass.query.join(Enrollment).filter(
            Enrollment.student_id == student_id,
            Enrollment.status == EnrollmentStatus.ENROLLED
        ).all()


class Enrollment(db.Model):
    """Link between a student and a class"""
    __tablename__ = 'enrollments'

    id = db.Column(db.Integer, primary_key=True)
    class_id = db.Column(db.Integer, db.ForeignKey('classes.id', ondelete='CASCADE'), nullable=False, index=True)
    student_id = db.Column(db.Integer, db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    status = db.Column(db.String(20), default=EnrollmentStatus.ENROLLED, nullable=False)
    enrolled_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    class_ = db.relationship('PortalClass', back_populates='enrollments')
    student = db.relationship('User', back_populates='enrollments')

    __table_args__ = (
        db.UniqueConstraint('class_id', 'student_id', name='uq_enrollment_class_student'),
    )

    def __repr__(self):
        return f'<Enrollment class={self.class_id} student={self.student_id} {self.status}>'
