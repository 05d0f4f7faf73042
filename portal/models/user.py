"""
User Model
Portal accounts for teachers, students and administrators.
"""
from datetime import datetime
from flask_login import UserMixin

from portal import db
from config.constants import UserRole


class User(UserMixin, db.Model):
    """
    Portal user.
    Implements Flask-Login's UserMixin for session management.
    """
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    name = db.Column(db.String(100), nullable=False)
    full_name = db.Column(db.String(200))
    image = db.Column(db.String(500))
    role = db.Column(db.String(20), nullable=False, default=UserRole.STUDENT)
    is_active_account = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Relationships
    taught_classes = db.relationship('PortalClass', back_populates='teacher', lazy='dynamic')
    enrollments = db.relationship('Enrollment', back_populates='student', lazy='dynamic',
                                  cascade='all, delete-orphan')

    __table_args__ = (
        db.CheckConstraint("role IN ('SYSTEM_ADMIN', 'TEACHER', 'STUDENT')", name='check_user_role'),
    )

    def __repr__(self):
        return f'<User {self.id}: {self.email} ({self.role})>'

    @property
    def is_active(self):
        return self.is_active_account

    @property
    def display_name(self):
        """Name shown in rosters; full name when known"""
        return self.full_name or self.name

    @property
    def is_admin(self):
        return self.role == UserRole.SYSTEM_ADMIN

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'name': self.name,
            'full_name': self.full_name,
            'image': self.image,
            'role': self.role,
        }
