from __future__ import annotations

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from portal import create_app, db
from portal.models import User, PortalClass, Enrollment, Schedule
from portal.utils.clock import FixedClock
from config.constants import UserRole, EnrollmentStatus


# Wednesday, 2024-03-06 at noon
NOW = datetime(2024, 3, 6, 12, 0)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(NOW)


@pytest.fixture
def app(clock):
    app = create_app('testing', clock=clock)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def seed(app) -> SimpleNamespace:
    admin = User(email='admin@portal.test', name='Admin', role=UserRole.SYSTEM_ADMIN)
    teacher = User(email='lan@portal.test', name='Lan', full_name='Nguyen Thi Lan', role=UserRole.TEACHER)
    other_teacher = User(email='minh@portal.test', name='Minh', role=UserRole.TEACHER)
    chi = User(email='chi@portal.test', name='Chi', role=UserRole.STUDENT)
    an = User(email='an@portal.test', name='An', role=UserRole.STUDENT)
    binh = User(email='binh@portal.test', name='Binh', role=UserRole.STUDENT)
    dropped = User(email='dung@portal.test', name='Dung', role=UserRole.STUDENT)
    outsider = User(email='em@portal.test', name='Em', role=UserRole.STUDENT)
    db.session.add_all([admin, teacher, other_teacher, chi, an, binh, dropped, outsider])
    db.session.flush()

    hsk1 = PortalClass(class_code='HSK1-EVE', class_name='HSK 1 - Evening', level='HSK1', teacher_id=teacher.id)
    hsk2 = PortalClass(class_code='HSK2-MOR', class_name='HSK 2 - Morning', level='HSK2', teacher_id=other_teacher.id)
    db.session.add_all([hsk1, hsk2])
    db.session.flush()

    db.session.add_all([
        Enrollment(class_id=hsk1.id, student_id=chi.id),
        Enrollment(class_id=hsk1.id, student_id=an.id),
        Enrollment(class_id=hsk1.id, student_id=binh.id),
        Enrollment(class_id=hsk1.id, student_id=dropped.id, status=EnrollmentStatus.DROPPED),
        Enrollment(class_id=hsk2.id, student_id=outsider.id),
    ])
    db.session.commit()

    return SimpleNamespace(
        admin=admin,
        teacher=teacher,
        other_teacher=other_teacher,
        students=[an, binh, chi],
        an=an,
        binh=binh,
        chi=chi,
        dropped=dropped,
        outsider=outsider,
        hsk1=hsk1,
        hsk2=hsk2,
    )


@pytest.fixture
def make_schedule(app):
    """Persist a single session of a class starting at ``start``"""
    def _make(class_obj, start, minutes=90, group_id=None):
        schedule = Schedule(
            class_id=class_obj.id,
            teacher_id=class_obj.teacher_id,
            title=f'{class_obj.class_name} lesson',
            start_time=start,
            end_time=start + timedelta(minutes=minutes),
            recurrence_group_id=group_id,
        )
        db.session.add(schedule)
        db.session.commit()
        return schedule
    return _make


@pytest.fixture
def login_as(client):
    """Log a user in through the Flask-Login session cookie"""
    def _login(user):
        with client.session_transaction() as session:
            session['_user_id'] = str(user.id)
            session['_fresh'] = True
        return client
    return _login
