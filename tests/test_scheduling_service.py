from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from portal import db
from portal.core.errors import ValidationError, NotFoundError, PermissionDeniedError
from portal.core.temporal import TemporalState
from portal.models import Schedule
from portal.services.scheduling_service import SchedulingService
from config.constants import ScheduleStatus


MONDAY_EVENING = datetime(2024, 3, 4, 18, 0)


def create(service, user, class_obj, recurrence=None, start=MONDAY_EVENING, minutes=90):
    return service.create_schedules(
        user,
        class_id=class_obj.id,
        title='HSK 1 - Lesson',
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
        location='Room 2',
        recurrence=recurrence,
    )


def test_single_session_has_no_group(seed) -> None:
    created, group_id = create(SchedulingService(), seed.teacher, seed.hsk1)

    assert group_id is None
    assert len(created) == 1
    stored = Schedule.query.one()
    assert stored.recurrence_group_id is None
    assert stored.teacher_id == seed.teacher.id
    assert stored.status == ScheduleStatus.SCHEDULED


def test_recurring_series_shares_one_group(seed) -> None:
    recurrence = {'weekdays': [1, 3], 'interval': 1, 'end_date': date(2024, 3, 17)}

    created, group_id = create(SchedulingService(), seed.teacher, seed.hsk1, recurrence)

    assert len(group_id) == 32
    stored = Schedule.find_by_group_id(group_id)
    assert [s.id for s in stored] == [s.id for s in created]
    assert [s.start_time.date() for s in stored] == [
        date(2024, 3, 4), date(2024, 3, 6), date(2024, 3, 11), date(2024, 3, 13),
    ]
    assert all(s.duration_minutes == 90 for s in stored)


def test_two_series_get_distinct_groups(seed) -> None:
    recurrence = {'weekdays': [1], 'interval': 1, 'end_date': date(2024, 3, 17)}
    service = SchedulingService()

    _, first = create(service, seed.teacher, seed.hsk1, recurrence)
    _, second = create(service, seed.teacher, seed.hsk1, recurrence)

    assert first != second


@pytest.mark.parametrize('recurrence, code', [
    ({'weekdays': [], 'interval': 1, 'end_date': date(2024, 3, 17)}, ValidationError.EMPTY_WEEKDAY_SET),
    ({'weekdays': [1], 'interval': 0, 'end_date': date(2024, 3, 17)}, ValidationError.INVALID_INTERVAL),
    ({'weekdays': [1], 'interval': 1, 'end_date': date(2024, 3, 1)}, ValidationError.END_DATE_BEFORE_START),
    ({'weekdays': [5], 'interval': 1, 'end_date': date(2024, 3, 4)}, ValidationError.NO_OCCURRENCES),
])
def test_invalid_rule_creates_nothing(seed, recurrence, code) -> None:
    with pytest.raises(ValidationError) as exc:
        create(SchedulingService(), seed.teacher, seed.hsk1, recurrence)

    assert exc.value.code == code
    assert Schedule.query.count() == 0


def test_end_before_start_is_a_field_error(seed) -> None:
    with pytest.raises(ValidationError) as exc:
        create(SchedulingService(), seed.teacher, seed.hsk1, minutes=-30)

    assert exc.value.field == 'end_time'


def test_missing_end_date_defaults_to_two_months(seed) -> None:
    created, _ = create(SchedulingService(), seed.teacher, seed.hsk1, {'weekdays': [1], 'interval': 1})

    assert created[-1].start_time.date() == date(2024, 4, 29)
    assert len(created) == 9


def test_series_longer_than_configured_limit_is_rejected(app, seed) -> None:
    app.config['MAX_RECURRENCE_MONTHS'] = 1

    with pytest.raises(ValidationError) as exc:
        create(SchedulingService(), seed.teacher, seed.hsk1, {'weekdays': [1], 'end_date': date(2024, 4, 17)})

    assert exc.value.code == ValidationError.SERIES_TOO_LONG
    assert Schedule.query.count() == 0


def test_failed_insert_rolls_back_the_whole_series(seed, monkeypatch) -> None:
    original = Schedule.create_many

    def create_then_fail(sessions, recurrence_group_id=None):
        original(sessions, recurrence_group_id)
        raise RuntimeError('disk full')

    monkeypatch.setattr(Schedule, 'create_many', staticmethod(create_then_fail))

    with pytest.raises(RuntimeError):
        create(SchedulingService(), seed.teacher, seed.hsk1, {'weekdays': [1, 3], 'end_date': date(2024, 3, 17)})

    assert Schedule.query.count() == 0


def test_teacher_cannot_schedule_other_class(seed) -> None:
    with pytest.raises(PermissionDeniedError):
        create(SchedulingService(), seed.teacher, seed.hsk2)


def test_admin_schedules_on_behalf_of_class_teacher(seed) -> None:
    created, _ = create(SchedulingService(), seed.admin, seed.hsk2)

    assert created[0].teacher_id == seed.other_teacher.id


def test_unknown_class_is_not_found(seed) -> None:
    with pytest.raises(NotFoundError):
        SchedulingService().create_schedules(
            seed.teacher, class_id=999, title='x',
            start_time=MONDAY_EVENING, end_time=MONDAY_EVENING + timedelta(hours=1),
        )


def test_list_schedules_groups_by_state(seed, make_schedule) -> None:
    monday = make_schedule(seed.hsk1, datetime(2024, 3, 4, 18, 0))
    today = make_schedule(seed.hsk1, datetime(2024, 3, 6, 18, 0))
    next_monday = make_schedule(seed.hsk1, datetime(2024, 3, 11, 18, 0))
    make_schedule(seed.hsk2, datetime(2024, 3, 6, 9, 0))

    grouped, now = SchedulingService().list_schedules(seed.teacher)

    assert now == datetime(2024, 3, 6, 12, 0)
    assert grouped[TemporalState.PAST] == [monday]
    assert grouped[TemporalState.UPCOMING] == [today]
    assert grouped[TemporalState.FUTURE] == [next_monday]


def test_list_schedules_filters_by_range(seed, make_schedule) -> None:
    make_schedule(seed.hsk1, datetime(2024, 3, 4, 18, 0))
    inside = make_schedule(seed.hsk1, datetime(2024, 3, 6, 18, 0))

    grouped, _ = SchedulingService().list_schedules(
        seed.teacher, start=datetime(2024, 3, 5), end=datetime(2024, 3, 10, 23, 59),
    )

    assert sum(grouped.values(), []) == [inside]


def test_student_sees_only_enrolled_classes(seed, make_schedule) -> None:
    own = make_schedule(seed.hsk1, datetime(2024, 3, 11, 18, 0))
    make_schedule(seed.hsk2, datetime(2024, 3, 11, 9, 0))
    service = SchedulingService()

    grouped, _ = service.list_student_schedules(seed.an)
    assert grouped[TemporalState.FUTURE] == [own]

    grouped, _ = service.list_student_schedules(seed.dropped)
    assert sum(grouped.values(), []) == []


def test_get_schedule_access(seed, make_schedule) -> None:
    schedule = make_schedule(seed.hsk1, datetime(2024, 3, 11, 18, 0))
    service = SchedulingService()

    assert service.get_schedule(schedule.id, seed.an) is schedule
    assert service.get_schedule(schedule.id, seed.teacher) is schedule
    with pytest.raises(PermissionDeniedError):
        service.get_schedule(schedule.id, seed.outsider)
    with pytest.raises(NotFoundError):
        service.get_schedule(12345, seed.teacher)


def test_update_single_occurrence(seed) -> None:
    service = SchedulingService()
    created, group_id = create(service, seed.teacher, seed.hsk1, {'weekdays': [1, 3], 'end_date': date(2024, 3, 17)})
    target = created[1]

    service.update_schedule(target.id, {
        'location': 'Room 5',
        'start_time': datetime(2024, 3, 6, 19, 0),
        'end_time': datetime(2024, 3, 6, 20, 0),
        'status': ScheduleStatus.CANCELLED,
    }, seed.teacher)

    db.session.expire_all()
    stored = Schedule.find_by_group_id(group_id)
    assert [s.location for s in stored] == ['Room 2', 'Room 5', 'Room 2', 'Room 2']
    assert stored[1].duration_minutes == 60
    assert stored[1].status == ScheduleStatus.CANCELLED


@pytest.mark.parametrize('changes, field', [
    ({'title': 'Renamed'}, 'title'),
    ({'status': 'POSTPONED'}, 'status'),
    ({'end_time': datetime(2024, 3, 4, 17, 0)}, 'end_time'),
    ({'end_time': datetime(2024, 3, 5, 1, 0)}, 'end_time'),
])
def test_update_rejects_invalid_changes(seed, make_schedule, changes, field) -> None:
    schedule = make_schedule(seed.hsk1, MONDAY_EVENING)

    with pytest.raises(ValidationError) as exc:
        SchedulingService().update_schedule(schedule.id, changes, seed.teacher)

    assert field in exc.value.details
    db.session.expire_all()
    assert schedule.end_time == MONDAY_EVENING + timedelta(minutes=90)


def test_delete_single_occurrence_keeps_the_rest(seed) -> None:
    service = SchedulingService()
    created, group_id = create(service, seed.teacher, seed.hsk1, {'weekdays': [1, 3], 'end_date': date(2024, 3, 17)})

    service.delete_schedule(created[0].id, seed.teacher)

    assert len(Schedule.find_by_group_id(group_id)) == 3


def test_delete_group_removes_every_occurrence(seed) -> None:
    service = SchedulingService()
    created, group_id = create(service, seed.teacher, seed.hsk1, {'weekdays': [1, 3], 'end_date': date(2024, 3, 17)})
    _, other_group = create(service, seed.teacher, seed.hsk1, {'weekdays': [5], 'end_date': date(2024, 3, 17)})
    created_ids = sorted(s.id for s in created)

    deleted = service.delete_schedule_group(group_id, seed.teacher)

    assert sorted(deleted) == created_ids
    assert Schedule.find_by_group_id(group_id) == []
    assert len(Schedule.find_by_group_id(other_group)) == 2


def test_delete_group_checks_ownership_and_existence(seed) -> None:
    service = SchedulingService()
    _, group_id = create(service, seed.teacher, seed.hsk1, {'weekdays': [1], 'end_date': date(2024, 3, 17)})

    with pytest.raises(PermissionDeniedError):
        service.delete_schedule_group(group_id, seed.other_teacher)
    assert len(Schedule.find_by_group_id(group_id)) == 2

    with pytest.raises(NotFoundError):
        service.delete_schedule_group('does-not-exist', seed.teacher)


def test_preview_counts_without_creating(seed) -> None:
    preview = SchedulingService().preview_recurrence(MONDAY_EVENING, [1, 3], 1, date(2024, 3, 17))

    assert preview == {
        'count': 4,
        'end_date': '2024-03-17',
        'weekdays': [1, 3],
        'weekday_names': ['Monday', 'Wednesday'],
        'interval': 1,
    }
    assert Schedule.query.count() == 0
