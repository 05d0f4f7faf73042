from __future__ import annotations

from datetime import date, datetime, timedelta

import pytest

from portal.core.recurrence import GeneratedSession
from portal.core.temporal import TemporalState, classify, classify_date, group_by_state


START = datetime(2024, 3, 1, 8, 30)
END = datetime(2024, 3, 1, 10, 0)


def session(start: datetime, minutes: int = 60, title: str = 'Lesson') -> GeneratedSession:
    return GeneratedSession(
        title=title,
        class_id=1,
        owner_id=1,
        start_time=start,
        end_time=start + timedelta(minutes=minutes),
    )


@pytest.mark.parametrize('now, expected', [
    (datetime(2024, 3, 1, 11, 0), TemporalState.PAST),
    (datetime(2024, 3, 1, 9, 0), TemporalState.UPCOMING),
    (datetime(2024, 2, 29, 9, 0), TemporalState.FUTURE),
])
def test_classify_relative_to_now(now, expected) -> None:
    assert classify(START, END, now) == expected


def test_ended_today_is_past() -> None:
    assert classify(START, END, END + timedelta(seconds=1)) == TemporalState.PAST


def test_today_before_start_is_upcoming() -> None:
    assert classify(START, END, datetime(2024, 3, 1, 0, 0)) == TemporalState.UPCOMING


def test_exactly_at_end_is_not_past() -> None:
    assert classify(START, END, END) == TemporalState.UPCOMING


def test_classify_is_total() -> None:
    now = datetime(2024, 3, 1, 12, 0)
    for hours in range(-72, 73, 5):
        start = now + timedelta(hours=hours)
        assert classify(start, start + timedelta(minutes=90), now) in TemporalState.ALL


@pytest.mark.parametrize('end', [START, START - timedelta(minutes=1)])
def test_classify_rejects_non_positive_duration(end) -> None:
    with pytest.raises(ValueError):
        classify(START, end, datetime(2024, 3, 1, 9, 0))


def test_classify_date() -> None:
    now = datetime(2024, 3, 6, 12, 0)

    assert classify_date(date(2024, 3, 5), now) == TemporalState.PAST
    assert classify_date(date(2024, 3, 6), now) == TemporalState.UPCOMING
    assert classify_date(datetime(2024, 3, 6, 23, 0), now) == TemporalState.UPCOMING
    assert classify_date(date(2024, 3, 7), now) == TemporalState.FUTURE


def test_group_by_state_always_has_every_bucket() -> None:
    assert group_by_state([], datetime(2024, 3, 6, 12, 0)) == {
        TemporalState.PAST: [],
        TemporalState.UPCOMING: [],
        TemporalState.FUTURE: [],
    }


def test_group_by_state_buckets_and_sorts() -> None:
    now = datetime(2024, 3, 6, 12, 0)
    tomorrow = session(datetime(2024, 3, 7, 9, 0))
    this_evening = session(datetime(2024, 3, 6, 18, 0))
    this_morning = session(datetime(2024, 3, 6, 8, 0))
    last_week = session(datetime(2024, 2, 28, 18, 0))
    next_month = session(datetime(2024, 4, 1, 9, 0))

    grouped = group_by_state([next_month, this_evening, tomorrow, this_morning, last_week], now)

    assert grouped[TemporalState.PAST] == [last_week, this_morning]
    assert grouped[TemporalState.UPCOMING] == [this_evening]
    assert grouped[TemporalState.FUTURE] == [tomorrow, next_month]


def test_group_by_state_keeps_order_of_equal_starts() -> None:
    now = datetime(2024, 3, 1, 12, 0)
    first = session(datetime(2024, 3, 5, 9, 0), title='first')
    second = session(datetime(2024, 3, 5, 9, 0), minutes=30, title='second')

    grouped = group_by_state([first, second], now)

    assert [s.title for s in grouped[TemporalState.FUTURE]] == ['first', 'second']
