"""
Temporal state of sessions relative to the caller's clock.

State is derived, never stored: callers pass ``now`` on every call.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Dict, Iterable, List

from portal.core.errors import PreconditionError


class TemporalState:
    PAST = 'PAST'
    UPCOMING = 'UPCOMING'
    FUTURE = 'FUTURE'

    ALL = [PAST, UPCOMING, FUTURE]


def classify(start_time: datetime, end_time: datetime, now: datetime) -> str:
    """
    PAST once ``now`` is after the end, UPCOMING when it starts on the same
    calendar day as ``now``, FUTURE otherwise.

    The end check wins over the day check, so a session that already ended
    today is PAST.
    """
    if end_time <= start_time:
        raise PreconditionError('end_time must be after start_time')

    if now > end_time:
        return TemporalState.PAST
    if start_time.date() == now.date():
        return TemporalState.UPCOMING
    return TemporalState.FUTURE


def classify_date(day: date, now: datetime) -> str:
    """Day-granular state used for attendance columns"""
    if isinstance(day, datetime):
        day = day.date()
    today = now.date()
    if day < today:
        return TemporalState.PAST
    if day == today:
        return TemporalState.UPCOMING
    return TemporalState.FUTURE


def group_by_state(sessions: Iterable, now: datetime) -> Dict[str, List]:
    """
    Bucket anything with ``start_time``/``end_time`` attributes by state.

    All three keys are always present; each bucket is sorted by start time,
    keeping the incoming order for equal start times.
    """
    grouped = {state: [] for state in TemporalState.ALL}
    for session in sessions:
        grouped[classify(session.start_time, session.end_time, now)].append(session)

    for bucket in grouped.values():
        bucket.sort(key=lambda s: s.start_time)
    return grouped
