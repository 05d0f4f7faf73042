"""
Recurrence rules and session-series expansion.

A teacher creates one template session (e.g. Monday 18:00-19:30) and asks for it
to repeat on a set of weekdays every N weeks until an end date. ``expand_sessions``
turns that request into the concrete occurrences to persist, in ascending date
order. The template's own day is simply the first qualifying day of the scan, so
no extra "single" session is produced alongside the series.

Weekdays are numbered 0=Sunday .. 6=Saturday, matching ``config.constants.DayOfWeek``.
Weeks used for the interval start on Sunday; the week containing the template
date is week 0.
"""

from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import FrozenSet, Iterable, List, Optional

from config.constants import DayOfWeek
from portal.core.errors import ValidationError, PreconditionError

logger = logging.getLogger(__name__)

MAX_RECURRENCE_MONTHS = 12


@dataclass(frozen=True)
class RecurrenceRule:
    """Repeat on ``weekdays`` every ``interval`` weeks until ``end_date`` (inclusive)"""

    weekdays: FrozenSet[int]
    end_date: date
    interval: int = 1

    @classmethod
    def create(cls, weekdays: Iterable[int], end_date: date, interval: int = 1) -> 'RecurrenceRule':
        return cls(weekdays=frozenset(weekdays), end_date=end_date, interval=interval)


@dataclass(frozen=True)
class SessionTemplate:
    title: str
    class_id: int
    owner_id: int
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    description: Optional[str] = None
    meeting_link: Optional[str] = None

    def __post_init__(self):
        if self.end_time <= self.start_time:
            raise PreconditionError('end_time must be after start_time')
        if self.end_time.date() != self.start_time.date():
            raise PreconditionError('end_time must be on the same day as start_time')

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time


@dataclass(frozen=True)
class GeneratedSession:
    """One occurrence of a template; the group id is assigned when the series is stored"""

    title: str
    class_id: int
    owner_id: int
    start_time: datetime
    end_time: datetime
    location: Optional[str] = None
    description: Optional[str] = None
    meeting_link: Optional[str] = None

    @property
    def date(self) -> date:
        return self.start_time.date()

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time


def validate_recurrence_rule(rule: RecurrenceRule, start_date: date,
                             max_months: int = MAX_RECURRENCE_MONTHS) -> bool:
    """
    Check a rule against the template's start date.

    Args:
        max_months: Longest allowed series, counted from ``start_date``

    Raises:
        ValidationError: with ``code`` set to one of EMPTY_WEEKDAY_SET,
            INVALID_WEEKDAY, INVALID_INTERVAL, END_DATE_BEFORE_START or
            SERIES_TOO_LONG
    """
    if isinstance(start_date, datetime):
        start_date = start_date.date()

    if not rule.weekdays:
        raise ValidationError(
            'At least one weekday must be selected',
            field='weekdays',
            code=ValidationError.EMPTY_WEEKDAY_SET,
        )

    invalid = sorted(d for d in rule.weekdays if d not in DayOfWeek.ALL)
    if invalid:
        raise ValidationError(
            f'Weekdays must be between 0 (Sunday) and 6 (Saturday), got {invalid}',
            field='weekdays',
            code=ValidationError.INVALID_WEEKDAY,
        )

    if isinstance(rule.interval, bool) or not isinstance(rule.interval, int) or rule.interval < 1:
        raise ValidationError(
            'Interval must be at least 1',
            field='interval',
            code=ValidationError.INVALID_INTERVAL,
        )

    if rule.end_date < start_date:
        raise ValidationError(
            'End date must be after start date',
            field='end_date',
            code=ValidationError.END_DATE_BEFORE_START,
        )

    if rule.end_date > default_recurrence_end_date(start_date, max_months):
        raise ValidationError(
            f'A series can run for at most {max_months} months',
            field='end_date',
            code=ValidationError.SERIES_TOO_LONG,
        )

    return True


def _week_start(day: date) -> date:
    return day - timedelta(days=DayOfWeek.of(day))


def _iter_occurrence_dates(start_date: date, rule: RecurrenceRule):
    anchor = _week_start(start_date)
    current = start_date
    while current <= rule.end_date:
        week_number = (_week_start(current) - anchor).days // 7
        if week_number % rule.interval == 0 and DayOfWeek.of(current) in rule.weekdays:
            yield current
        # end_date may be date.max
        if current == rule.end_date:
            break
        current += timedelta(days=1)


def expand_sessions(template: SessionTemplate, rule: RecurrenceRule,
                    max_months: int = MAX_RECURRENCE_MONTHS) -> List[GeneratedSession]:
    """
    Expand a template into its occurrences, ascending by date.

    Every occurrence keeps the template's time of day and duration. An empty
    list means the rule never hits a selected weekday; callers must reject it.
    """
    validate_recurrence_rule(rule, template.start_time.date(), max_months)

    time_of_day = template.start_time.time()
    duration = template.duration

    sessions = []
    for day in _iter_occurrence_dates(template.start_time.date(), rule):
        start = datetime.combine(day, time_of_day)
        sessions.append(GeneratedSession(
            title=template.title,
            class_id=template.class_id,
            owner_id=template.owner_id,
            start_time=start,
            end_time=start + duration,
            location=template.location,
            description=template.description,
            meeting_link=template.meeting_link,
        ))

    logger.debug(
        'Expanded template %r on %s into %d sessions (weekdays=%s, interval=%d, until=%s)',
        template.title, template.start_time.date(), len(sessions),
        sorted(rule.weekdays), rule.interval, rule.end_date,
    )
    return sessions


def preview_occurrence_count(start_date: date, rule: RecurrenceRule,
                             max_months: int = MAX_RECURRENCE_MONTHS) -> int:
    """Number of sessions ``rule`` would produce from ``start_date``"""
    if isinstance(start_date, datetime):
        start_date = start_date.date()
    validate_recurrence_rule(rule, start_date, max_months)
    return sum(1 for _ in _iter_occurrence_dates(start_date, rule))


def default_recurrence_end_date(start_date: date, months: int = 2) -> date:
    """``start_date`` moved forward by whole months, clamped to the month's last day"""
    if isinstance(start_date, datetime):
        start_date = start_date.date()
    month_index = start_date.month - 1 + months
    year = start_date.year + month_index // 12
    if year > date.max.year:
        return date.max
    month = month_index % 12 + 1
    day = min(start_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
