"""
Attendance matrix assembly and batch-save planning.

Read path: a class roster, the distinct dates of the class's sessions in a
window and the sparse stored records are joined into a dense
student x date grid. Any scheduled (student, date) pair without a record is
filled with UNMARKED, which is never persisted.

Write path: ``apply_batch`` turns a list of edits into an ``UpsertPlan`` keyed
on (student, date) within one class, so replaying the same batch updates the
records the first run created instead of inserting duplicates.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from config.constants import AttendanceStatus
from portal.core.errors import ValidationError


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


@dataclass(frozen=True)
class RosterEntry:
    student_id: int
    name: str
    email: Optional[str] = None
    image: Optional[str] = None

    def to_dict(self):
        return {
            'id': self.student_id,
            'name': self.name,
            'email': self.email,
            'image': self.image,
        }


@dataclass(frozen=True)
class AttendanceRecord:
    """A stored attendance row as seen by the matrix"""

    student_id: int
    date: date
    status: str
    note: Optional[str] = None
    record_id: Optional[int] = None


@dataclass(frozen=True)
class AttendanceEdit:
    student_id: int
    date: date
    status: str
    note: Optional[str] = None


@dataclass(frozen=True)
class AttendanceCell:
    status: str = AttendanceStatus.UNMARKED
    note: Optional[str] = None
    record_id: Optional[int] = None

    @property
    def is_marked(self) -> bool:
        return self.status != AttendanceStatus.UNMARKED

    def to_dict(self):
        return {'id': self.record_id, 'status': self.status, 'notes': self.note}


UNMARKED_CELL = AttendanceCell()


@dataclass
class AttendanceMatrix:
    students: List[RosterEntry]
    schedule_dates: List[date]
    cells: Dict[int, Dict[date, AttendanceCell]]

    def cell(self, student_id: int, day) -> AttendanceCell:
        return self.cells[student_id][_as_date(day)]

    @property
    def cell_count(self) -> int:
        return sum(len(row) for row in self.cells.values())

    def date_totals(self) -> Dict[date, Dict[str, int]]:
        """Per scheduled date, how many students are in each status"""
        totals = OrderedDict(
            (day, {status: 0 for status in AttendanceStatus.ALL})
            for day in self.schedule_dates
        )
        for row in self.cells.values():
            for day, cell in row.items():
                totals[day][cell.status] += 1
        return totals

    def to_dict(self, date_states: Optional[Dict[date, str]] = None):
        totals = self.date_totals()
        dates = []
        for day in self.schedule_dates:
            entry = {'date': day.isoformat(), 'totals': totals[day]}
            if date_states is not None:
                entry['state'] = date_states[day]
            dates.append(entry)

        return {
            'students': [student.to_dict() for student in self.students],
            'dates': dates,
            'attendance_map': {
                str(student_id): {day.isoformat(): cell.to_dict() for day, cell in row.items()}
                for student_id, row in self.cells.items()
            },
        }


def index_records(records: Iterable[AttendanceRecord]) -> Dict[Tuple[int, date], AttendanceRecord]:
    """Key stored records by (student_id, date)"""
    return {(record.student_id, _as_date(record.date)): record for record in records}


def build_matrix(
    roster: Iterable[RosterEntry],
    session_dates: Iterable,
    records: Iterable[AttendanceRecord],
) -> AttendanceMatrix:
    """
    Dense student x date grid.

    ``session_dates`` may hold dates or datetimes and may repeat; the matrix
    columns are the sorted distinct dates. Students are ordered by name.
    Records for students or dates outside the grid are ignored.
    """
    students = sorted(roster, key=lambda s: ((s.name or '').lower(), s.student_id))
    schedule_dates = sorted({_as_date(d) for d in session_dates})
    index = index_records(records)

    cells = OrderedDict()
    for student in students:
        row = OrderedDict()
        for day in schedule_dates:
            record = index.get((student.student_id, day))
            if record is None:
                row[day] = UNMARKED_CELL
            else:
                row[day] = AttendanceCell(status=record.status, note=record.note, record_id=record.record_id)
        cells[student.student_id] = row

    return AttendanceMatrix(students=students, schedule_dates=schedule_dates, cells=cells)


@dataclass(frozen=True)
class PlannedWrite:
    CREATE = 'create'
    UPDATE = 'update'

    action: str
    student_id: int
    date: date
    status: str
    note: Optional[str] = None
    record_id: Optional[int] = None


@dataclass
class UpsertPlan:
    creates: List[PlannedWrite] = field(default_factory=list)
    updates: List[PlannedWrite] = field(default_factory=list)

    def __len__(self):
        return len(self.creates) + len(self.updates)

    def __iter__(self):
        yield from self.updates
        yield from self.creates

    @property
    def keys(self):
        return [(write.student_id, write.date) for write in self]


def normalize_status(status) -> str:
    """Upper-case a requested status and reject anything that cannot be stored"""
    value = (status or '').strip().upper()
    if value == AttendanceStatus.UNMARKED:
        raise ValidationError(
            'Attendance cannot be reset to unmarked',
            field='status',
            code=ValidationError.UNMARK_NOT_SUPPORTED,
        )
    if value not in AttendanceStatus.PERSISTED:
        raise ValidationError(
            f"Invalid status. Must be one of: {', '.join(AttendanceStatus.PERSISTED)}",
            field='status',
            code=ValidationError.INVALID_STATUS,
        )
    return value


def apply_batch(
    existing_index: Dict[Tuple[int, date], AttendanceRecord],
    edits: Iterable[AttendanceEdit],
) -> UpsertPlan:
    """
    Plan the writes for a batch of edits.

    Edits hitting a stored (student, date) become updates of that record, the
    rest become creates. Repeated edits of one key inside the batch collapse
    to the last one, so the plan never touches a key twice.
    """
    latest = OrderedDict()
    for edit in edits:
        key = (edit.student_id, _as_date(edit.date))
        latest[key] = AttendanceEdit(
            student_id=edit.student_id,
            date=key[1],
            status=normalize_status(edit.status),
            note=edit.note or None,
        )

    plan = UpsertPlan()
    for key, edit in latest.items():
        existing = existing_index.get(key)
        if existing is not None:
            plan.updates.append(PlannedWrite(
                action=PlannedWrite.UPDATE,
                student_id=edit.student_id,
                date=edit.date,
                status=edit.status,
                note=edit.note,
                record_id=existing.record_id,
            ))
        else:
            plan.creates.append(PlannedWrite(
                action=PlannedWrite.CREATE,
                student_id=edit.student_id,
                date=edit.date,
                status=edit.status,
                note=edit.note,
            ))
    return plan
