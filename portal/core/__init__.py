"""
Scheduling core
Pure recurrence expansion, temporal classification and attendance matrix assembly.
Nothing in this package touches the database, the request or the clock.
"""

from portal.core.errors import (
    PortalError,
    ValidationError,
    NotFoundError,
    PermissionDeniedError,
    ConflictError,
    PreconditionError,
)
from portal.core.recurrence import (
    RecurrenceRule,
    SessionTemplate,
    GeneratedSession,
    validate_recurrence_rule,
    expand_sessions,
    preview_occurrence_count,
    default_recurrence_end_date,
)
from portal.core.temporal import TemporalState, classify, classify_date, group_by_state
from portal.core.attendance_matrix import (
    RosterEntry,
    AttendanceRecord,
    AttendanceEdit,
    AttendanceCell,
    AttendanceMatrix,
    PlannedWrite,
    UpsertPlan,
    build_matrix,
    index_records,
    apply_batch,
)

__all__ = [
    'PortalError',
    'ValidationError',
    'NotFoundError',
    'PermissionDeniedError',
    'ConflictError',
    'PreconditionError',
    'RecurrenceRule',
    'SessionTemplate',
    'GeneratedSession',
    'validate_recurrence_rule',
    'expand_sessions',
    'preview_occurrence_count',
    'default_recurrence_end_date',
    'TemporalState',
    'classify',
    'classify_date',
    'group_by_state',
    'RosterEntry',
    'AttendanceRecord',
    'AttendanceEdit',
    'AttendanceCell',
    'AttendanceMatrix',
    'PlannedWrite',
    'UpsertPlan',
    'build_matrix',
    'index_records',
    'apply_batch',
]
