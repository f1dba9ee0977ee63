"""Academic timetable - deterministic weekly class scheduling.

This module builds conflict-free weekly class schedules for an academic
institution from its teachers, subjects, groups, shifts and degree
programs, and validates schedules produced by any other source.

Example usage:
    from academic_timetable import TimetableScheduler, load_snapshot

    snapshot = load_snapshot("entities.json")
    result = TimetableScheduler().schedule(snapshot)

    print(f"Status: {result.status.value}")
    for entry in result.entries:
        print(f"{entry.group_id} | {entry.subject_id} | {entry.teacher_id} | {entry.cell.label}")

    # Export to JSON
    from academic_timetable.exporters import JSONExporter
    JSONExporter().export(result, "schedule.json")
"""

from .exceptions import (
    DegreeMismatch,
    InvalidEntityError,
    MalformedInterval,
    TimetableError,
    UnknownReferenceError,
)
from .exporters import CSVExporter, ExcelExporter, JSONExporter, get_exporter
from .loader import load_schedule, load_snapshot
from .models import (
    Cell,
    Day,
    Degree,
    EntitySnapshot,
    Group,
    ScheduleEntry,
    Shift,
    Subject,
    Teacher,
    TimeSlot,
)
from .scheduler import (
    ScheduleResult,
    ScheduleStatus,
    ScheduleValidator,
    SchedulerConfig,
    TimetableScheduler,
    Violation,
    schedule,
    validate,
)

__version__ = "0.1.0"

__all__ = [
    # Main entry points
    "TimetableScheduler",
    "ScheduleValidator",
    "SchedulerConfig",
    "schedule",
    "validate",
    "load_snapshot",
    "load_schedule",
    # Models
    "Cell",
    "Day",
    "Degree",
    "EntitySnapshot",
    "Group",
    "ScheduleEntry",
    "Shift",
    "Subject",
    "Teacher",
    "TimeSlot",
    "ScheduleResult",
    "ScheduleStatus",
    "Violation",
    # Exporters
    "JSONExporter",
    "CSVExporter",
    "ExcelExporter",
    "get_exporter",
    # Exceptions
    "TimetableError",
    "InvalidEntityError",
    "MalformedInterval",
    "UnknownReferenceError",
    "DegreeMismatch",
]
