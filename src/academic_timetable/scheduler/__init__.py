"""Weekly timetable scheduling engine.

This package searches for a conflict-free weekly schedule and independently
validates schedules from any source against the hard rules.

Main classes:
- TimetableScheduler: Expands demand, searches and validates
- ScheduleValidator: Checks a schedule against an entity snapshot
- SchedulerConfig: Strategy and search budgets

Usage:
    from academic_timetable.scheduler import TimetableScheduler

    scheduler = TimetableScheduler()
    result = scheduler.schedule(snapshot)
    if not result.is_solved:
        for item in result.unsatisfied:
            print(item.group_id, item.subject_id, item.units_still_needed)
"""

from .availability import AvailabilityIndex, cells_for, normalize
from .config import SchedulerConfig, SolverStrategy, load_config
from .demand import Candidate, DemandExpander, DemandPair, DemandPlan
from .models import (
    DemandIssue,
    DemandUnit,
    IssueReason,
    ScheduleResult,
    ScheduleStatistics,
    ScheduleStatus,
    UnitState,
    UnsatisfiedDemand,
    Violation,
    ViolationType,
)
from .scheduler import TimetableScheduler, schedule, validate
from .validator import ScheduleValidator

__all__ = [
    # Main scheduler
    "TimetableScheduler",
    "schedule",
    "validate",
    "ScheduleValidator",
    # Configuration
    "SchedulerConfig",
    "SolverStrategy",
    "load_config",
    # Availability and demand
    "AvailabilityIndex",
    "cells_for",
    "normalize",
    "Candidate",
    "DemandExpander",
    "DemandPair",
    "DemandPlan",
    # Models
    "DemandIssue",
    "DemandUnit",
    "IssueReason",
    "ScheduleResult",
    "ScheduleStatistics",
    "ScheduleStatus",
    "UnitState",
    "UnsatisfiedDemand",
    "Violation",
    "ViolationType",
]
