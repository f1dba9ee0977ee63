"""Data models for scheduling runs and their results."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from ..models import Cell, ScheduleEntry


class ScheduleStatus(str, Enum):
    """Global state of a scheduling run."""

    RUNNING = "running"
    SOLVED = "solved"
    INFEASIBLE = "infeasible"
    BUDGET_EXCEEDED = "budget_exceeded"


class UnitState(str, Enum):
    """Lifecycle of a demand unit during search."""

    UNASSIGNED = "unassigned"
    TENTATIVE = "tentative"
    COMMITTED = "committed"


class IssueReason(str, Enum):
    """Reasons why demand could not be (fully) scheduled."""

    NO_ELIGIBLE_TEACHER = "no_eligible_teacher"
    CAPACITY_EXCEEDED = "capacity_exceeded"
    SEARCH_EXHAUSTED = "search_exhausted"
    BUDGET_EXCEEDED = "budget_exceeded"
    REJECTED_BY_VALIDATOR = "rejected_by_validator"


class ViolationType(str, Enum):
    """Hard rules a schedule can break."""

    UNKNOWN_REFERENCE = "unknown_reference"
    INVALID_SLOT = "invalid_slot"
    TEACHER_DOUBLE_BOOKED = "teacher_double_booked"
    GROUP_DOUBLE_BOOKED = "group_double_booked"
    OUTSIDE_AVAILABILITY = "outside_availability"
    OUTSIDE_SHIFT = "outside_shift"
    TEACHER_NOT_QUALIFIED = "teacher_not_qualified"
    DEGREE_MISMATCH = "degree_mismatch"
    SUBJECT_NOT_IN_GROUP = "subject_not_in_group"
    HOURS_MISMATCH = "hours_mismatch"


@dataclass(frozen=True)
class DemandUnit:
    """One required 1-hour session for a (group, subject) pair."""

    group_id: str
    subject_id: str
    eligible_teacher_ids: tuple[str, ...]
    sequence: int

    @property
    def pair(self) -> tuple[str, str]:
        return (self.group_id, self.subject_id)


@dataclass
class DemandIssue:
    """A (group, subject) pair withheld from search because it cannot be met."""

    group_id: str
    subject_id: str
    reason: IssueReason
    units: int
    details: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "groupId": self.group_id,
            "subjectId": self.subject_id,
            "reason": self.reason.value,
            "units": self.units,
            "details": self.details,
        }


@dataclass
class UnsatisfiedDemand:
    """A (group, subject) pair short of its weekly hours in the reported schedule."""

    group_id: str
    subject_id: str
    units_still_needed: int
    reason: IssueReason

    def to_dict(self) -> dict[str, Any]:
        return {
            "groupId": self.group_id,
            "subjectId": self.subject_id,
            "unitsStillNeeded": self.units_still_needed,
            "reason": self.reason.value,
        }


@dataclass
class Violation:
    """A broken hard rule, with enough context to render a diagnostic."""

    type: ViolationType
    message: str
    entry_indices: tuple[int, ...] = ()
    group_id: str | None = None
    subject_id: str | None = None
    teacher_id: str | None = None
    cell: Cell | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "message": self.message,
            "entryIndices": list(self.entry_indices),
            "groupId": self.group_id,
            "subjectId": self.subject_id,
            "teacherId": self.teacher_id,
            "day": self.cell.day.label if self.cell else None,
            "hour": self.cell.hour if self.cell else None,
        }


@dataclass
class ScheduleStatistics:
    """Statistics about a scheduling run."""

    strategy: str = ""
    total_units: int = 0
    total_assigned: int = 0
    total_unsatisfied: int = 0
    nodes_explored: int = 0
    backtracks: int = 0
    by_day: dict[str, int] = field(default_factory=dict)
    by_teacher: dict[str, int] = field(default_factory=dict)
    solver_time_seconds: float = 0.0

    def to_dict(self, include_run_metadata: bool = True) -> dict[str, Any]:
        data = {
            "strategy": self.strategy,
            "total_units": self.total_units,
            "total_assigned": self.total_assigned,
            "total_unsatisfied": self.total_unsatisfied,
            "scheduling_rate": (
                self.total_assigned / self.total_units if self.total_units > 0 else 0.0
            ),
            "nodes_explored": self.nodes_explored,
            "backtracks": self.backtracks,
            "by_day": self.by_day,
            "by_teacher": self.by_teacher,
        }
        if include_run_metadata:
            data["solver_time_seconds"] = self.solver_time_seconds
        return data


@dataclass
class ScheduleResult:
    """Result of a scheduling run.

    ``entries`` holds the complete schedule when solved, otherwise the
    deepest partial assignment the search reached.
    """

    status: ScheduleStatus
    entries: list[ScheduleEntry] = field(default_factory=list)
    unsatisfied: list[UnsatisfiedDemand] = field(default_factory=list)
    issues: list[DemandIssue] = field(default_factory=list)
    violations: list[Violation] = field(default_factory=list)
    statistics: ScheduleStatistics = field(default_factory=ScheduleStatistics)
    generation_date: str = field(default_factory=lambda: datetime.now().isoformat())

    @property
    def is_solved(self) -> bool:
        return self.status == ScheduleStatus.SOLVED

    @property
    def total_assigned(self) -> int:
        return len(self.entries)

    def to_dict(self, include_run_metadata: bool = True) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization.

        Args:
            include_run_metadata: Include the generation date and solver time.
                Without them, identical runs serialize identically.
        """
        data: dict[str, Any] = {"status": self.status.value}
        if include_run_metadata:
            data["generation_date"] = self.generation_date
        data.update({
            "entries": [e.to_dict() for e in self.entries],
            "unsatisfied": [u.to_dict() for u in self.unsatisfied],
            "issues": [i.to_dict() for i in self.issues],
            "violations": [v.to_dict() for v in self.violations],
            "statistics": self.statistics.to_dict(include_run_metadata),
        })
        return data
