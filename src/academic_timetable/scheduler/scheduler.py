"""Main scheduler: expand demand, search, validate, report."""

import logging
import time
from collections import Counter
from collections.abc import Sequence

from ..models import EntitySnapshot, ScheduleEntry
from .availability import AvailabilityIndex
from .config import SchedulerConfig, SolverStrategy
from .cpsat import CPSATSearch
from .demand import DemandExpander, DemandPlan
from .models import (
    IssueReason,
    ScheduleResult,
    ScheduleStatistics,
    ScheduleStatus,
    UnsatisfiedDemand,
    Violation,
)
from .search import BacktrackingSearch, SearchOutcome
from .validator import ScheduleValidator

logger = logging.getLogger(__name__)


class TimetableScheduler:
    """
    Weekly timetable scheduler.

    A run takes an immutable entity snapshot and returns either a complete
    schedule that the validator accepts, or a failure report listing every
    (group, subject) pair still short of its weekly hours. Ordinary
    unsatisfiability is reported through the result, never raised.

    The scheduler keeps only configuration, so one instance can serve
    concurrent runs.
    """

    def __init__(self, config: SchedulerConfig | None = None):
        self.config = config or SchedulerConfig()

    def schedule(self, snapshot: EntitySnapshot) -> ScheduleResult:
        """
        Build a schedule for the snapshot.

        Args:
            snapshot: Entities for this run.

        Returns:
            ScheduleResult with status SOLVED, INFEASIBLE or BUDGET_EXCEEDED.

        Raises:
            DegreeMismatch: If a group lists a subject from another degree.
        """
        started = time.perf_counter()

        index = AvailabilityIndex(snapshot)
        plan = DemandExpander(snapshot, index).expand()

        logger.info(
            f"Scheduling {len(plan.units)} units for {len(plan.pairs)} pairs "
            f"with strategy '{self.config.strategy.value}' "
            f"(node limit {self.config.node_limit}, {self.config.time_limit}s)"
        )

        outcome = self._search(plan)

        entries = sorted(
            ScheduleEntry.for_cell(group_id, subject_id, candidate.teacher_id, candidate.cell)
            for (group_id, subject_id), candidate in outcome.assignments
        )

        if plan.has_issues:
            # Collected issues already prove the run cannot be solved
            status = ScheduleStatus.INFEASIBLE
        else:
            status = outcome.status

        violations: list[Violation] = []
        rejected = False
        if self.config.validate_output:
            violations = ScheduleValidator(snapshot).validate(entries)
            if status == ScheduleStatus.SOLVED and violations:
                logger.error(
                    f"Validator rejected the search output with {len(violations)} violation(s)"
                )
                status = ScheduleStatus.INFEASIBLE
                rejected = True

        unsatisfied = self._collect_unsatisfied(plan, entries, outcome.status, rejected)

        statistics = self._compute_statistics(plan, entries, unsatisfied, outcome)
        statistics.solver_time_seconds = time.perf_counter() - started

        logger.info(
            f"Run finished with status '{status.value}': {len(entries)} of "
            f"{plan.total_units} units assigned, {len(unsatisfied)} pairs unsatisfied"
        )

        return ScheduleResult(
            status=status,
            entries=entries,
            unsatisfied=unsatisfied,
            issues=list(plan.issues),
            violations=violations,
            statistics=statistics,
        )

    def validate(
        self, entries: Sequence[ScheduleEntry], snapshot: EntitySnapshot
    ) -> list[Violation]:
        """Validate a schedule from any source against the snapshot."""
        return ScheduleValidator(snapshot).validate(entries)

    def _search(self, plan: DemandPlan) -> SearchOutcome:
        if self.config.strategy == SolverStrategy.CP_SAT:
            return CPSATSearch(plan, time_limit=self.config.time_limit).run()
        return BacktrackingSearch(
            plan,
            node_limit=self.config.node_limit,
            time_limit=self.config.time_limit,
        ).run()

    def _collect_unsatisfied(
        self,
        plan: DemandPlan,
        entries: list[ScheduleEntry],
        search_status: ScheduleStatus,
        rejected: bool,
    ) -> list[UnsatisfiedDemand]:
        """Every pair short of its weekly hours, in (group, subject) order."""
        issue_by_pair = {(i.group_id, i.subject_id): i for i in plan.issues}
        counts = Counter((e.group_id, e.subject_id) for e in entries)

        if search_status == ScheduleStatus.BUDGET_EXCEEDED:
            search_reason = IssueReason.BUDGET_EXCEEDED
        else:
            search_reason = IssueReason.SEARCH_EXHAUSTED

        unsatisfied: list[UnsatisfiedDemand] = []
        for pair in plan.all_pairs:
            missing = pair.hours - counts.get(pair.key, 0)

            issue = issue_by_pair.get(pair.key)
            if issue is not None:
                if missing > 0:
                    unsatisfied.append(UnsatisfiedDemand(
                        group_id=pair.group_id,
                        subject_id=pair.subject_id,
                        units_still_needed=missing,
                        reason=issue.reason,
                    ))
                continue

            if missing > 0:
                unsatisfied.append(UnsatisfiedDemand(
                    group_id=pair.group_id,
                    subject_id=pair.subject_id,
                    units_still_needed=missing,
                    reason=search_reason,
                ))
            elif rejected:
                unsatisfied.append(UnsatisfiedDemand(
                    group_id=pair.group_id,
                    subject_id=pair.subject_id,
                    units_still_needed=0,
                    reason=IssueReason.REJECTED_BY_VALIDATOR,
                ))

        return unsatisfied

    def _compute_statistics(
        self,
        plan: DemandPlan,
        entries: list[ScheduleEntry],
        unsatisfied: list[UnsatisfiedDemand],
        outcome: SearchOutcome,
    ) -> ScheduleStatistics:
        stats = ScheduleStatistics(strategy=self.config.strategy.value)
        stats.total_units = plan.total_units
        stats.total_assigned = len(entries)
        stats.total_unsatisfied = sum(u.units_still_needed for u in unsatisfied)
        stats.nodes_explored = outcome.nodes
        stats.backtracks = outcome.backtracks

        by_day: dict[str, int] = {}
        for entry in entries:
            by_day[entry.day.label] = by_day.get(entry.day.label, 0) + 1
        stats.by_day = by_day

        by_teacher: dict[str, int] = {}
        for entry in entries:
            by_teacher[entry.teacher_id] = by_teacher.get(entry.teacher_id, 0) + 1
        stats.by_teacher = dict(sorted(by_teacher.items()))

        return stats


def schedule(
    snapshot: EntitySnapshot, config: SchedulerConfig | None = None
) -> ScheduleResult:
    """Build a schedule for the snapshot with a fresh scheduler."""
    return TimetableScheduler(config).schedule(snapshot)


def validate(entries: Sequence[ScheduleEntry], snapshot: EntitySnapshot) -> list[Violation]:
    """Validate a schedule from any source against the snapshot."""
    return ScheduleValidator(snapshot).validate(entries)
