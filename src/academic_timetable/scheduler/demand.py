"""Demand expansion: turn groups and subjects into 1-hour session units."""

import logging
from dataclasses import dataclass, field
from typing import NamedTuple

from ..exceptions import DegreeMismatch
from ..models import Cell, EntitySnapshot
from .availability import AvailabilityIndex
from .models import DemandIssue, DemandUnit, IssueReason

logger = logging.getLogger(__name__)


class Candidate(NamedTuple):
    """A legal (cell, teacher) placement for one demand unit.

    Tuple order is the tie-break order: day, hour, teacher id.
    """

    cell: Cell
    teacher_id: str


@dataclass(frozen=True)
class DemandPair:
    """All demand of one (group, subject) pair and its legal placements."""

    group_id: str
    subject_id: str
    hours: int
    eligible_teacher_ids: tuple[str, ...]
    window_size: int
    domain: tuple[Candidate, ...]

    @property
    def key(self) -> tuple[str, str]:
        return (self.group_id, self.subject_id)

    @property
    def cells(self) -> frozenset[Cell]:
        return frozenset(c.cell for c in self.domain)


@dataclass
class DemandPlan:
    """Workload handed to the search.

    Attributes:
        pairs: Pairs that go to search
        units: One unit per required hour of every searchable pair
        issues: Pairs that cannot be fully met, with the reason
        all_pairs: Every (group, subject) pair, searchable or not
        best_effort: Pairs that go to search although they cannot all be
            met; their units may be left unplaced
    """

    pairs: list[DemandPair] = field(default_factory=list)
    units: list[DemandUnit] = field(default_factory=list)
    issues: list[DemandIssue] = field(default_factory=list)
    all_pairs: list[DemandPair] = field(default_factory=list)
    best_effort: set[tuple[str, str]] = field(default_factory=set)

    @property
    def total_units(self) -> int:
        return sum(p.hours for p in self.all_pairs)

    @property
    def has_issues(self) -> bool:
        return bool(self.issues)


class DemandExpander:
    """Expands every (group, subject) pair into its weekly demand units."""

    def __init__(self, snapshot: EntitySnapshot, index: AvailabilityIndex | None = None):
        self.snapshot = snapshot
        self.index = index or AvailabilityIndex(snapshot)

    def expand(self) -> DemandPlan:
        """Build the demand plan.

        Raises:
            DegreeMismatch: If a group lists a subject from another degree
        """
        plan = DemandPlan()
        withheld: dict[tuple[str, str], DemandIssue] = {}

        for group in sorted(self.snapshot.groups, key=lambda g: g.id):
            for subject_id in sorted(group.subjects):
                pair = self._build_pair(group.id, subject_id)
                plan.all_pairs.append(pair)

                issue = self._check_eligibility(pair)
                if issue is not None:
                    withheld[pair.key] = issue

        for issue in self._check_pair_capacity(plan.all_pairs, withheld):
            withheld[(issue.group_id, issue.subject_id)] = issue

        # Over-capacity groups are still searched so the report shows the real shortfall
        best_effort: dict[tuple[str, str], DemandIssue] = {
            (i.group_id, i.subject_id): i
            for i in self._check_group_capacity(plan.all_pairs, withheld)
        }

        for issue in self._check_teacher_capacity(plan.all_pairs, withheld, best_effort):
            withheld[(issue.group_id, issue.subject_id)] = issue

        for pair in plan.all_pairs:
            if pair.key in withheld:
                continue
            plan.pairs.append(pair)
            plan.units.extend(
                DemandUnit(
                    group_id=pair.group_id,
                    subject_id=pair.subject_id,
                    eligible_teacher_ids=pair.eligible_teacher_ids,
                    sequence=seq,
                )
                for seq in range(pair.hours)
            )

        plan.best_effort = set(best_effort)
        issue_by_pair = {**best_effort, **withheld}
        plan.issues = [issue_by_pair[p.key] for p in plan.all_pairs if p.key in issue_by_pair]
        for issue in plan.issues:
            if (issue.group_id, issue.subject_id) in withheld:
                logger.warning(
                    f"Withholding {issue.group_id}/{issue.subject_id} from search: {issue.details}"
                )
            else:
                logger.warning(
                    f"Searching {issue.group_id}/{issue.subject_id} on a best-effort basis: "
                    f"{issue.details}"
                )

        logger.info(
            f"Expanded {len(plan.all_pairs)} group-subject pairs into "
            f"{len(plan.units)} searchable units ({len(withheld)} pairs withheld, "
            f"{len(best_effort)} best-effort)"
        )
        return plan

    def _build_pair(self, group_id: str, subject_id: str) -> DemandPair:
        group = self.snapshot.get_group(group_id)
        subject = self.snapshot.get_subject(subject_id)

        if subject.degree_id != group.degree_id:
            raise DegreeMismatch(group.id, subject.id, group.degree_id, subject.degree_id)

        eligible: list[str] = []
        domain: list[Candidate] = []
        for teacher in self.snapshot.teachers_for_subject(subject_id):
            cells = self.index.teacher_cells_for_group(teacher.id, group_id)
            if not cells:
                continue
            eligible.append(teacher.id)
            domain.extend(Candidate(cell, teacher.id) for cell in cells)

        return DemandPair(
            group_id=group_id,
            subject_id=subject_id,
            hours=subject.hours_per_week,
            eligible_teacher_ids=tuple(eligible),
            window_size=len(self.index.group_cells(group_id)),
            domain=tuple(sorted(domain)),
        )

    def _check_eligibility(self, pair: DemandPair) -> DemandIssue | None:
        """NoEligibleTeacher: nobody qualified can teach inside the group's window."""
        if pair.eligible_teacher_ids:
            return None

        qualified = self.snapshot.teachers_for_subject(pair.subject_id)
        if not qualified:
            details = f"No teacher lists subject '{pair.subject_id}' in canTeach"
        else:
            names = ", ".join(t.id for t in qualified)
            details = (
                f"Qualified teachers ({names}) have no availability inside "
                f"the shift of group '{pair.group_id}'"
            )
        return DemandIssue(
            group_id=pair.group_id,
            subject_id=pair.subject_id,
            reason=IssueReason.NO_ELIGIBLE_TEACHER,
            units=pair.hours,
            details=details,
        )

    def _check_pair_capacity(
        self,
        pairs: list[DemandPair],
        withheld: dict[tuple[str, str], DemandIssue],
    ) -> list[DemandIssue]:
        """A pair needs more hours than it has distinct legal cells."""
        issues: list[DemandIssue] = []
        for pair in pairs:
            if pair.key in withheld:
                continue
            cells = len(pair.cells)
            if cells < pair.hours:
                issues.append(self._capacity_issue(
                    pair, f"Needs {pair.hours} hours but only {cells} legal hours exist"
                ))
        return issues

    def _check_group_capacity(
        self,
        pairs: list[DemandPair],
        withheld: dict[tuple[str, str], DemandIssue],
    ) -> list[DemandIssue]:
        """A group needs more hours than the cells its pairs can use.

        Pairs of such a group are not withheld: search places what fits.
        """
        by_group: dict[str, list[DemandPair]] = {}
        for pair in pairs:
            if pair.key not in withheld:
                by_group.setdefault(pair.group_id, []).append(pair)

        issues: list[DemandIssue] = []
        for group_id, group_pairs in by_group.items():
            demand = sum(p.hours for p in group_pairs)
            usable = len(frozenset().union(*(p.cells for p in group_pairs)))
            if demand > usable:
                for pair in group_pairs:
                    issues.append(self._capacity_issue(
                        pair,
                        f"Group '{group_id}' needs {demand} hours but only "
                        f"{usable} hours are usable",
                    ))
        return issues

    def _check_teacher_capacity(
        self,
        pairs: list[DemandPair],
        withheld: dict[tuple[str, str], DemandIssue],
        best_effort: dict[tuple[str, str], DemandIssue],
    ) -> list[DemandIssue]:
        """Pairs served by one single teacher need more hours than that teacher's usable cells."""
        by_teacher: dict[str, list[DemandPair]] = {}
        for pair in pairs:
            if pair.key in withheld or pair.key in best_effort:
                continue
            if len(pair.eligible_teacher_ids) == 1:
                by_teacher.setdefault(pair.eligible_teacher_ids[0], []).append(pair)

        issues: list[DemandIssue] = []
        for teacher_id, teacher_pairs in by_teacher.items():
            demand = sum(p.hours for p in teacher_pairs)
            usable = len(frozenset().union(*(p.cells for p in teacher_pairs)))
            if demand > usable:
                for pair in teacher_pairs:
                    issues.append(self._capacity_issue(
                        pair,
                        f"Teacher '{teacher_id}' is the only option for {demand} hours "
                        f"but has only {usable} usable hours",
                    ))
        return issues

    @staticmethod
    def _capacity_issue(pair: DemandPair, details: str) -> DemandIssue:
        return DemandIssue(
            group_id=pair.group_id,
            subject_id=pair.subject_id,
            reason=IssueReason.CAPACITY_EXCEEDED,
            units=pair.hours,
            details=details,
        )
