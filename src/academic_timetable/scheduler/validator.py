"""Schedule validation against every hard rule.

The validator works directly on entities and entries. It does not share
code paths with the search, so it can vouch for schedules from any source.
"""

import logging
from collections import Counter, defaultdict
from collections.abc import Iterable, Sequence
from itertools import combinations

from ..constants import SESSION_MINUTES
from ..models import Cell, Day, EntitySnapshot, ScheduleEntry, TimeSlot
from ..utils import format_time
from .models import Violation, ViolationType

logger = logging.getLogger(__name__)


def _is_covered(slots: Iterable[TimeSlot], day: Day, start: int, end: int) -> bool:
    """Check that [start, end) on a day lies inside the union of slots."""
    position = start
    for slot in sorted((s for s in slots if s.day == day), key=lambda s: s.start):
        if slot.start <= position < slot.end:
            position = slot.end
        if position >= end:
            return True
    return position >= end


def _describe(entry: ScheduleEntry) -> str:
    return (
        f"{entry.group_id}/{entry.subject_id} with {entry.teacher_id} on "
        f"{entry.day.label} {format_time(entry.start)}-{format_time(entry.end)}"
    )


class ScheduleValidator:
    """Checks a schedule against an entity snapshot.

    Hard rules:
    - Entries reference existing subjects, teachers and groups
    - Sessions start on the hour and last exactly one hour
    - A teacher teaches one class at a time
    - A group attends one class at a time
    - Sessions lie inside the teacher's availability
    - Sessions lie inside the group's shift
    - Teachers only teach subjects listed in canTeach
    - Subjects belong to the group's degree and subject list
    - Each group-subject pair gets exactly hoursPerWeek sessions
    """

    def __init__(self, snapshot: EntitySnapshot):
        self.snapshot = snapshot

    def validate(self, entries: Sequence[ScheduleEntry]) -> list[Violation]:
        """Return every violation found; an empty list means the schedule is valid."""
        violations: list[Violation] = []
        valid_indices: list[int] = []

        for index, entry in enumerate(entries):
            entry_violations = self._check_references(index, entry)
            if entry_violations:
                violations.extend(entry_violations)
                continue
            valid_indices.append(index)
            violations.extend(self._check_entry(index, entry))

        violations.extend(self._check_double_booking(entries, valid_indices))
        violations.extend(self._check_weekly_hours(entries, valid_indices))

        if violations:
            logger.info(f"Schedule has {len(violations)} violation(s)")
        return violations

    def is_valid(self, entries: Sequence[ScheduleEntry]) -> bool:
        return not self.validate(entries)

    def _check_references(self, index: int, entry: ScheduleEntry) -> list[Violation]:
        missing = []
        if self.snapshot.get_subject(entry.subject_id) is None:
            missing.append(f"subject '{entry.subject_id}'")
        if self.snapshot.get_teacher(entry.teacher_id) is None:
            missing.append(f"teacher '{entry.teacher_id}'")
        if self.snapshot.get_group(entry.group_id) is None:
            missing.append(f"group '{entry.group_id}'")
        if not missing:
            return []
        return [Violation(
            type=ViolationType.UNKNOWN_REFERENCE,
            message=f"Entry {index} references unknown {', '.join(missing)}",
            entry_indices=(index,),
            group_id=entry.group_id,
            subject_id=entry.subject_id,
            teacher_id=entry.teacher_id,
            cell=entry.cell,
        )]

    def _check_entry(self, index: int, entry: ScheduleEntry) -> list[Violation]:
        """Rules that concern a single entry."""
        subject = self.snapshot.get_subject(entry.subject_id)
        teacher = self.snapshot.get_teacher(entry.teacher_id)
        group = self.snapshot.get_group(entry.group_id)
        shift = self.snapshot.get_shift(group.shift_id)

        found: list[Violation] = []

        def add(violation_type: ViolationType, message: str) -> None:
            found.append(Violation(
                type=violation_type,
                message=message,
                entry_indices=(index,),
                group_id=entry.group_id,
                subject_id=entry.subject_id,
                teacher_id=entry.teacher_id,
                cell=entry.cell,
            ))

        if entry.start % 60 != 0 or entry.duration != SESSION_MINUTES:
            add(
                ViolationType.INVALID_SLOT,
                f"Entry {index} ({_describe(entry)}) is not a 1-hour session on the hour",
            )

        if entry.subject_id not in teacher.can_teach:
            add(
                ViolationType.TEACHER_NOT_QUALIFIED,
                f"Teacher '{teacher.id}' cannot teach subject '{subject.id}' (entry {index})",
            )

        if subject.degree_id != group.degree_id:
            add(
                ViolationType.DEGREE_MISMATCH,
                f"Subject '{subject.id}' (degree '{subject.degree_id}') given to group "
                f"'{group.id}' (degree '{group.degree_id}') (entry {index})",
            )

        if entry.subject_id not in group.subjects:
            add(
                ViolationType.SUBJECT_NOT_IN_GROUP,
                f"Subject '{subject.id}' is not in the subject list of group '{group.id}' "
                f"(entry {index})",
            )

        if not _is_covered(teacher.availability, entry.day, entry.start, entry.end):
            add(
                ViolationType.OUTSIDE_AVAILABILITY,
                f"Entry {index} ({_describe(entry)}) is outside the teacher's availability",
            )

        in_shift = (
            entry.day in shift.days
            and shift.start <= entry.start
            and entry.end <= shift.end
        )
        if not in_shift:
            add(
                ViolationType.OUTSIDE_SHIFT,
                f"Entry {index} ({_describe(entry)}) is outside shift '{shift.id}'",
            )

        return found

    def _check_double_booking(
        self,
        entries: Sequence[ScheduleEntry],
        indices: list[int],
    ) -> list[Violation]:
        """Pairs of overlapping entries for the same teacher or the same group."""
        found: list[Violation] = []
        by_teacher: dict[tuple[str, Day], list[int]] = defaultdict(list)
        by_group: dict[tuple[str, Day], list[int]] = defaultdict(list)
        for index in indices:
            entry = entries[index]
            by_teacher[(entry.teacher_id, entry.day)].append(index)
            by_group[(entry.group_id, entry.day)].append(index)

        for (teacher_id, _), same_day in by_teacher.items():
            for a, b in self._overlapping(entries, same_day):
                cell = self._overlap_cell(entries[a], entries[b])
                found.append(Violation(
                    type=ViolationType.TEACHER_DOUBLE_BOOKED,
                    message=(
                        f"Teacher '{teacher_id}' is double-booked on {cell.label} "
                        f"(entries {a} and {b})"
                    ),
                    entry_indices=(a, b),
                    teacher_id=teacher_id,
                    cell=cell,
                ))

        for (group_id, _), same_day in by_group.items():
            for a, b in self._overlapping(entries, same_day):
                cell = self._overlap_cell(entries[a], entries[b])
                found.append(Violation(
                    type=ViolationType.GROUP_DOUBLE_BOOKED,
                    message=(
                        f"Group '{group_id}' is double-booked on {cell.label} "
                        f"(entries {a} and {b})"
                    ),
                    entry_indices=(a, b),
                    group_id=group_id,
                    cell=cell,
                ))

        return found

    @staticmethod
    def _overlapping(
        entries: Sequence[ScheduleEntry], indices: list[int]
    ) -> list[tuple[int, int]]:
        return [
            (a, b)
            for a, b in combinations(indices, 2)
            if entries[a].start < entries[b].end and entries[b].start < entries[a].end
        ]

    @staticmethod
    def _overlap_cell(first: ScheduleEntry, second: ScheduleEntry) -> Cell:
        """Earliest grid cell touched by both overlapping entries."""
        return min(set(first.covered_cells()) & set(second.covered_cells()))

    def _check_weekly_hours(
        self,
        entries: Sequence[ScheduleEntry],
        indices: list[int],
    ) -> list[Violation]:
        """Every listed (group, subject) pair gets exactly hoursPerWeek sessions."""
        counts = Counter((entries[i].group_id, entries[i].subject_id) for i in indices)
        found: list[Violation] = []

        for group in sorted(self.snapshot.groups, key=lambda g: g.id):
            for subject_id in sorted(group.subjects):
                subject = self.snapshot.get_subject(subject_id)
                actual = counts.get((group.id, subject_id), 0)
                if actual == subject.hours_per_week:
                    continue
                found.append(Violation(
                    type=ViolationType.HOURS_MISMATCH,
                    message=(
                        f"Group '{group.id}' has {actual} session(s) of subject "
                        f"'{subject_id}', expected {subject.hours_per_week}"
                    ),
                    entry_indices=tuple(
                        i for i in indices
                        if entries[i].group_id == group.id and entries[i].subject_id == subject_id
                    ),
                    group_id=group.id,
                    subject_id=subject_id,
                ))

        return found


def validate(entries: Sequence[ScheduleEntry], snapshot: EntitySnapshot) -> list[Violation]:
    """Validate a schedule against a snapshot; see :class:`ScheduleValidator`."""
    return ScheduleValidator(snapshot).validate(entries)
