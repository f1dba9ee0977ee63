"""Availability index: schedulable grid cells per teacher, shift and group."""

from collections.abc import Iterable

from ..models import Cell, EntitySnapshot, TimeSlot


def normalize(intervals: Iterable[TimeSlot]) -> tuple[TimeSlot, ...]:
    """Sort intervals and merge the ones that overlap or touch on the same day.

    Args:
        intervals: Raw intervals, possibly unordered and overlapping

    Returns:
        Disjoint intervals in (day, start) order
    """
    merged: list[TimeSlot] = []
    for slot in sorted(intervals, key=lambda s: (s.day, s.start, s.end)):
        if merged and merged[-1].day == slot.day and slot.start <= merged[-1].end:
            last = merged[-1]
            if slot.end > last.end:
                merged[-1] = TimeSlot(day=last.day, start=last.start, end=slot.end)
            continue
        merged.append(slot)
    return tuple(merged)


def cells_for(intervals: Iterable[TimeSlot]) -> frozenset[Cell]:
    """Grid cells whose whole hour lies inside the given intervals.

    A cell (day, h) is included when [h:00, h+1:00) is covered, so
    "07:30-10:00" yields hours 8 and 9 only.
    """
    cells: set[Cell] = set()
    for slot in normalize(intervals):
        first_hour = -(-slot.start // 60)
        last_hour = slot.end // 60
        for hour in range(first_hour, last_hour):
            cells.add(Cell(slot.day, hour))
    return frozenset(cells)


class AvailabilityIndex:
    """Precomputed schedulable cells for every teacher, shift and group.

    Shift windows apply to every group that references the shift.
    """

    def __init__(self, snapshot: EntitySnapshot):
        self._teacher_cells: dict[str, frozenset[Cell]] = {
            teacher.id: cells_for(teacher.availability) for teacher in snapshot.teachers
        }
        self._shift_cells: dict[str, frozenset[Cell]] = {
            shift.id: cells_for(shift.slots) for shift in snapshot.shifts
        }
        self._group_cells: dict[str, frozenset[Cell]] = {
            group.id: self._shift_cells.get(group.shift_id, frozenset())
            for group in snapshot.groups
        }

    def teacher_cells(self, teacher_id: str) -> frozenset[Cell]:
        """Cells in which the teacher may be scheduled."""
        return self._teacher_cells.get(teacher_id, frozenset())

    def shift_cells(self, shift_id: str) -> frozenset[Cell]:
        """Cells covered by the shift window."""
        return self._shift_cells.get(shift_id, frozenset())

    def group_cells(self, group_id: str) -> frozenset[Cell]:
        """Legal window of the group (its shift's cells)."""
        return self._group_cells.get(group_id, frozenset())

    def teacher_cells_for_group(self, teacher_id: str, group_id: str) -> frozenset[Cell]:
        """Cells in which the teacher may teach the group."""
        return self.teacher_cells(teacher_id) & self.group_cells(group_id)

    def is_teacher_available(self, teacher_id: str, cell: Cell) -> bool:
        return cell in self.teacher_cells(teacher_id)

    def is_in_group_window(self, group_id: str, cell: Cell) -> bool:
        return cell in self.group_cells(group_id)
