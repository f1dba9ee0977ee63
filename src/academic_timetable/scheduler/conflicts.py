"""Occupancy tracking for schedule generation."""

from collections import defaultdict

from ..models import Cell


class OccupancyTracker:
    """Tracks which grid cells each teacher and each group already uses.

    One tracker belongs to exactly one scheduling run.
    """

    def __init__(self) -> None:
        # teacher_id -> occupied cells
        self.teacher_schedule: dict[str, set[Cell]] = defaultdict(set)
        # group_id -> occupied cells
        self.group_schedule: dict[str, set[Cell]] = defaultdict(set)

    def is_teacher_available(self, teacher_id: str, cell: Cell) -> bool:
        return cell not in self.teacher_schedule.get(teacher_id, ())

    def is_group_available(self, group_id: str, cell: Cell) -> bool:
        return cell not in self.group_schedule.get(group_id, ())

    def is_slot_available(self, teacher_id: str, group_id: str, cell: Cell) -> bool:
        """Check that neither the teacher nor the group is busy at the cell."""
        return self.is_teacher_available(teacher_id, cell) and self.is_group_available(
            group_id, cell
        )

    def reserve(self, teacher_id: str, group_id: str, cell: Cell) -> None:
        """Mark the cell busy for both the teacher and the group.

        Raises:
            ValueError: If either is already busy at the cell
        """
        if not self.is_slot_available(teacher_id, group_id, cell):
            raise ValueError(
                f"Cell {cell.label} is already taken for teacher '{teacher_id}' "
                f"or group '{group_id}'"
            )
        self.teacher_schedule[teacher_id].add(cell)
        self.group_schedule[group_id].add(cell)

    def release(self, teacher_id: str, group_id: str, cell: Cell) -> None:
        """Undo a reservation."""
        self.teacher_schedule[teacher_id].discard(cell)
        self.group_schedule[group_id].discard(cell)

    def teacher_load(self, teacher_id: str) -> int:
        return len(self.teacher_schedule.get(teacher_id, ()))

    def group_load(self, group_id: str) -> int:
        return len(self.group_schedule.get(group_id, ()))
