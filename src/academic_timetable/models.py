"""Data models for the timetable engine.

All entities are immutable value types. An :class:`EntitySnapshot` bundles
one consistent set of entities for a scheduling run and checks its
structure on construction.

Wire format follows the entity editor's JSON shape (camelCase keys,
"HH:MM" times, English or Spanish day names). Internally times are
minutes since midnight.
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, NamedTuple, Self

from .constants import SESSION_MINUTES
from .exceptions import InvalidEntityError, MalformedInterval, UnknownReferenceError
from .utils import format_hour_range, format_time, normalize_day_name, parse_time

logger = logging.getLogger(__name__)


def _require_id(data: dict[str, Any], kind: str) -> str:
    """Return the entity id as a string, rejecting records without one."""
    value = data.get("id") if isinstance(data, dict) else None
    if value is None or str(value).strip() == "":
        raise InvalidEntityError(f"{kind} record without an id: {data!r}")
    return str(value)


def _require_int(data: dict[str, Any], key: str, default: int, entity_id: str) -> int:
    """Read a whole-number field; fractional, boolean or non-numeric values are rejected."""
    value = data.get(key, default)
    if isinstance(value, bool):
        raise InvalidEntityError(f"{key} must be a whole number, got {value!r}", entity_id)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise InvalidEntityError(f"{key} must be a whole number, got {value!r}", entity_id)


class Day(int, Enum):
    """Days of the academic week, in tie-break order."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5

    @classmethod
    def from_name(cls, name: str, entity_id: str | None = None) -> "Day":
        """Parse an English or Spanish day name.

        Raises:
            InvalidEntityError: If the name is not a day of the academic week
        """
        if isinstance(name, Day):
            return name
        canonical = normalize_day_name(name)
        if canonical is None:
            raise InvalidEntityError(f"unknown day name: {name!r}", entity_id)
        return cls[canonical.upper()]

    @property
    def label(self) -> str:
        return self.name.lower()


class Cell(NamedTuple):
    """One hour of the weekly grid."""

    day: Day
    hour: int

    @property
    def label(self) -> str:
        return f"{self.day.label} {format_hour_range(self.hour)}"


@dataclass(frozen=True)
class TimeSlot:
    """A half-open [start, end) interval on one day, in minutes."""

    day: Day
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise MalformedInterval(
                self.day.label, format_time(self.start), format_time(self.end)
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any], owner: str | None = None) -> Self:
        """Create a TimeSlot from a dictionary like {"day", "start", "end"}."""
        day = Day.from_name(data.get("day", ""), owner)
        start = parse_time(data.get("start", ""), owner)
        end = parse_time(data.get("end", ""), owner)
        if start >= end:
            raise MalformedInterval(
                day.label, format_time(start), format_time(end), owner
            )
        return cls(day=day, start=start, end=end)

    def to_dict(self) -> dict[str, Any]:
        return {
            "day": self.day.label,
            "start": format_time(self.start),
            "end": format_time(self.end),
        }


@dataclass(frozen=True)
class Degree:
    """A degree program."""

    id: str
    name: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(id=_require_id(data, "degree"), name=data.get("name", ""))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Shift:
    """A recurring weekly window in which a group may receive instruction."""

    id: str
    name: str
    start: int
    end: int
    days: tuple[Day, ...]

    def __post_init__(self) -> None:
        if self.start >= self.end:
            raise MalformedInterval(
                ",".join(d.label for d in self.days),
                format_time(self.start),
                format_time(self.end),
                self.id,
            )
        if not self.days:
            raise InvalidEntityError("shift must cover at least one day", self.id)
        # Duplicate days are collapsed and kept in week order
        object.__setattr__(self, "days", tuple(sorted(set(self.days))))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        shift_id = _require_id(data, "shift")
        return cls(
            id=shift_id,
            name=data.get("name", ""),
            start=parse_time(data.get("start", ""), shift_id),
            end=parse_time(data.get("end", ""), shift_id),
            days=tuple(Day.from_name(d, shift_id) for d in data.get("days", [])),
        )

    @property
    def slots(self) -> tuple[TimeSlot, ...]:
        """The shift window as one interval per day."""
        return tuple(TimeSlot(day=day, start=self.start, end=self.end) for day in self.days)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "start": format_time(self.start),
            "end": format_time(self.end),
            "days": [d.label for d in self.days],
        }


@dataclass(frozen=True)
class Teacher:
    """A teacher with raw availability intervals and teachable subjects."""

    id: str
    name: str
    availability: tuple[TimeSlot, ...] = ()
    can_teach: frozenset[str] = frozenset()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        teacher_id = _require_id(data, "teacher")
        return cls(
            id=teacher_id,
            name=data.get("name", ""),
            availability=tuple(
                TimeSlot.from_dict(slot, teacher_id) for slot in data.get("availability", [])
            ),
            can_teach=frozenset(str(s) for s in data.get("canTeach", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "availability": [slot.to_dict() for slot in self.availability],
            "canTeach": sorted(self.can_teach),
        }


@dataclass(frozen=True)
class Subject:
    """A subject taught for an exact number of 1-hour sessions per week."""

    id: str
    name: str
    hours_per_week: int
    degree_id: str
    semester: int = 1

    def __post_init__(self) -> None:
        if self.hours_per_week < 1:
            raise InvalidEntityError(
                f"hoursPerWeek must be at least 1, got {self.hours_per_week}", self.id
            )
        if self.semester < 1:
            raise InvalidEntityError(
                f"semester must be at least 1, got {self.semester}", self.id
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        subject_id = _require_id(data, "subject")
        return cls(
            id=subject_id,
            name=data.get("name", ""),
            hours_per_week=_require_int(data, "hoursPerWeek", 0, subject_id),
            degree_id=str(data.get("degreeId", "")),
            semester=_require_int(data, "semester", 1, subject_id),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "hoursPerWeek": self.hours_per_week,
            "degreeId": self.degree_id,
            "semester": self.semester,
        }


@dataclass(frozen=True)
class Group:
    """A student group following one shift and one degree's subjects."""

    id: str
    name: str
    shift_id: str
    degree_id: str
    subjects: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Subject list has set semantics; first occurrence wins
        object.__setattr__(self, "subjects", tuple(dict.fromkeys(self.subjects)))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        return cls(
            id=_require_id(data, "group"),
            name=data.get("name", ""),
            shift_id=str(data.get("shiftId", "")),
            degree_id=str(data.get("degreeId", "")),
            subjects=tuple(str(s) for s in data.get("subjects", [])),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "shiftId": self.shift_id,
            "degreeId": self.degree_id,
            "subjects": list(self.subjects),
        }


@dataclass(frozen=True, order=True)
class ScheduleEntry:
    """One scheduled session: one teacher, one group, one subject, one hour."""

    group_id: str
    day: Day
    start: int
    subject_id: str
    teacher_id: str
    end: int

    @classmethod
    def for_cell(cls, group_id: str, subject_id: str, teacher_id: str, cell: Cell) -> Self:
        """Create a 1-hour entry occupying a grid cell."""
        start = cell.hour * 60
        return cls(
            group_id=group_id,
            day=cell.day,
            start=start,
            subject_id=subject_id,
            teacher_id=teacher_id,
            end=start + SESSION_MINUTES,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create an entry from the wire shape.

        Entries from external sources are not trusted: times are parsed but
        granularity is left to the validator.
        """
        label = f"entry {data.get('groupId', '?')}/{data.get('subjectId', '?')}"
        start = parse_time(data.get("start", ""), label)
        end_value = data.get("end")
        end = parse_time(end_value, label) if end_value is not None else start + SESSION_MINUTES
        return cls(
            group_id=str(data.get("groupId", "")),
            day=Day.from_name(data.get("day", ""), label),
            start=start,
            subject_id=str(data.get("subjectId", "")),
            teacher_id=str(data.get("teacherId", "")),
            end=end,
        )

    @property
    def duration(self) -> int:
        return self.end - self.start

    @property
    def cell(self) -> Cell:
        return Cell(self.day, self.start // 60)

    def covered_cells(self) -> list[Cell]:
        """All grid cells this entry touches (more than one if misaligned)."""
        first = self.start // 60
        last = max(first, (self.end - 1) // 60)
        return [Cell(self.day, hour) for hour in range(first, last + 1)]

    def to_dict(self) -> dict[str, Any]:
        return {
            "subjectId": self.subject_id,
            "teacherId": self.teacher_id,
            "groupId": self.group_id,
            "day": self.day.label,
            "start": format_time(self.start),
            "end": format_time(self.end),
        }


@dataclass(frozen=True)
class EntitySnapshot:
    """An immutable, structurally checked set of entities for one run."""

    degrees: tuple[Degree, ...] = ()
    shifts: tuple[Shift, ...] = ()
    teachers: tuple[Teacher, ...] = ()
    subjects: tuple[Subject, ...] = ()
    groups: tuple[Group, ...] = ()

    _degree_by_id: MappingProxyType = field(init=False, repr=False, compare=False)
    _shift_by_id: MappingProxyType = field(init=False, repr=False, compare=False)
    _teacher_by_id: MappingProxyType = field(init=False, repr=False, compare=False)
    _subject_by_id: MappingProxyType = field(init=False, repr=False, compare=False)
    _group_by_id: MappingProxyType = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        for name in ("degrees", "shifts", "teachers", "subjects", "groups"):
            object.__setattr__(self, name, tuple(getattr(self, name)))

        self._index("_degree_by_id", "degree", self.degrees)
        self._index("_shift_by_id", "shift", self.shifts)
        self._index("_subject_by_id", "subject", self.subjects)
        self._index("_group_by_id", "group", self.groups)

        self._check_references()

        # Teachers are indexed after unknown canTeach ids are stripped
        object.__setattr__(self, "teachers", tuple(self._clean_teacher(t) for t in self.teachers))
        self._index("_teacher_by_id", "teacher", self.teachers)

    def _index(self, attr: str, kind: str, entities: tuple) -> None:
        lookup: dict[str, Any] = {}
        for entity in entities:
            if entity.id in lookup:
                raise InvalidEntityError(f"duplicate {kind} id", entity.id)
            lookup[entity.id] = entity
        object.__setattr__(self, attr, MappingProxyType(lookup))

    def _check_references(self) -> None:
        for subject in self.subjects:
            if subject.degree_id not in self._degree_by_id:
                raise UnknownReferenceError("subject", subject.id, subject.degree_id)

        for group in self.groups:
            if group.shift_id not in self._shift_by_id:
                raise UnknownReferenceError("group", group.id, group.shift_id)
            if group.degree_id not in self._degree_by_id:
                raise UnknownReferenceError("group", group.id, group.degree_id)
            for subject_id in group.subjects:
                if subject_id not in self._subject_by_id:
                    raise UnknownReferenceError("group", group.id, subject_id)

    def _clean_teacher(self, teacher: Teacher) -> Teacher:
        unknown = sorted(s for s in teacher.can_teach if s not in self._subject_by_id)
        if not unknown:
            return teacher
        logger.warning(
            f"Teacher '{teacher.id}' lists unknown subjects {unknown}; ignoring them"
        )
        return replace(teacher, can_teach=teacher.can_teach - set(unknown))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create a snapshot from the editor's JSON export."""
        return cls(
            degrees=tuple(Degree.from_dict(d) for d in data.get("degrees", [])),
            shifts=tuple(Shift.from_dict(s) for s in data.get("shifts", [])),
            teachers=tuple(Teacher.from_dict(t) for t in data.get("teachers", [])),
            subjects=tuple(Subject.from_dict(s) for s in data.get("subjects", [])),
            groups=tuple(Group.from_dict(g) for g in data.get("groups", [])),
        )

    def get_degree(self, degree_id: str) -> Degree | None:
        return self._degree_by_id.get(degree_id)

    def get_shift(self, shift_id: str) -> Shift | None:
        return self._shift_by_id.get(shift_id)

    def get_teacher(self, teacher_id: str) -> Teacher | None:
        return self._teacher_by_id.get(teacher_id)

    def get_subject(self, subject_id: str) -> Subject | None:
        return self._subject_by_id.get(subject_id)

    def get_group(self, group_id: str) -> Group | None:
        return self._group_by_id.get(group_id)

    def teachers_for_subject(self, subject_id: str) -> list[Teacher]:
        """Teachers whose canTeach includes the subject, sorted by id."""
        return sorted(
            (t for t in self.teachers if subject_id in t.can_teach),
            key=lambda t: t.id,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "degrees": [d.to_dict() for d in self.degrees],
            "shifts": [s.to_dict() for s in self.shifts],
            "teachers": [t.to_dict() for t in self.teachers],
            "subjects": [s.to_dict() for s in self.subjects],
            "groups": [g.to_dict() for g in self.groups],
        }
