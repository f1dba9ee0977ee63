"""Test fixtures for timetable engine tests."""

import copy
import json
from pathlib import Path

import pytest

from academic_timetable.models import EntitySnapshot

DATA_DIR = Path(__file__).parent / "data"

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday"]


def _slots(days, start, end):
    return [{"day": day, "start": start, "end": end} for day in days]


@pytest.fixture
def sample_entities_path():
    """Path to the sample entity export (three groups, four teachers)."""
    return DATA_DIR / "sample_entities.json"


@pytest.fixture
def sample_entities(sample_entities_path):
    """Sample entity export as a dictionary."""
    with open(sample_entities_path, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def solvable_entities(sample_entities):
    """Sample export plus a morning teacher for S1, so every pair can be met."""
    data = copy.deepcopy(sample_entities)
    data["teachers"].append(
        {
            "id": "T5",
            "name": "Dr. Edsger Dijkstra",
            "availability": _slots(["Lunes", "Martes", "Miércoles"], "07:00", "13:00"),
            "canTeach": ["S1"],
        }
    )
    return data


@pytest.fixture
def basic_entities():
    """One group, one subject (2 h), one teacher, shift Mon-Fri 07:00-09:00."""
    return {
        "degrees": [{"id": "D1", "name": "Degree 1"}],
        "shifts": [
            {"id": "S1", "name": "Morning", "start": "07:00", "end": "09:00", "days": WEEKDAYS}
        ],
        "teachers": [
            {
                "id": "T1",
                "name": "Teacher 1",
                "availability": _slots(WEEKDAYS, "07:00", "09:00"),
                "canTeach": ["SUB1"],
            }
        ],
        "subjects": [
            {"id": "SUB1", "name": "Subject 1", "hoursPerWeek": 2, "degreeId": "D1", "semester": 1}
        ],
        "groups": [
            {"id": "G1", "name": "Group 1", "shiftId": "S1", "degreeId": "D1", "subjects": ["SUB1"]}
        ],
    }


@pytest.fixture
def basic_snapshot(basic_entities):
    return EntitySnapshot.from_dict(basic_entities)


@pytest.fixture
def sample_snapshot(sample_entities):
    return EntitySnapshot.from_dict(sample_entities)


@pytest.fixture
def solvable_snapshot(solvable_entities):
    return EntitySnapshot.from_dict(solvable_entities)


@pytest.fixture
def crowded_teachers_snapshot():
    """Three groups, two teachers, one usable hour: only search can prove infeasibility.

    Every pair has a legal cell, no group is over capacity and no pair
    depends on a single teacher, but three sessions compete for two
    teacher-hours on Monday 07:00.
    """
    return EntitySnapshot.from_dict(
        {
            "degrees": [{"id": "D1", "name": "Degree 1"}],
            "shifts": [
                {"id": "S1", "name": "Morning", "start": "07:00", "end": "09:00", "days": ["monday"]}
            ],
            "teachers": [
                {
                    "id": "T1",
                    "name": "Teacher 1",
                    "availability": _slots(["monday"], "07:00", "08:00"),
                    "canTeach": ["X", "Y", "Z"],
                },
                {
                    "id": "T2",
                    "name": "Teacher 2",
                    "availability": _slots(["monday"], "07:00", "08:00"),
                    "canTeach": ["X", "Y", "Z"],
                },
            ],
            "subjects": [
                {"id": "X", "name": "X", "hoursPerWeek": 1, "degreeId": "D1"},
                {"id": "Y", "name": "Y", "hoursPerWeek": 1, "degreeId": "D1"},
                {"id": "Z", "name": "Z", "hoursPerWeek": 1, "degreeId": "D1"},
            ],
            "groups": [
                {"id": "G1", "name": "G1", "shiftId": "S1", "degreeId": "D1", "subjects": ["X"]},
                {"id": "G2", "name": "G2", "shiftId": "S1", "degreeId": "D1", "subjects": ["Y"]},
                {"id": "G3", "name": "G3", "shiftId": "S1", "degreeId": "D1", "subjects": ["Z"]},
            ],
        }
    )


@pytest.fixture
def write_json(tmp_path):
    """Write a JSON document to a temporary file and return its path."""

    def _write(data, name="data.json"):
        path = tmp_path / name
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False)
        return path

    return _write


@pytest.fixture
def shared_teacher_snapshot():
    """Two groups needing one hour each from the same sole teacher, who has one hour."""
    return EntitySnapshot.from_dict(
        {
            "degrees": [{"id": "D1", "name": "D1"}],
            "shifts": [
                {"id": "S1", "name": "Early", "start": "07:00", "end": "08:00", "days": ["monday"]}
            ],
            "teachers": [
                {
                    "id": "T1",
                    "name": "T1",
                    "availability": _slots(["monday"], "07:00", "08:00"),
                    "canTeach": ["A", "B"],
                }
            ],
            "subjects": [
                {"id": "A", "name": "A", "hoursPerWeek": 1, "degreeId": "D1"},
                {"id": "B", "name": "B", "hoursPerWeek": 1, "degreeId": "D1"},
            ],
            "groups": [
                {"id": "G1", "name": "G1", "shiftId": "S1", "degreeId": "D1", "subjects": ["A"]},
                {"id": "G2", "name": "G2", "shiftId": "S1", "degreeId": "D1", "subjects": ["B"]},
            ],
        }
    )


@pytest.fixture
def over_capacity_group_snapshot():
    """One group with three 1-hour subjects but only two hours in its shift.

    Each subject has its own teacher who is free for the whole shift.
    """
    return EntitySnapshot.from_dict(
        {
            "degrees": [{"id": "D1", "name": "D1"}],
            "shifts": [
                {"id": "S1", "name": "Early", "start": "07:00", "end": "09:00", "days": ["monday"]}
            ],
            "teachers": [
                {
                    "id": f"T{subject}",
                    "name": f"T{subject}",
                    "availability": _slots(["monday"], "07:00", "09:00"),
                    "canTeach": [subject],
                }
                for subject in ("A", "B", "C")
            ],
            "subjects": [
                {"id": subject, "name": subject, "hoursPerWeek": 1, "degreeId": "D1"}
                for subject in ("A", "B", "C")
            ],
            "groups": [
                {"id": "G1", "name": "G1", "shiftId": "S1", "degreeId": "D1",
                 "subjects": ["A", "B", "C"]},
            ],
        }
    )
