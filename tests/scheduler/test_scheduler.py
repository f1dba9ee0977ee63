"""Tests for TimetableScheduler class."""

import copy
import random
from concurrent.futures import ThreadPoolExecutor

import pytest

from academic_timetable.models import Cell, Day, EntitySnapshot, ScheduleEntry
from academic_timetable.scheduler import (
    IssueReason,
    SchedulerConfig,
    SolverStrategy,
    ScheduleStatus,
    TimetableScheduler,
    ViolationType,
    schedule,
    validate,
)
from academic_timetable.scheduler import scheduler as scheduler_module
from academic_timetable.scheduler.demand import Candidate
from academic_timetable.scheduler.search import SearchOutcome


def _shuffled(entities, seed):
    """Same entities with every list (and nested list) in a different order."""
    data = copy.deepcopy(entities)
    rng = random.Random(seed)
    for key in ("degrees", "shifts", "teachers", "subjects", "groups"):
        rng.shuffle(data[key])
    for teacher in data["teachers"]:
        rng.shuffle(teacher["availability"])
        rng.shuffle(teacher["canTeach"])
    for group in data["groups"]:
        rng.shuffle(group["subjects"])
    for shift in data["shifts"]:
        rng.shuffle(shift["days"])
    return data


def _random_entities(seed):
    """A small random campus; may or may not be solvable."""
    rng = random.Random(seed)
    weekdays = ["monday", "tuesday", "wednesday", "thursday", "friday"]
    subjects = [
        {"id": f"S{i}", "name": f"S{i}", "hoursPerWeek": rng.randint(1, 3), "degreeId": "D1"}
        for i in range(6)
    ]
    teachers = []
    for i in range(4):
        days = rng.sample(weekdays, rng.randint(2, 4))
        start = rng.choice([7, 8, 9])
        teachers.append({
            "id": f"T{i}",
            "name": f"T{i}",
            "availability": [
                {"day": d, "start": f"{start:02d}:00", "end": f"{start + rng.randint(2, 4):02d}:00"}
                for d in days
            ],
            "canTeach": rng.sample([s["id"] for s in subjects], 3),
        })
    groups = [
        {
            "id": f"G{i}",
            "name": f"G{i}",
            "shiftId": "M",
            "degreeId": "D1",
            "subjects": rng.sample([s["id"] for s in subjects], 2),
        }
        for i in range(3)
    ]
    return {
        "degrees": [{"id": "D1", "name": "D1"}],
        "shifts": [{"id": "M", "name": "M", "start": "07:00", "end": "13:00", "days": weekdays}],
        "teachers": teachers,
        "subjects": subjects,
        "groups": groups,
    }


class TestTimetableScheduler:
    """Tests for TimetableScheduler class."""

    def test_basic_schedule(self, basic_snapshot):
        result = TimetableScheduler().schedule(basic_snapshot)

        assert result.status == ScheduleStatus.SOLVED
        assert result.is_solved
        assert [(e.day, e.start, e.end, e.teacher_id) for e in result.entries] == [
            (Day.MONDAY, 420, 480, "T1"),
            (Day.MONDAY, 480, 540, "T1"),
        ]
        assert result.unsatisfied == []
        assert result.violations == []

    def test_statistics(self, basic_snapshot):
        result = TimetableScheduler().schedule(basic_snapshot)
        stats = result.statistics

        assert stats.strategy == "backtracking"
        assert stats.total_units == 2
        assert stats.total_assigned == 2
        assert stats.total_unsatisfied == 0
        assert stats.by_day == {"monday": 2}
        assert stats.by_teacher == {"T1": 2}
        assert stats.to_dict()["scheduling_rate"] == 1.0

    def test_not_enough_legal_hours(self, basic_entities):
        basic_entities["shifts"][0]["days"] = ["monday"]
        basic_entities["subjects"][0]["hoursPerWeek"] = 3
        result = TimetableScheduler().schedule(EntitySnapshot.from_dict(basic_entities))

        assert result.status == ScheduleStatus.INFEASIBLE
        assert result.entries == []
        assert len(result.unsatisfied) == 1
        item = result.unsatisfied[0]
        assert (item.group_id, item.subject_id, item.units_still_needed) == ("G1", "SUB1", 3)
        assert item.reason == IssueReason.CAPACITY_EXCEEDED

    def test_sample_data_reports_unteachable_pair(self, sample_snapshot):
        result = TimetableScheduler().schedule(sample_snapshot)

        assert result.status == ScheduleStatus.INFEASIBLE
        assert [(u.group_id, u.subject_id, u.units_still_needed, u.reason)
                for u in result.unsatisfied] == [
            ("G1", "S1", 3, IssueReason.NO_ELIGIBLE_TEACHER),
        ]
        # The rest of the campus is still scheduled
        assert len(result.entries) == 15
        assert {e.group_id for e in result.entries} == {"G2", "G3"}

    def test_sample_data_partial_output_has_no_conflicts(self, sample_snapshot):
        result = TimetableScheduler().schedule(sample_snapshot)
        kinds = {v.type for v in result.violations}
        # Only the missing G1/S1 hours are reported
        assert kinds == {ViolationType.HOURS_MISMATCH}

    def test_solvable_data(self, solvable_snapshot):
        result = TimetableScheduler().schedule(solvable_snapshot)

        assert result.status == ScheduleStatus.SOLVED
        assert len(result.entries) == 18
        assert validate(result.entries, solvable_snapshot) == []

    def test_search_exhausted(self, crowded_teachers_snapshot):
        result = TimetableScheduler().schedule(crowded_teachers_snapshot)

        assert result.status == ScheduleStatus.INFEASIBLE
        assert [(u.group_id, u.units_still_needed, u.reason) for u in result.unsatisfied] == [
            ("G2", 1, IssueReason.SEARCH_EXHAUSTED),
            ("G3", 1, IssueReason.SEARCH_EXHAUSTED),
        ]
        assert len(result.entries) == 1

    def test_sole_teacher_conflict_lists_both_pairs(self, shared_teacher_snapshot):
        result = TimetableScheduler().schedule(shared_teacher_snapshot)

        assert result.status == ScheduleStatus.INFEASIBLE
        assert result.entries == []
        assert [(u.group_id, u.subject_id, u.units_still_needed, u.reason)
                for u in result.unsatisfied] == [
            ("G1", "A", 1, IssueReason.CAPACITY_EXCEEDED),
            ("G2", "B", 1, IssueReason.CAPACITY_EXCEEDED),
        ]

    def test_over_capacity_group_keeps_what_fits(self, over_capacity_group_snapshot):
        result = TimetableScheduler().schedule(over_capacity_group_snapshot)

        assert result.status == ScheduleStatus.INFEASIBLE
        assert [(e.subject_id, e.teacher_id, e.cell) for e in result.entries] == [
            ("A", "TA", Cell(Day.MONDAY, 7)),
            ("B", "TB", Cell(Day.MONDAY, 8)),
        ]
        assert [(u.subject_id, u.units_still_needed, u.reason) for u in result.unsatisfied] == [
            ("C", 1, IssueReason.CAPACITY_EXCEEDED),
        ]
        assert len(result.issues) == 3
        assert result.statistics.total_assigned == 2

    def test_over_capacity_group_with_cp_sat(self, over_capacity_group_snapshot):
        config = SchedulerConfig(strategy=SolverStrategy.CP_SAT)
        result = TimetableScheduler(config).schedule(over_capacity_group_snapshot)

        assert result.status == ScheduleStatus.INFEASIBLE
        assert len(result.entries) == 2
        assert sum(u.units_still_needed for u in result.unsatisfied) == 1
        kinds = {v.type for v in result.violations}
        assert kinds == {ViolationType.HOURS_MISMATCH}

    def test_budget_exceeded(self, basic_snapshot):
        result = TimetableScheduler(SchedulerConfig(node_limit=1)).schedule(basic_snapshot)

        assert result.status == ScheduleStatus.BUDGET_EXCEEDED
        assert len(result.entries) == 1
        assert [(u.units_still_needed, u.reason) for u in result.unsatisfied] == [
            (1, IssueReason.BUDGET_EXCEEDED),
        ]

    def test_validator_rejection_downgrades_status(self, basic_snapshot, monkeypatch):
        # A broken search that books the same teacher twice in one hour
        def fake_search(self, plan):
            candidate = Candidate(Cell(Day.MONDAY, 7), "T1")
            return SearchOutcome(
                status=ScheduleStatus.SOLVED,
                assignments=[(("G1", "SUB1"), candidate), (("G1", "SUB1"), candidate)],
            )

        monkeypatch.setattr(scheduler_module.TimetableScheduler, "_search", fake_search)
        result = TimetableScheduler().schedule(basic_snapshot)

        assert result.status == ScheduleStatus.INFEASIBLE
        assert {v.type for v in result.violations} >= {
            ViolationType.TEACHER_DOUBLE_BOOKED,
            ViolationType.GROUP_DOUBLE_BOOKED,
        }
        assert [u.reason for u in result.unsatisfied] == [IssueReason.REJECTED_BY_VALIDATOR]

    def test_validation_can_be_disabled(self, sample_snapshot):
        result = TimetableScheduler(SchedulerConfig(validate_output=False)).schedule(
            sample_snapshot
        )
        assert result.violations == []
        assert result.status == ScheduleStatus.INFEASIBLE

    def test_module_level_schedule(self, basic_snapshot):
        assert schedule(basic_snapshot).entries == TimetableScheduler().schedule(
            basic_snapshot
        ).entries

    def test_result_to_dict(self, basic_snapshot):
        data = TimetableScheduler().schedule(basic_snapshot).to_dict()
        assert data["status"] == "solved"
        assert data["entries"][0] == {
            "subjectId": "SUB1",
            "teacherId": "T1",
            "groupId": "G1",
            "day": "monday",
            "start": "07:00",
            "end": "08:00",
        }


class TestDeterminism:
    """Identical input gives identical output, whatever the input order."""

    @pytest.mark.parametrize("seed", [1, 2, 3])
    def test_input_order_does_not_matter(self, solvable_entities, seed):
        baseline = schedule(EntitySnapshot.from_dict(solvable_entities))
        shuffled = schedule(EntitySnapshot.from_dict(_shuffled(solvable_entities, seed)))

        assert shuffled.status == baseline.status
        assert shuffled.entries == baseline.entries

    def test_repeated_runs(self, solvable_snapshot):
        scheduler = TimetableScheduler()
        first = scheduler.schedule(solvable_snapshot)
        second = scheduler.schedule(solvable_snapshot)
        assert first.entries == second.entries

    def test_concurrent_runs(self, solvable_snapshot):
        scheduler = TimetableScheduler()
        with ThreadPoolExecutor(max_workers=4) as pool:
            results = list(pool.map(lambda _: scheduler.schedule(solvable_snapshot), range(4)))

        expected = results[0].entries
        assert all(r.status == ScheduleStatus.SOLVED for r in results)
        assert all(r.entries == expected for r in results)


class TestScheduleInvariants:
    """Whatever the outcome, reported entries never break a hard rule."""

    @pytest.mark.parametrize("seed", range(8))
    def test_random_campus(self, seed):
        snapshot = EntitySnapshot.from_dict(_random_entities(seed))
        result = schedule(snapshot, SchedulerConfig(node_limit=20_000))

        structural = [
            v for v in validate(result.entries, snapshot)
            if v.type != ViolationType.HOURS_MISMATCH
        ]
        assert structural == []

        if result.status == ScheduleStatus.SOLVED:
            assert result.violations == []
            assert result.unsatisfied == []
        else:
            assert result.unsatisfied

        missing = {(u.group_id, u.subject_id): u.units_still_needed for u in result.unsatisfied}
        for group in snapshot.groups:
            for subject_id in group.subjects:
                scheduled = sum(
                    1 for e in result.entries
                    if e.group_id == group.id and e.subject_id == subject_id
                )
                expected = snapshot.get_subject(subject_id).hours_per_week
                assert scheduled + missing.get((group.id, subject_id), 0) == expected

    def test_entries_are_sorted(self, solvable_snapshot):
        entries = schedule(solvable_snapshot).entries
        assert entries == sorted(entries)
        assert all(isinstance(e, ScheduleEntry) for e in entries)
