"""Tests for schedule exporters."""

import csv
import json

import pandas as pd
import pytest

from academic_timetable.exporters import (
    CSVExporter,
    ExcelExporter,
    JSONExporter,
    get_exporter,
)
from academic_timetable.scheduler import TimetableScheduler


@pytest.fixture
def solved_result(basic_snapshot):
    return TimetableScheduler().schedule(basic_snapshot)


@pytest.fixture
def failed_result(sample_snapshot):
    return TimetableScheduler().schedule(sample_snapshot)


class TestJSONExporter:
    """Tests for JSONExporter class."""

    def test_export(self, solved_result, tmp_path):
        output = tmp_path / "out" / "schedule.json"
        JSONExporter().export(solved_result, output)

        with open(output, encoding="utf-8") as f:
            data = json.load(f)
        assert data["status"] == "solved"
        assert len(data["entries"]) == 2
        assert data["statistics"]["total_units"] == 2

    def test_unsatisfied_exported(self, failed_result, tmp_path):
        output = tmp_path / "schedule.json"
        JSONExporter().export(failed_result, output)

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["unsatisfied"][0] == {
            "groupId": "G1",
            "subjectId": "S1",
            "unitsStillNeeded": 3,
            "reason": "no_eligible_teacher",
        }
        assert data["issues"][0]["reason"] == "no_eligible_teacher"


    def test_without_run_metadata_is_byte_identical(self, basic_snapshot, tmp_path):
        first, second = tmp_path / "first.json", tmp_path / "second.json"
        exporter = JSONExporter(include_run_metadata=False)
        exporter.export(TimetableScheduler().schedule(basic_snapshot), first)
        exporter.export(TimetableScheduler().schedule(basic_snapshot), second)

        assert first.read_bytes() == second.read_bytes()
        data = json.loads(first.read_text(encoding="utf-8"))
        assert "generation_date" not in data
        assert "solver_time_seconds" not in data["statistics"]

    def test_run_metadata_included_by_default(self, solved_result, tmp_path):
        output = tmp_path / "schedule.json"
        JSONExporter().export(solved_result, output)

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["generation_date"] == solved_result.generation_date
        assert "solver_time_seconds" in data["statistics"]


class TestCSVExporter:
    """Tests for CSVExporter class."""

    def test_export_solved(self, solved_result, tmp_path):
        CSVExporter().export(solved_result, tmp_path / "csv")

        assert (tmp_path / "csv" / "entries.csv").exists()
        assert (tmp_path / "csv" / "summary.csv").exists()
        # Empty tables are skipped
        assert not (tmp_path / "csv" / "unsatisfied.csv").exists()
        assert not (tmp_path / "csv" / "violations.csv").exists()

        with open(tmp_path / "csv" / "entries.csv", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert rows[0] == {
            "group_id": "G1",
            "subject_id": "SUB1",
            "teacher_id": "T1",
            "day": "monday",
            "start": "07:00",
            "end": "08:00",
        }

    def test_export_failed(self, failed_result, tmp_path):
        CSVExporter().export(failed_result, tmp_path)

        with open(tmp_path / "unsatisfied.csv", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert rows == [
            {
                "group_id": "G1",
                "subject_id": "S1",
                "units_still_needed": "3",
                "reason": "no_eligible_teacher",
            }
        ]


class TestExcelExporter:
    """Tests for ExcelExporter class."""

    def test_export(self, failed_result, tmp_path):
        output = tmp_path / "schedule.xlsx"
        ExcelExporter().export(failed_result, output)

        sheets = pd.read_excel(output, sheet_name=None)
        assert list(sheets) == ["Entries", "Unsatisfied", "Violations", "Summary"]
        assert len(sheets["Entries"]) == 15
        assert sheets["Unsatisfied"]["reason"].tolist() == ["no_eligible_teacher"]

    def test_empty_tables_keep_headers(self, solved_result, tmp_path):
        output = tmp_path / "schedule.xlsx"
        ExcelExporter().export(solved_result, output)

        unsatisfied = pd.read_excel(output, sheet_name="Unsatisfied")
        assert unsatisfied.empty
        assert list(unsatisfied.columns) == [
            "group_id", "subject_id", "units_still_needed", "reason",
        ]

    def test_summary_without_run_metadata(self, solved_result, tmp_path):
        output = tmp_path / "schedule.xlsx"
        ExcelExporter(include_run_metadata=False).export(solved_result, output)

        summary = pd.read_excel(output, sheet_name="Summary")
        metrics = summary["metric"].tolist()
        assert "generation_date" not in metrics
        assert "solver_time_seconds" not in metrics
        assert metrics[0] == "status"


class TestGetExporter:
    """Tests for get_exporter function."""

    @pytest.mark.parametrize(
        "format_type,cls",
        [("json", JSONExporter), ("csv", CSVExporter), ("excel", ExcelExporter)],
    )
    def test_known_formats(self, format_type, cls):
        assert isinstance(get_exporter(format_type), cls)

    def test_unknown_format(self):
        with pytest.raises(ValueError, match="Unsupported format"):
            get_exporter("pdf")
