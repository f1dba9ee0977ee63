"""Export functionality for schedule results."""

import csv
import json
from abc import ABC, abstractmethod
from pathlib import Path

import pandas as pd
from openpyxl.styles import Font

from .scheduler.models import ScheduleResult
from .utils import format_time

FONT_HEADER = Font(bold=True)


def _entry_rows(result: ScheduleResult) -> list[dict]:
    return [
        {
            "group_id": entry.group_id,
            "subject_id": entry.subject_id,
            "teacher_id": entry.teacher_id,
            "day": entry.day.label,
            "start": format_time(entry.start),
            "end": format_time(entry.end),
        }
        for entry in result.entries
    ]


def _unsatisfied_rows(result: ScheduleResult) -> list[dict]:
    return [
        {
            "group_id": item.group_id,
            "subject_id": item.subject_id,
            "units_still_needed": item.units_still_needed,
            "reason": item.reason.value,
        }
        for item in result.unsatisfied
    ]


def _violation_rows(result: ScheduleResult) -> list[dict]:
    return [
        {
            "type": v.type.value,
            "message": v.message,
            "entries": "; ".join(map(str, v.entry_indices)),
            "group_id": v.group_id or "",
            "subject_id": v.subject_id or "",
            "teacher_id": v.teacher_id or "",
        }
        for v in result.violations
    ]


def _summary_rows(result: ScheduleResult, include_run_metadata: bool = True) -> list[dict]:
    stats = result.statistics
    rows = [
        {"metric": "status", "value": result.status.value},
        {"metric": "strategy", "value": stats.strategy},
        {"metric": "total_units", "value": stats.total_units},
        {"metric": "total_assigned", "value": stats.total_assigned},
        {"metric": "total_unsatisfied", "value": stats.total_unsatisfied},
        {"metric": "nodes_explored", "value": stats.nodes_explored},
        {"metric": "backtracks", "value": stats.backtracks},
    ]
    if include_run_metadata:
        rows.insert(1, {"metric": "generation_date", "value": result.generation_date})
        rows.append(
            {"metric": "solver_time_seconds", "value": round(stats.solver_time_seconds, 3)}
        )
    return rows


class BaseExporter(ABC):
    """Base class for exporters.

    With ``include_run_metadata=False`` the generation date and solver time
    are left out, so identical runs export identical files.
    """

    def __init__(self, include_run_metadata: bool = True):
        self.include_run_metadata = include_run_metadata

    @abstractmethod
    def export(self, result: ScheduleResult, output_path: str | Path) -> None:
        """Export schedule result to file.

        Args:
            result: ScheduleResult to export
            output_path: Path to output file or directory
        """
        pass


class JSONExporter(BaseExporter):
    """Export to JSON format."""

    def __init__(
        self,
        indent: int = 2,
        ensure_ascii: bool = False,
        include_run_metadata: bool = True,
    ):
        """Initialize exporter.

        Args:
            indent: JSON indentation level
            ensure_ascii: If False, allows non-ASCII characters
            include_run_metadata: Include generation date and solver time
        """
        super().__init__(include_run_metadata)
        self.indent = indent
        self.ensure_ascii = ensure_ascii

    def export(self, result: ScheduleResult, output_path: str | Path) -> None:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(
                result.to_dict(self.include_run_metadata),
                f,
                indent=self.indent,
                ensure_ascii=self.ensure_ascii,
            )


class CSVExporter(BaseExporter):
    """Export to CSV format (multiple files)."""

    def export(self, result: ScheduleResult, output_path: str | Path) -> None:
        """Export schedule result to CSV files.

        Creates up to four files:
        - entries.csv: Scheduled sessions
        - unsatisfied.csv: Pairs short of their weekly hours
        - violations.csv: Broken hard rules
        - summary.csv: Run summary

        Files for empty tables are skipped.

        Args:
            result: ScheduleResult to export
            output_path: Path to output directory
        """
        output_dir = Path(output_path)
        output_dir.mkdir(parents=True, exist_ok=True)

        self._write_csv(output_dir / "entries.csv", _entry_rows(result))
        self._write_csv(output_dir / "unsatisfied.csv", _unsatisfied_rows(result))
        self._write_csv(output_dir / "violations.csv", _violation_rows(result))
        self._write_csv(
            output_dir / "summary.csv", _summary_rows(result, self.include_run_metadata)
        )

    def _write_csv(self, output_path: Path, rows: list[dict]) -> None:
        if not rows:
            return

        with open(output_path, "w", encoding="utf-8", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=rows[0].keys())
            writer.writeheader()
            writer.writerows(rows)


class ExcelExporter(BaseExporter):
    """Export to Excel format (single workbook with multiple sheets)."""

    SHEETS = {
        "Entries": (_entry_rows, ["group_id", "subject_id", "teacher_id", "day", "start", "end"]),
        "Unsatisfied": (_unsatisfied_rows, ["group_id", "subject_id", "units_still_needed", "reason"]),
        "Violations": (
            _violation_rows,
            ["type", "message", "entries", "group_id", "subject_id", "teacher_id"],
        ),
        "Summary": (_summary_rows, ["metric", "value"]),
    }

    def export(self, result: ScheduleResult, output_path: str | Path) -> None:
        """Export schedule result to an Excel workbook with one sheet per table."""
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
            for sheet_name, (build_rows, columns) in self.SHEETS.items():
                if build_rows is _summary_rows:
                    rows = build_rows(result, self.include_run_metadata)
                else:
                    rows = build_rows(result)
                df = pd.DataFrame(rows) if rows else pd.DataFrame(columns=columns)
                df.to_excel(writer, sheet_name=sheet_name, index=False)
                self._style_sheet(writer.sheets[sheet_name], columns)

    @staticmethod
    def _style_sheet(ws, columns: list[str]) -> None:
        """Bold headers and widen columns to fit their content."""
        for cell in ws[1]:
            cell.font = FONT_HEADER
        for column_cells in ws.iter_cols(min_row=1, max_col=len(columns)):
            width = max(len(str(c.value)) if c.value is not None else 0 for c in column_cells)
            ws.column_dimensions[column_cells[0].column_letter].width = min(width + 2, 80)


def get_exporter(format_type: str, include_run_metadata: bool = True) -> BaseExporter:
    """Get appropriate exporter for format type.

    Args:
        format_type: Export format ('json', 'csv', 'excel')
        include_run_metadata: Include generation date and solver time

    Returns:
        Exporter instance

    Raises:
        ValueError: If format type is not supported
    """
    exporters = {
        "json": JSONExporter,
        "csv": CSVExporter,
        "excel": ExcelExporter,
    }

    if format_type not in exporters:
        raise ValueError(
            f"Unsupported format: {format_type}. Supported: {', '.join(exporters.keys())}"
        )

    return exporters[format_type](include_run_metadata=include_run_metadata)
