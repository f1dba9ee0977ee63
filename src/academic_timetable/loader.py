"""Loading entity snapshots and external schedules from JSON files."""

import json
import logging
from pathlib import Path
from typing import Any

from .exceptions import InvalidEntityError
from .models import EntitySnapshot, ScheduleEntry

logger = logging.getLogger(__name__)


def _read_json(path: str | Path) -> Any:
    with open(path, encoding="utf-8") as f:
        return json.load(f)


def load_snapshot(path: str | Path) -> EntitySnapshot:
    """Load an entity snapshot.

    Expected shape:
        {"degrees": [...], "shifts": [...], "teachers": [...],
         "subjects": [...], "groups": [...]}

    Raises:
        TimetableError: If the entities are structurally invalid
    """
    data = _read_json(path)
    if not isinstance(data, dict):
        raise InvalidEntityError(f"entity file must contain a JSON object: {path}")

    snapshot = EntitySnapshot.from_dict(data)
    logger.info(
        f"Loaded {len(snapshot.groups)} groups, {len(snapshot.subjects)} subjects, "
        f"{len(snapshot.teachers)} teachers from {path}"
    )
    return snapshot


def load_schedule(path: str | Path) -> list[ScheduleEntry]:
    """Load schedule entries.

    Accepts a bare JSON array of entries (the shape external generators
    return) or an object with an "entries" key (the shape this package
    exports).
    """
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("entries", [])
    if not isinstance(data, list):
        raise InvalidEntityError(f"schedule file must contain a list of entries: {path}")

    for position, item in enumerate(data):
        if not isinstance(item, dict):
            raise InvalidEntityError(f"schedule entry {position} is not an object: {item!r}")

    entries = [ScheduleEntry.from_dict(item) for item in data]
    logger.info(f"Loaded {len(entries)} schedule entries from {path}")
    return entries
