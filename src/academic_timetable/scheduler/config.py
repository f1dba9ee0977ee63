"""Scheduler configuration."""

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Self

from ..constants import DEFAULT_NODE_LIMIT, DEFAULT_TIME_LIMIT
from ..exceptions import TimetableError


class SolverStrategy(str, Enum):
    """Search strategy used to build a schedule."""

    BACKTRACKING = "backtracking"
    CP_SAT = "cp-sat"


@dataclass(frozen=True)
class SchedulerConfig:
    """Settings for one scheduler instance.

    Attributes:
        strategy: Search strategy
        node_limit: Maximum search nodes before the run ends as budget exceeded
        time_limit: Maximum wall-clock seconds for the search
        validate_output: Re-check solved schedules with the validator
    """

    strategy: SolverStrategy = SolverStrategy.BACKTRACKING
    node_limit: int = DEFAULT_NODE_LIMIT
    time_limit: float = DEFAULT_TIME_LIMIT
    validate_output: bool = True

    def __post_init__(self) -> None:
        if self.node_limit < 1:
            raise TimetableError(f"node_limit must be positive, got {self.node_limit}")
        if self.time_limit <= 0:
            raise TimetableError(f"time_limit must be positive, got {self.time_limit}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Self:
        """Create a config from a dictionary; missing keys keep their defaults."""
        try:
            strategy = SolverStrategy(data.get("strategy", SolverStrategy.BACKTRACKING.value))
        except ValueError as e:
            raise TimetableError(f"Unknown solver strategy: {data.get('strategy')!r}") from e
        return cls(
            strategy=strategy,
            node_limit=int(data.get("node_limit", DEFAULT_NODE_LIMIT)),
            time_limit=float(data.get("time_limit", DEFAULT_TIME_LIMIT)),
            validate_output=bool(data.get("validate_output", True)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "node_limit": self.node_limit,
            "time_limit": self.time_limit,
            "validate_output": self.validate_output,
        }


def load_config(path: Path | None) -> SchedulerConfig:
    """Load scheduler settings from a JSON file.

    Returns the default config when no path is given or the file does not exist.
    """
    if path is None or not Path(path).exists():
        return SchedulerConfig()

    with open(path, encoding="utf-8") as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise TimetableError(f"Scheduler config must be a JSON object: {path}")
    return SchedulerConfig.from_dict(data)
