"""Backtracking search with forward checking.

Variables are demand units, values are (cell, teacher) candidates.

- The next pair to place is picked by minimum remaining values, ties broken
  by fewest eligible teachers, narrowest shift window, then ids.
- Units of one (group, subject) pair are interchangeable, so they are placed
  in sequence and each one lands strictly after its predecessor.
- Candidates are tried in (day, hour, teacher id) order, which makes the
  first schedule found deterministic.
- After each placement the cell is pruned from every pending pair of the same
  group, and the (cell, teacher) candidate from every pending pair that can
  use the same teacher. A pair left with fewer distinct cells than units it
  still needs, or a group left with fewer cells than hours, rejects the
  placement.
- Pairs of over-capacity groups are searched on a best-effort basis: after
  their real candidates, the remaining units may be left unplaced, and they
  never make a placement fail.
"""

import logging
import time
from dataclasses import dataclass, field

from .conflicts import OccupancyTracker
from .demand import Candidate, DemandPair, DemandPlan
from .models import ScheduleStatus, UnitState

logger = logging.getLogger(__name__)

PairKey = tuple[str, str]

# How often (in nodes) the wall clock is checked
CLOCK_CHECK_INTERVAL = 256

# Leaves the remaining units of a best-effort pair unplaced
SKIP = Candidate(None, None)


@dataclass
class SearchOutcome:
    """What a search run produced.

    ``assignments`` is the full assignment when solved, otherwise the
    deepest partial assignment reached.
    """

    status: ScheduleStatus
    assignments: list[tuple[PairKey, Candidate]] = field(default_factory=list)
    nodes: int = 0
    backtracks: int = 0
    elapsed_seconds: float = 0.0


@dataclass
class _Frame:
    """One level of the search stack: a pair and the candidates left to try."""

    pair: PairKey
    candidates: list[Candidate]
    index: int = 0
    current: Candidate | None = None
    trail_mark: int = 0
    skipped: int = 0


class BacktrackingSearch:
    """Chronological backtracking over a demand plan.

    The instance owns all scratch state; build a new one per run.
    """

    def __init__(
        self,
        plan: DemandPlan,
        node_limit: int,
        time_limit: float,
    ):
        self.node_limit = node_limit
        self.time_limit = time_limit

        self._pairs: dict[PairKey, DemandPair] = {p.key: p for p in plan.pairs}
        self._best_effort: set[PairKey] = set(plan.best_effort)
        self._remaining: dict[PairKey, int] = {p.key: p.hours for p in plan.pairs}
        self._live: dict[PairKey, list[Candidate]] = {p.key: list(p.domain) for p in plan.pairs}
        self._static_rank: dict[PairKey, tuple] = {
            p.key: (len(p.eligible_teacher_ids), p.window_size, p.group_id, p.subject_id)
            for p in plan.pairs
        }
        self._unit_states: dict[tuple[PairKey, int], UnitState] = {
            (p.key, seq): UnitState.UNASSIGNED for p in plan.pairs for seq in range(p.hours)
        }

        self._pairs_by_group: dict[str, list[PairKey]] = {}
        self._pairs_by_teacher: dict[str, list[PairKey]] = {}
        for pair in plan.pairs:
            self._pairs_by_group.setdefault(pair.group_id, []).append(pair.key)
            for teacher_id in pair.eligible_teacher_ids:
                self._pairs_by_teacher.setdefault(teacher_id, []).append(pair.key)

        self._tracker = OccupancyTracker()
        # (pair, previous live domain) entries, undone in reverse order
        self._trail: list[tuple[PairKey, list[Candidate]]] = []
        self._total_remaining = sum(self._remaining.values())

        self._nodes = 0
        self._backtracks = 0
        self._started = 0.0

    def run(self) -> SearchOutcome:
        """Search until solved, exhausted, or out of budget."""
        self._started = time.perf_counter()
        frames: list[_Frame] = []
        best: list[tuple[PairKey, Candidate]] = []
        status = ScheduleStatus.RUNNING

        logger.debug(f"Starting search over {self._total_remaining} units")

        while status == ScheduleStatus.RUNNING:
            if self._total_remaining == 0:
                status = ScheduleStatus.SOLVED
                break

            pair_key = self._select_pair()
            candidates = list(self._live[pair_key])
            if pair_key in self._best_effort:
                candidates.append(SKIP)
            frames.append(_Frame(pair=pair_key, candidates=candidates))

            # Advance: find the next placement that survives forward checking
            while True:
                if not frames:
                    status = ScheduleStatus.INFEASIBLE
                    break

                frame = frames[-1]
                if frame.current is not None:
                    self._undo(frame)

                if frame.index >= len(frame.candidates):
                    frames.pop()
                    self._backtracks += 1
                    continue

                if self._budget_exhausted():
                    status = ScheduleStatus.BUDGET_EXCEEDED
                    break

                candidate = frame.candidates[frame.index]
                frame.index += 1
                self._nodes += 1

                if self._assign(frame, candidate):
                    placed = self._placements(frames)
                    if len(placed) > len(best):
                        best = placed
                    break

        elapsed = time.perf_counter() - self._started
        if status == ScheduleStatus.SOLVED:
            best = self._placements(frames)

        logger.info(
            f"Search finished: {status.value} after {self._nodes} nodes, "
            f"{self._backtracks} backtracks, {elapsed:.3f}s"
        )
        return SearchOutcome(
            status=status,
            assignments=best,
            nodes=self._nodes,
            backtracks=self._backtracks,
            elapsed_seconds=elapsed,
        )

    def unit_state(self, pair: PairKey, sequence: int) -> UnitState:
        return self._unit_states[(pair, sequence)]

    @staticmethod
    def _placements(frames: list[_Frame]) -> list[tuple[PairKey, Candidate]]:
        return [(f.pair, f.current) for f in frames if f.current is not SKIP]

    def _budget_exhausted(self) -> bool:
        if self._nodes >= self.node_limit:
            return True
        if self._nodes % CLOCK_CHECK_INTERVAL == 0:
            return time.perf_counter() - self._started > self.time_limit
        return False

    def _select_pair(self) -> PairKey:
        """Pending pair with the fewest live candidates."""
        pending = (key for key, left in self._remaining.items() if left > 0)
        return min(pending, key=lambda key: (len(self._live[key]), self._static_rank[key]))

    def _assign(self, frame: _Frame, candidate: Candidate) -> bool:
        """Place the next unit of the frame's pair; False if forward checking fails.

        Whatever the outcome, the placement stays recorded on the frame so
        the caller undoes it before trying another candidate.
        """
        key = frame.pair
        pair = self._pairs[key]

        if candidate is SKIP:
            frame.current = candidate
            frame.trail_mark = len(self._trail)
            frame.skipped = self._remaining[key]
            self._trail.append((key, self._live[key]))
            self._live[key] = []
            self._remaining[key] = 0
            self._total_remaining -= frame.skipped
            return True

        cell, teacher_id = candidate
        sequence = pair.hours - self._remaining[key]

        frame.current = candidate
        frame.trail_mark = len(self._trail)
        self._unit_states[(key, sequence)] = UnitState.TENTATIVE

        self._tracker.reserve(teacher_id, pair.group_id, cell)
        self._remaining[key] -= 1
        self._total_remaining -= 1

        # Next sibling must land strictly after this cell
        self._trail.append((key, self._live[key]))
        if self._remaining[key] > 0:
            self._live[key] = [
                c for c in pair.domain
                if c.cell > cell
                and self._tracker.is_slot_available(c.teacher_id, pair.group_id, c.cell)
            ]
            if not self._is_viable(key):
                return False
        else:
            self._live[key] = []

        same_group = set(self._pairs_by_group.get(pair.group_id, ()))
        affected = same_group | set(self._pairs_by_teacher.get(teacher_id, ()))
        affected.discard(key)

        for other in sorted(affected):
            if self._remaining[other] == 0:
                continue
            old = self._live[other]
            if other in same_group:
                new = [c for c in old if c.cell != cell]
            else:
                new = [c for c in old if c != candidate]
            if len(new) != len(old):
                self._trail.append((other, old))
                self._live[other] = new
            if not self._is_viable(other):
                return False

        if not self._is_group_viable(pair.group_id):
            return False

        self._unit_states[(key, sequence)] = UnitState.COMMITTED
        return True

    def _undo(self, frame: _Frame) -> None:
        """Revert the frame's current placement and all pruning it caused."""
        key = frame.pair
        pair = self._pairs[key]

        while len(self._trail) > frame.trail_mark:
            other, old = self._trail.pop()
            self._live[other] = old

        if frame.current is SKIP:
            self._remaining[key] += frame.skipped
            self._total_remaining += frame.skipped
            frame.skipped = 0
            frame.current = None
            return

        cell, teacher_id = frame.current
        self._tracker.release(teacher_id, pair.group_id, cell)
        self._remaining[key] += 1
        self._total_remaining += 1

        sequence = pair.hours - self._remaining[key]
        self._unit_states[(key, sequence)] = UnitState.UNASSIGNED
        frame.current = None

    def _is_viable(self, key: PairKey) -> bool:
        """A pending pair needs at least as many distinct cells as units left."""
        needed = self._remaining[key]
        if needed == 0 or key in self._best_effort:
            return True
        live = self._live[key]
        if len(live) < needed:
            return False
        return len({c.cell for c in live}) >= needed

    def _is_group_viable(self, group_id: str) -> bool:
        """All pending units of a group need distinct cells (best-effort pairs excepted)."""
        needed = 0
        cells: set = set()
        for key in self._pairs_by_group.get(group_id, ()):
            if self._remaining[key] > 0 and key not in self._best_effort:
                needed += self._remaining[key]
                cells.update(c.cell for c in self._live[key])
        return len(cells) >= needed
