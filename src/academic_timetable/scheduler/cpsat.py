"""CP-SAT model of the same assignment problem.

Decision variables: x[(pair, candidate)] = 1 when one session of the pair is
held at the candidate's (cell, teacher).
"""

import logging
from collections import defaultdict

from ortools.sat.python import cp_model

from ..constants import CP_SAT_RANDOM_SEED, CP_SAT_WORKERS
from ..models import Cell
from .demand import Candidate, DemandPlan
from .models import ScheduleStatus
from .search import PairKey, SearchOutcome

logger = logging.getLogger(__name__)


class CPSATSearch:
    """Solves a demand plan with OR-Tools CP-SAT.

    Runs single-worker with a fixed seed so identical input gives
    identical output.
    """

    def __init__(self, plan: DemandPlan, time_limit: float):
        self.plan = plan
        self.time_limit = time_limit

        self.model = cp_model.CpModel()
        self.x: dict[tuple[PairKey, Candidate], cp_model.IntVar] = {}

    def build(self) -> cp_model.CpModel:
        """Create variables and hard constraints."""
        group_cell_vars: dict[tuple[str, Cell], list] = defaultdict(list)
        teacher_cell_vars: dict[tuple[str, Cell], list] = defaultdict(list)
        optional_vars: list = []

        for pair in self.plan.pairs:
            pair_vars = []
            for candidate in pair.domain:
                cell, teacher_id = candidate
                var = self.model.NewBoolVar(
                    f"x_{pair.group_id}_{pair.subject_id}_{cell.day.label}_{cell.hour}_{teacher_id}"
                )
                self.x[(pair.key, candidate)] = var
                pair_vars.append(var)
                group_cell_vars[(pair.group_id, cell)].append(var)
                teacher_cell_vars[(teacher_id, cell)].append(var)

            if pair.key in self.plan.best_effort:
                self.model.Add(sum(pair_vars) <= pair.hours)
                optional_vars.extend(pair_vars)
            else:
                # Exact weekly hours
                self.model.Add(sum(pair_vars) == pair.hours)

        # A group attends one class per cell
        for var_list in group_cell_vars.values():
            if len(var_list) > 1:
                self.model.AddAtMostOne(var_list)

        # A teacher teaches one class per cell
        for var_list in teacher_cell_vars.values():
            if len(var_list) > 1:
                self.model.AddAtMostOne(var_list)

        # Over-capacity groups: place as many of their sessions as fit
        if optional_vars:
            self.model.Maximize(sum(optional_vars))

        return self.model

    def run(self) -> SearchOutcome:
        """Build, solve and map the solver status onto a search outcome."""
        if not self.plan.pairs:
            return SearchOutcome(status=ScheduleStatus.SOLVED)

        self.build()

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = self.time_limit
        solver.parameters.num_workers = CP_SAT_WORKERS
        solver.parameters.random_seed = CP_SAT_RANDOM_SEED
        solver.parameters.log_search_progress = False

        logger.info(f"Starting CP-SAT solver with {len(self.x)} variables...")
        status = solver.Solve(self.model)

        outcome = SearchOutcome(
            status=ScheduleStatus.BUDGET_EXCEEDED,
            nodes=solver.NumBranches(),
            backtracks=solver.NumConflicts(),
            elapsed_seconds=solver.WallTime(),
        )

        if status in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            logger.info("CP-SAT found a feasible schedule")
            outcome.status = ScheduleStatus.SOLVED
            outcome.assignments = sorted(
                key for key, var in self.x.items() if solver.Value(var) == 1
            )
        elif status == cp_model.INFEASIBLE:
            logger.warning("CP-SAT proved the problem infeasible")
            outcome.status = ScheduleStatus.INFEASIBLE
        else:
            logger.warning(f"CP-SAT returned status: {solver.StatusName(status)}")

        return outcome
