"""End-to-end capacity optimisation: build the LP, solve it, extract results."""

from __future__ import annotations

import logging
import time
from collections.abc import Sequence

from .catalog import TechnologyCatalog
from .model_builder import ModelOptions, build_model
from .results import SimulationResult, empty_result, extract_results
from .solver import LPSolver, require_ready_solver
from .timeseries import RepresentativeWeek

logger = logging.getLogger(__name__)


def optimize_capacity(
    catalog: TechnologyCatalog,
    weeks: Sequence[RepresentativeWeek] | None,
    min_renewables: float = 0.0,
    options: ModelOptions | None = None,
    solver: LPSolver | None = None,
) -> SimulationResult:
    """Find the least-cost capacity mix and hourly dispatch.

    Parameters
    ----------
    catalog : TechnologyCatalog
        Technology economics and enabled/fixed flags for this request.
    weeks : sequence of RepresentativeWeek
        Weighted representative weeks, in timeline order.  Empty or missing
        input yields an all-zero result without invoking the solver.
    min_renewables : float
        Minimum renewable share of weighted demand, in percent.
    options : ModelOptions, optional
        Lost-load penalty, storage physics and week-boundary policy.
    solver : LPSolver, optional
        Defaults to the shared HiGHS instance; raises
        :class:`SolverNotReadyError` if it has not been initialised.

    Returns
    -------
    SimulationResult

    Raises
    ------
    ValueError
        If *min_renewables* is outside [0, 100].
    SolverStatusError
        If the solve ends infeasible, unbounded or time-limited.
    """
    if not 0 <= min_renewables <= 100:
        raise ValueError(f"min_renewables must be in [0, 100], got {min_renewables}")

    if not weeks or not any(len(w) for w in weeks):
        logger.info("No hourly data supplied; returning empty result")
        return empty_result()

    if solver is None:
        solver = require_ready_solver()

    start = time.perf_counter()
    lp = build_model(catalog, weeks, min_renewables, options)
    solution = solver.solve(lp)
    result = extract_results(lp, solution)

    logger.info(
        "Optimised %d technologies over %d hours in %.2fs: cost=%.4g lcoe=%.2f unserved=%.1f",
        len(lp.index.capacity), lp.timeline.n_hours, time.perf_counter() - start,
        result.total_cost, result.lcoe, result.unserved_energy,
    )
    return result
