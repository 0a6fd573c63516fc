"""LP solver adapter backed by HiGHS (``highspy``).

The optimiser only depends on the small :class:`LPSolver` protocol; the
concrete :class:`HighsSolver` is kept as a lazily-initialised process-wide
instance so the start-up cost is paid once.  Solves on the shared instance
are serialised with a lock and the model is cleared before and after every
solve, so nothing from one request survives into the next.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Protocol

import numpy as np
from numpy.typing import NDArray

from .errors import SolverNotReadyError, SolverStatusError
from .model_builder import LinearProgram

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SolveResult:
    """Primal solution of an optimally solved LP."""

    status: str
    col_value: NDArray[np.float64]
    objective_value: float
    solve_seconds: float = 0.0


class LPSolver(Protocol):
    def solve(self, lp: LinearProgram) -> SolveResult:
        """Return the optimal solution or raise :class:`SolverStatusError`."""
        ...


class HighsSolver:
    """Thin wrapper around a reusable ``highspy.Highs`` instance.

    Parameters
    ----------
    time_limit : float, optional
        Wall-clock limit per solve in seconds.  Hitting it surfaces as a
        non-optimal status.
    """

    def __init__(self, time_limit: float | None = None) -> None:
        self.time_limit = time_limit
        self._highs = None
        self._lock = threading.Lock()

    @property
    def ready(self) -> bool:
        return self._highs is not None

    def initialize(self) -> HighsSolver:
        """Create the underlying HiGHS instance (idempotent)."""
        with self._lock:
            if self._highs is not None:
                return self
            try:
                import highspy  # type: ignore[import-untyped]
            except ImportError as exc:
                raise ImportError(
                    "The 'highspy' package is required for capacity optimisation. "
                    "Install it with: pip install highspy"
                ) from exc

            h = highspy.Highs()
            h.silent()
            if self.time_limit is not None:
                h.setOptionValue("time_limit", float(self.time_limit))
            self._highs = h
            logger.info("HiGHS solver initialised (time_limit=%s)", self.time_limit)
        return self

    def solve(self, lp: LinearProgram) -> SolveResult:
        if self._highs is None:
            raise SolverNotReadyError("Solver not ready")

        import highspy  # type: ignore[import-untyped]

        with self._lock:
            h = self._highs
            h.clearModel()
            try:
                start = time.perf_counter()
                self._pass_model(h, highspy, lp)
                h.run()
                elapsed = time.perf_counter() - start

                model_status = h.getModelStatus()
                status_text = h.modelStatusToString(model_status)
                if model_status != highspy.HighsModelStatus.kOptimal:
                    logger.error("HiGHS finished with status %s", status_text)
                    raise SolverStatusError(status_text)

                col_value = np.array(h.getSolution().col_value, dtype=np.float64)
                objective = float(h.getInfo().objective_function_value)
            finally:
                h.clearModel()

        logger.info(
            "Solved LP with %d columns and %d rows in %.2fs (objective %.6g)",
            lp.n_cols, lp.n_rows, elapsed, objective,
        )
        return SolveResult(
            status=status_text,
            col_value=col_value,
            objective_value=objective,
            solve_seconds=elapsed,
        )

    @staticmethod
    def _pass_model(h, highspy, lp: LinearProgram) -> None:
        inf = highspy.kHighsInf

        col_lower = np.where(np.isinf(lp.col_lower), -inf, lp.col_lower)
        col_upper = np.where(np.isinf(lp.col_upper), inf, lp.col_upper)
        h.addVars(lp.n_cols, col_lower, col_upper)

        h.changeObjectiveSense(highspy.ObjSense.kMinimize)
        cost_idx = np.flatnonzero(lp.col_cost).astype(np.int32)
        if cost_idx.size:
            h.changeColsCost(
                int(cost_idx.size), cost_idx, lp.col_cost[cost_idx].astype(np.float64)
            )

        row_lower = np.where(np.isinf(lp.row_lower), -inf, lp.row_lower)
        row_upper = np.where(np.isinf(lp.row_upper), inf, lp.row_upper)
        matrix = lp.matrix
        indptr = matrix.indptr
        indices = matrix.indices.astype(np.int32)
        data = matrix.data.astype(np.float64)
        for r in range(lp.n_rows):
            s, e = int(indptr[r]), int(indptr[r + 1])
            h.addRow(
                float(row_lower[r]),
                float(row_upper[r]),
                e - s,
                indices[s:e],
                data[s:e],
            )


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------

_solver: HighsSolver | None = None
_solver_lock = threading.Lock()


def get_solver(time_limit: float | None = None) -> HighsSolver:
    """Return the shared solver, creating (but not initialising) it on first use."""
    global _solver
    with _solver_lock:
        if _solver is None:
            _solver = HighsSolver(time_limit=time_limit)
        return _solver


def initialize_solver(time_limit: float | None = None) -> HighsSolver:
    return get_solver(time_limit).initialize()


def require_ready_solver() -> HighsSolver:
    """Return the shared solver or raise the retryable not-ready error."""
    solver = get_solver()
    if not solver.ready:
        raise SolverNotReadyError("Solver not ready")
    return solver


def reset_solver() -> None:
    """Drop the shared instance (used on shutdown and in tests)."""
    global _solver
    with _solver_lock:
        _solver = None
