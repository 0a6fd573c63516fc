"""Exception hierarchy for the capacity-expansion engine."""

from __future__ import annotations


class ExpansionError(Exception):
    """Base class for all capacity-expansion failures."""


class CatalogError(ExpansionError, ValueError):
    """A technology definition is missing fields or carries invalid values."""


class ModelBuildError(ExpansionError):
    """The LP could not be assembled (dangling column index, bad shapes)."""


class SolverNotReadyError(ExpansionError):
    """The shared solver has not been initialised yet.  Retry later."""


class SolverStatusError(ExpansionError):
    """The solver finished without an optimal solution.

    Parameters
    ----------
    status : str
        Human-readable solver model status (e.g. ``"Infeasible"``).
    """

    def __init__(self, status: str) -> None:
        self.status = status
        super().__init__(f"Solver did not find an optimal solution. Model status: {status}")
