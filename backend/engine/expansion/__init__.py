"""Least-cost capacity expansion on a single aggregate bus.

* **annualize** -- capital recovery factor, fixed and marginal costs.
* **catalog** -- immutable per-request technology catalog.
* **model_builder** -- sparse LP formulation over weighted weeks.
* **solver** -- HiGHS adapter and shared instance.
* **results** -- dispatch, capacities, mix, emissions and cost accounting.
"""

from .annualize import (
    annualized_fixed_cost,
    capacity_unit,
    capital_recovery_factor,
    marginal_cost,
)
from .catalog import (
    DEFAULT_TECHNOLOGIES,
    TechCategory,
    TechnologyCatalog,
    TechnologyDefinition,
    apply_cost_projection,
    default_catalog,
)
from .errors import (
    CatalogError,
    ExpansionError,
    ModelBuildError,
    SolverNotReadyError,
    SolverStatusError,
)
from .model_builder import LinearProgram, ModelBuilder, ModelOptions, StorageBoundary, build_model
from .optimizer import optimize_capacity
from .results import SimulationResult, empty_result, extract_results
from .solver import HighsSolver, get_solver, initialize_solver, require_ready_solver, reset_solver
from .timeseries import HOURS_PER_WEEK, HourlyRecord, RepresentativeWeek, make_week

__all__ = [
    "annualized_fixed_cost",
    "capacity_unit",
    "capital_recovery_factor",
    "marginal_cost",
    "DEFAULT_TECHNOLOGIES",
    "TechCategory",
    "TechnologyCatalog",
    "TechnologyDefinition",
    "apply_cost_projection",
    "default_catalog",
    "CatalogError",
    "ExpansionError",
    "ModelBuildError",
    "SolverNotReadyError",
    "SolverStatusError",
    "LinearProgram",
    "ModelBuilder",
    "ModelOptions",
    "StorageBoundary",
    "build_model",
    "optimize_capacity",
    "SimulationResult",
    "empty_result",
    "extract_results",
    "HighsSolver",
    "get_solver",
    "initialize_solver",
    "require_ready_solver",
    "reset_solver",
    "HOURS_PER_WEEK",
    "HourlyRecord",
    "RepresentativeWeek",
    "make_week",
]
