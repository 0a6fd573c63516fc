"""Turn a solved capacity-expansion LP into reportable results.

The headline cost is recomputed from capacities and dispatch with the same
formula that feeds the per-technology breakdown, rather than copied from the
solver objective, so the two can never disagree.

Statistics (mix, emissions, demand, unserved energy, variable cost) are
weighted by week and only cover hours flagged ``include_in_stats``.  Fixed
cost always covers the full installed capacity.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

import numpy as np
from numpy.typing import NDArray

from .annualize import annualized_fixed_cost, marginal_cost
from .model_builder import LinearProgram
from .solver import SolveResult

# Served energy floor (MWh) for the LCOE division.
SERVED_ENERGY_EPSILON = 0.1
KG_PER_TONNE = 1000.0
# Tolerance below which curtailment is treated as solver noise.
CURTAILMENT_TOLERANCE = 1e-3


@dataclass
class HourlyDispatch:
    hour: int
    timestamp: str | None
    demand: float
    solar: float
    wind: float
    offshore: float
    weight: float
    include_in_stats: bool
    generation: dict[str, float] = field(default_factory=dict)
    battery_charge: float = 0.0
    battery_discharge: float = 0.0
    battery_soc: float = 0.0
    shortfall: float = 0.0
    curtailment: float = 0.0
    curtailment_by_tech: dict[str, float] = field(default_factory=dict)


@dataclass
class TechnologyCost:
    fixed: float = 0.0
    variable: float = 0.0
    total: float = 0.0
    lcoe_contribution: float = 0.0


@dataclass
class SimulationResult:
    hourly: list[HourlyDispatch] = field(default_factory=list)
    capacities: dict[str, float] = field(default_factory=dict)
    mix: dict[str, float] = field(default_factory=dict)
    cost_breakdown: dict[str, TechnologyCost] = field(default_factory=dict)
    total_cost: float = 0.0
    lcoe: float = 0.0
    total_co2: float = 0.0  # tonnes
    unserved_energy: float = 0.0
    annual_served: float = 0.0
    annual_demand: float = 0.0
    objective_value: float = 0.0
    solver_status: str = "not_solved"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def empty_result() -> SimulationResult:
    """All-zero result returned for empty input."""
    return SimulationResult(solver_status="empty")


def _values(sol: NDArray[np.float64], cols: NDArray[np.int64] | None) -> NDArray[np.float64]:
    """Column values clipped at zero (solver tolerance can go slightly negative)."""
    if cols is None:
        return np.zeros(0, dtype=np.float64)
    return np.maximum(sol[cols], 0.0)


def extract_results(lp: LinearProgram, solution: SolveResult) -> SimulationResult:
    """Build a :class:`SimulationResult` from an optimal solution of *lp*."""
    sol = solution.col_value
    tl = lp.timeline
    idx = lp.index
    opts = lp.options
    T = tl.n_hours
    stats_w = tl.stats_weight()

    capacities = {
        tech_id: max(float(sol[col]), 0.0) for tech_id, col in idx.capacity.items()
    }

    generation = {tech.id: _values(sol, idx.generation[tech.id]) for tech in lp.generators}
    has_storage = lp.storage is not None
    charge = _values(sol, idx.charge) if has_storage else np.zeros(T)
    discharge = _values(sol, idx.discharge) if has_storage else np.zeros(T)
    soc = _values(sol, idx.soc) if has_storage else np.zeros(T)
    unserved = _values(sol, idx.unserved)

    # ----- Curtailment (derived, renewables only) ---------------------
    curtailment: dict[str, NDArray[np.float64]] = {}
    for tech in lp.generators:
        if not tech.is_renewable:
            continue
        profile = tl.availability[tech.resource] if tech.resource else np.zeros(T)
        potential = capacities[tech.id] * profile
        spill = potential - generation[tech.id]
        curtailment[tech.id] = np.where(spill > CURTAILMENT_TOLERANCE, spill, 0.0)
    total_curtailment = (
        np.sum(list(curtailment.values()), axis=0) if curtailment else np.zeros(T)
    )

    # ----- Weighted statistics ----------------------------------------
    mix: dict[str, float] = {
        tech_id: float(np.dot(stats_w, gen)) for tech_id, gen in generation.items()
    }
    if has_storage:
        mix[lp.storage.id] = float(np.dot(stats_w, discharge))

    total_co2_kg = sum(
        mix[tech.id] * tech.emission_factor for tech in lp.generators
    )
    annual_demand = float(np.dot(stats_w, tl.demand))
    annual_unserved = float(np.dot(stats_w, unserved))
    annual_served = max(0.0, annual_demand - annual_unserved)

    # ----- Cost recomputation -----------------------------------------
    breakdown: dict[str, TechnologyCost] = {}
    for tech in lp.technologies():
        fixed = annualized_fixed_cost(tech) * capacities[tech.id]
        if tech.is_storage:
            variable = opts.storage_cycling_cost * float(np.dot(stats_w, charge))
        else:
            variable = marginal_cost(tech) * mix[tech.id]
        breakdown[tech.id] = TechnologyCost(fixed=fixed, variable=variable, total=fixed + variable)

    lost_load_cost = opts.value_of_lost_load * annual_unserved
    total_cost = sum(c.total for c in breakdown.values()) + lost_load_cost
    served_floor = max(SERVED_ENERGY_EPSILON, annual_served)
    for cost in breakdown.values():
        cost.lcoe_contribution = cost.total / served_floor

    # ----- Hourly detail ----------------------------------------------
    hourly: list[HourlyDispatch] = []
    for h, record in enumerate(tl.records):
        hourly.append(
            HourlyDispatch(
                hour=record.hour,
                timestamp=record.timestamp,
                demand=record.demand,
                solar=record.solar,
                wind=record.wind,
                offshore=record.offshore,
                weight=record.weight,
                include_in_stats=record.include_in_stats,
                generation={tech_id: float(gen[h]) for tech_id, gen in generation.items()},
                battery_charge=float(charge[h]),
                battery_discharge=float(discharge[h]),
                battery_soc=float(soc[h]),
                shortfall=float(unserved[h]),
                curtailment=float(total_curtailment[h]),
                curtailment_by_tech={k: float(v[h]) for k, v in curtailment.items()},
            )
        )

    return SimulationResult(
        hourly=hourly,
        capacities=capacities,
        mix=mix,
        cost_breakdown=breakdown,
        total_cost=total_cost,
        lcoe=total_cost / served_floor,
        total_co2=total_co2_kg / KG_PER_TONNE,
        unserved_energy=annual_unserved,
        annual_served=annual_served,
        annual_demand=annual_demand,
        objective_value=solution.objective_value,
        solver_status=solution.status,
    )
