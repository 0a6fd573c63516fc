"""Capacity-expansion LP formulation.

Builds a single-bus linear program that jointly sizes every enabled
technology and dispatches it hour by hour over a set of weighted
representative weeks.  The objective minimises total annualised cost:

* annualised fixed cost x capacity, per technology
* marginal cost x generation, weighted by the owning week
* a small cycling cost on storage charging
* a large but finite value of lost load on unserved energy

Columns (all >= 0):
    cap[k]           one per enabled technology (MW; storage: MWh of energy)
    gen[k, h]        one per enabled non-storage technology per hour
    charge[h], discharge[h], soc[h]   storage, when a storage tech is enabled
    unserved[h]      load shedding

Each column is given a fixed integer index when it is created and the
constraint matrix is emitted as (row, column, value) triplets, converted to
CSR for the solver.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray
from scipy import sparse

from .annualize import annualized_fixed_cost, fixed_capacity_mw, marginal_cost
from .catalog import TechnologyCatalog, TechnologyDefinition
from .errors import ModelBuildError
from .timeseries import RepresentativeWeek, Timeline, build_timeline

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

# Penalty for unserved energy ($/MWh).  Large enough that any real supply is
# cheaper, finite so the LP always stays bounded and feasible.
VALUE_OF_LOST_LOAD = 20_000_000.0
STORAGE_EFFICIENCY = 0.9
STORAGE_C_RATE = 1.0  # full charge or discharge within one hour
STORAGE_CYCLING_COST = 0.1  # $/MWh charged
AVAILABILITY_THRESHOLD = 1e-3

INF = np.inf

# Row labels, used for diagnostics and tests.
ROW_BALANCE = "balance"
ROW_CAPACITY = "capacity"
ROW_CHARGE_LIMIT = "charge_limit"
ROW_DISCHARGE_LIMIT = "discharge_limit"
ROW_SOC_LIMIT = "soc_limit"
ROW_SOC_DYNAMICS = "soc_dynamics"
ROW_SOC_WEEK_START = "soc_week_start"
ROW_FIXED_CAPACITY = "fixed_capacity"
ROW_MIN_RENEWABLES = "min_renewables"


class StorageBoundary(str, enum.Enum):
    """How state of charge is linked at the first hour of each week.

    ``RESET`` starts every week from an empty store; ``CYCLIC`` closes each
    week on itself (first hour follows the week's last hour).
    """

    RESET = "reset"
    CYCLIC = "cyclic"


@dataclass(frozen=True)
class ModelOptions:
    value_of_lost_load: float = VALUE_OF_LOST_LOAD
    storage_efficiency: float = STORAGE_EFFICIENCY
    storage_c_rate: float = STORAGE_C_RATE
    storage_cycling_cost: float = STORAGE_CYCLING_COST
    availability_threshold: float = AVAILABILITY_THRESHOLD
    storage_boundary: StorageBoundary = StorageBoundary.RESET

    def __post_init__(self) -> None:
        object.__setattr__(self, "storage_boundary", StorageBoundary(self.storage_boundary))
        if self.value_of_lost_load <= 0:
            raise ValueError(f"value_of_lost_load must be > 0, got {self.value_of_lost_load}")
        if not 0 < self.storage_efficiency <= 1:
            raise ValueError(
                f"storage_efficiency must be in (0, 1], got {self.storage_efficiency}"
            )
        if self.storage_c_rate <= 0:
            raise ValueError(f"storage_c_rate must be > 0, got {self.storage_c_rate}")


@dataclass
class VariableIndex:
    """Column indices of every variable family."""

    capacity: dict[str, int] = field(default_factory=dict)
    generation: dict[str, NDArray[np.int64]] = field(default_factory=dict)
    charge: NDArray[np.int64] | None = None
    discharge: NDArray[np.int64] | None = None
    soc: NDArray[np.int64] | None = None
    unserved: NDArray[np.int64] = field(default_factory=lambda: np.zeros(0, dtype=np.int64))
    n_cols: int = 0

    def allocate(self, count: int) -> NDArray[np.int64]:
        cols = np.arange(self.n_cols, self.n_cols + count, dtype=np.int64)
        self.n_cols += count
        return cols


@dataclass
class LinearProgram:
    """Solver-ready LP: ``min c'x  s.t.  row_lower <= A x <= row_upper``."""

    col_cost: NDArray[np.float64]
    col_lower: NDArray[np.float64]
    col_upper: NDArray[np.float64]
    matrix: sparse.csr_matrix
    row_lower: NDArray[np.float64]
    row_upper: NDArray[np.float64]
    row_kinds: list[str]
    index: VariableIndex
    timeline: Timeline
    generators: list[TechnologyDefinition]
    storage: TechnologyDefinition | None
    options: ModelOptions

    @property
    def n_cols(self) -> int:
        return len(self.col_cost)

    @property
    def n_rows(self) -> int:
        return len(self.row_lower)

    def rows_of_kind(self, kind: str) -> list[int]:
        return [r for r, k in enumerate(self.row_kinds) if k == kind]

    def technologies(self) -> list[TechnologyDefinition]:
        techs = list(self.generators)
        if self.storage is not None:
            techs.append(self.storage)
        return techs


class ModelBuilder:
    """Assembles a :class:`LinearProgram` from a catalog and weighted weeks.

    Parameters
    ----------
    catalog : TechnologyCatalog
        Per-request technology settings; only enabled entries are modelled.
    weeks : sequence of RepresentativeWeek
        Concatenated in order to form the hourly timeline.
    min_renewables : float
        Minimum renewable share in percent (0 disables the policy row).
    options : ModelOptions, optional
        Penalty, storage physics and boundary policy.
    """

    def __init__(
        self,
        catalog: TechnologyCatalog,
        weeks: Sequence[RepresentativeWeek],
        min_renewables: float = 0.0,
        options: ModelOptions | None = None,
    ) -> None:
        if not 0 <= min_renewables <= 100:
            raise ValueError(f"min_renewables must be in [0, 100], got {min_renewables}")
        self.catalog = catalog
        self.timeline = build_timeline(weeks)
        self.min_renewables = float(min_renewables)
        self.options = options or ModelOptions()

        self.generators = catalog.generators()
        self.storage = catalog.storage()
        for tech in catalog.ignored_storage():
            logger.warning(
                "Only one storage technology is modelled; ignoring %s (using %s)",
                tech.id, self.storage.id if self.storage else None,
            )

        self._index = VariableIndex()
        self._row_indices: list[int] = []
        self._col_indices: list[int] = []
        self._values: list[float] = []
        self._row_lower: list[float] = []
        self._row_upper: list[float] = []
        self._row_kinds: list[str] = []

    # ------------------------------------------------------------------
    # Row registration
    # ------------------------------------------------------------------

    def _add_row(
        self,
        coeffs: list[tuple[int, float]],
        lb: float,
        ub: float,
        kind: str,
    ) -> None:
        """Register one constraint row."""
        row = len(self._row_lower)
        for col, val in coeffs:
            self._row_indices.append(row)
            self._col_indices.append(int(col))
            self._values.append(float(val))
        self._row_lower.append(lb)
        self._row_upper.append(ub)
        self._row_kinds.append(kind)

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self) -> LinearProgram:
        tl = self.timeline
        T = tl.n_hours
        opts = self.options
        idx = self._index

        # ----- Column layout ------------------------------------------
        for tech in self.catalog.enabled():
            if tech.is_storage and tech is not self.storage:
                continue
            idx.capacity[tech.id] = int(idx.allocate(1)[0])
        for tech in self.generators:
            idx.generation[tech.id] = idx.allocate(T)
        if self.storage is not None:
            idx.charge = idx.allocate(T)
            idx.discharge = idx.allocate(T)
            idx.soc = idx.allocate(T)
        idx.unserved = idx.allocate(T)

        n_cols = idx.n_cols
        col_cost = np.zeros(n_cols, dtype=np.float64)
        col_lower = np.zeros(n_cols, dtype=np.float64)
        col_upper = np.full(n_cols, INF, dtype=np.float64)

        # ----- Objective ----------------------------------------------
        for tech_id, col in idx.capacity.items():
            col_cost[col] = annualized_fixed_cost(self.catalog[tech_id])
        for tech in self.generators:
            col_cost[idx.generation[tech.id]] = marginal_cost(tech) * tl.weight
        if idx.charge is not None:
            col_cost[idx.charge] = opts.storage_cycling_cost * tl.weight
        col_cost[idx.unserved] = opts.value_of_lost_load * tl.weight

        # ----- Hourly constraints -------------------------------------
        week_first = tl.week_first_hours()
        week_last = {int(s): int(e) - 1 for s, e in zip(tl.week_starts, tl.week_ends)}

        for h in range(T):
            self._add_hour(h, week_first, week_last)

        self._add_fixed_capacity_pins()
        self._add_min_renewables()

        # ----- Assemble -----------------------------------------------
        n_rows = len(self._row_lower)
        rows = np.asarray(self._row_indices, dtype=np.int64)
        cols = np.asarray(self._col_indices, dtype=np.int64)
        vals = np.asarray(self._values, dtype=np.float64)
        if cols.size and (cols.min() < 0 or cols.max() >= n_cols):
            raise ModelBuildError(
                f"Constraint references column outside [0, {n_cols}): "
                f"min={cols.min()}, max={cols.max()}"
            )
        matrix = sparse.coo_matrix((vals, (rows, cols)), shape=(n_rows, n_cols)).tocsr()

        lp = LinearProgram(
            col_cost=col_cost,
            col_lower=col_lower,
            col_upper=col_upper,
            matrix=matrix,
            row_lower=np.asarray(self._row_lower, dtype=np.float64),
            row_upper=np.asarray(self._row_upper, dtype=np.float64),
            row_kinds=list(self._row_kinds),
            index=idx,
            timeline=tl,
            generators=list(self.generators),
            storage=self.storage,
            options=opts,
        )
        logger.debug(
            "Built LP: %d hours, %d technologies, %d columns, %d rows, %d nonzeros",
            T, len(idx.capacity), lp.n_cols, lp.n_rows, matrix.nnz,
        )
        return lp

    def _add_hour(self, h: int, week_first: set[int], week_last: dict[int, int]) -> None:
        tl = self.timeline
        idx = self._index
        opts = self.options

        # ---- 1. Energy balance (equality) -----------------------------
        # sum gen[k, h] + discharge[h] - charge[h] + unserved[h] = demand[h]
        balance: list[tuple[int, float]] = [
            (idx.generation[tech.id][h], 1.0) for tech in self.generators
        ]
        if self.storage is not None:
            balance.append((idx.discharge[h], 1.0))
            balance.append((idx.charge[h], -1.0))
        balance.append((idx.unserved[h], 1.0))
        demand = float(tl.demand[h])
        self._add_row(balance, demand, demand, ROW_BALANCE)

        # ---- 2. Capacity link ----------------------------------------
        for tech in self.generators:
            gen_col = idx.generation[tech.id][h]
            cap_col = idx.capacity[tech.id]
            if tech.is_renewable:
                profile = (
                    float(tl.availability[tech.resource][h]) if tech.resource else 0.0
                )
                if profile > opts.availability_threshold:
                    coeffs = [(gen_col, 1.0), (cap_col, -profile)]
                else:
                    coeffs = [(gen_col, 1.0)]
            else:
                coeffs = [(gen_col, 1.0), (cap_col, -1.0)]
            self._add_row(coeffs, -INF, 0.0, ROW_CAPACITY)

        # ---- 3. Storage ----------------------------------------------
        if self.storage is None:
            return
        energy_col = idx.capacity[self.storage.id]
        ch, dis, soc = idx.charge[h], idx.discharge[h], idx.soc[h]
        c_rate = opts.storage_c_rate
        eta = opts.storage_efficiency

        self._add_row([(ch, 1.0), (energy_col, -c_rate)], -INF, 0.0, ROW_CHARGE_LIMIT)
        self._add_row([(dis, 1.0), (energy_col, -c_rate)], -INF, 0.0, ROW_DISCHARGE_LIMIT)
        self._add_row([(soc, 1.0), (energy_col, -1.0)], -INF, 0.0, ROW_SOC_LIMIT)

        # soc[h] = soc[h-1] + eta * charge[h] - discharge[h]
        dynamics: list[tuple[int, float]] = [(soc, 1.0), (ch, -eta), (dis, 1.0)]
        if h not in week_first:
            dynamics.append((idx.soc[h - 1], -1.0))
            self._add_row(dynamics, 0.0, 0.0, ROW_SOC_DYNAMICS)
            return

        if opts.storage_boundary is StorageBoundary.CYCLIC:
            last = week_last[h]
            if last != h:
                dynamics.append((idx.soc[last], -1.0))
        # RESET: the week starts from an empty store.
        self._add_row(dynamics, 0.0, 0.0, ROW_SOC_WEEK_START)

    def _add_fixed_capacity_pins(self) -> None:
        for tech_id, col in self._index.capacity.items():
            tech = self.catalog[tech_id]
            if tech.is_fixed:
                value = fixed_capacity_mw(tech)
                self._add_row([(col, 1.0)], value, value, ROW_FIXED_CAPACITY)

    def _add_min_renewables(self) -> None:
        """Cap weighted non-renewable output over the statistics hours."""
        if self.min_renewables <= 0:
            return
        restricted = [t for t in self.generators if t.counts_as_non_renewable]
        if not restricted:
            return

        tl = self.timeline
        stats_weight = tl.stats_weight()
        hours = np.flatnonzero(tl.in_stats)
        coeffs: list[tuple[int, float]] = []
        for tech in restricted:
            cols = self._index.generation[tech.id]
            coeffs.extend((cols[h], stats_weight[h]) for h in hours if stats_weight[h] != 0)
        if not coeffs:
            return

        weighted_demand = float(np.dot(stats_weight, tl.demand))
        limit = weighted_demand * (1.0 - self.min_renewables / 100.0)
        self._add_row(coeffs, -INF, limit, ROW_MIN_RENEWABLES)


def build_model(
    catalog: TechnologyCatalog,
    weeks: Sequence[RepresentativeWeek],
    min_renewables: float = 0.0,
    options: ModelOptions | None = None,
) -> LinearProgram:
    """Convenience wrapper around :class:`ModelBuilder`."""
    return ModelBuilder(catalog, weeks, min_renewables, options).build()
