"""Tests for engine.expansion.optimizer: end-to-end solves with HiGHS."""

from __future__ import annotations

import numpy as np
import pytest

from engine.expansion.catalog import TechnologyCatalog
from engine.expansion.errors import SolverNotReadyError, SolverStatusError
from engine.expansion.model_builder import ModelOptions, StorageBoundary, build_model
from engine.expansion.optimizer import optimize_capacity
from engine.expansion.results import SERVED_ENERGY_EPSILON
from engine.expansion.solver import HighsSolver, get_solver, reset_solver
from engine.expansion.timeseries import HOURS_PER_WEEK, RepresentativeWeek

VOLL = 20_000_000.0


@pytest.fixture(scope="module")
def solver() -> HighsSolver:
    return HighsSolver().initialize()


def _assert_balanced(result, rel: float = 1e-6) -> None:
    for h in result.hourly:
        supply = sum(h.generation.values()) + h.battery_discharge - h.battery_charge + h.shortfall
        assert supply == pytest.approx(h.demand, rel=rel, abs=1e-3), f"hour {h.hour}"


# ======================================================================
# Reference scenarios
# ======================================================================


class TestReferenceScenarios:
    """Closed-form cases."""

    def test_flat_demand_single_dispatchable(self, cheap_gas_catalog, flat_week, solver):
        """Capacity equals peak demand, nothing unserved, LCOE ~ marginal cost."""
        result = optimize_capacity(cheap_gas_catalog, [flat_week], solver=solver)

        assert result.solver_status == "Optimal"
        assert result.capacities["GAS"] == pytest.approx(30_000.0, rel=1e-6)
        assert result.unserved_energy == pytest.approx(0.0, abs=1e-3)
        assert result.annual_demand == pytest.approx(30_000.0 * HOURS_PER_WEEK)
        assert result.lcoe == pytest.approx(50.0, rel=1e-3)
        assert result.mix["GAS"] == pytest.approx(30_000.0 * HOURS_PER_WEEK, rel=1e-6)
        # 400 kg/MWh reported in tonnes
        assert result.total_co2 == pytest.approx(30_000.0 * HOURS_PER_WEEK * 0.4, rel=1e-6)
        _assert_balanced(result)

    def test_no_technologies_sheds_everything(self, flat_week, solver):
        """All demand is unserved, nothing is served, LCOE stays finite."""
        result = optimize_capacity(TechnologyCatalog(), [flat_week], solver=solver)

        total_demand = 30_000.0 * HOURS_PER_WEEK
        assert result.unserved_energy == pytest.approx(total_demand, rel=1e-9)
        assert result.annual_served == pytest.approx(0.0, abs=1e-6)
        assert result.total_cost == pytest.approx(VOLL * total_demand, rel=1e-9)
        assert np.isfinite(result.lcoe)
        assert result.lcoe == pytest.approx(result.total_cost / SERVED_ENERGY_EPSILON)
        assert result.capacities == {}


# ======================================================================
# Physical invariants
# ======================================================================


class TestInvariants:
    """Balance, curtailment, capacity and storage bounds."""

    def test_hourly_balance(self, mixed_catalog, short_week, solver):
        result = optimize_capacity(mixed_catalog, [short_week], solver=solver)
        _assert_balanced(result)

    def test_generation_within_capacity(self, mixed_catalog, short_week, solver):
        result = optimize_capacity(mixed_catalog, [short_week], solver=solver)
        tol = 1e-6 * max(result.capacities.values(), default=1.0) + 1e-6
        for h in result.hourly:
            assert h.generation["GAS_CCGT"] <= result.capacities["GAS_CCGT"] + tol
            assert h.generation["SOLAR"] <= result.capacities["SOLAR"] * h.solar + tol
            assert h.generation["WIND"] <= result.capacities["WIND"] * h.wind + tol
            assert h.battery_soc <= result.capacities["BATTERY"] + tol
            assert h.battery_charge <= result.capacities["BATTERY"] + tol

    def test_curtailment_matches_unused_potential(self, mixed_catalog, short_week, solver):
        result = optimize_capacity(mixed_catalog, [short_week], solver=solver)
        for h in result.hourly:
            for tech_id, resource in (("SOLAR", h.solar), ("WIND", h.wind)):
                potential = result.capacities[tech_id] * resource
                spill = potential - h.generation[tech_id]
                expected = spill if spill > 1e-3 else 0.0
                assert h.curtailment_by_tech[tech_id] == pytest.approx(expected, abs=1e-6)
                assert h.curtailment_by_tech[tech_id] >= 0.0
            assert h.curtailment == pytest.approx(sum(h.curtailment_by_tech.values()))

    def test_outputs_non_negative(self, mixed_catalog, short_week, solver):
        result = optimize_capacity(mixed_catalog, [short_week], solver=solver)
        assert all(v >= 0 for v in result.capacities.values())
        for h in result.hourly:
            assert all(v >= 0 for v in h.generation.values())
            assert h.battery_charge >= 0 and h.battery_discharge >= 0 and h.shortfall >= 0

    def test_fixed_capacity_is_exact(self, mixed_techs, short_week, solver):
        mixed_techs["GAS_OCGT"].update(is_fixed=True, fixed_capacity=0.25)
        catalog = TechnologyCatalog.from_dict(mixed_techs)
        result = optimize_capacity(catalog, [short_week], solver=solver)
        assert result.capacities["GAS_OCGT"] == pytest.approx(250.0, abs=1e-6)

    def test_min_renewables_respected(self, mixed_catalog, short_week, solver):
        result = optimize_capacity(mixed_catalog, [short_week], min_renewables=60, solver=solver)
        thermal = result.mix["GAS_CCGT"] + result.mix["GAS_OCGT"]
        assert thermal <= 0.4 * result.annual_demand * (1 + 1e-6) + 1e-3

    def test_min_renewables_out_of_range(self, mixed_catalog, short_week, solver):
        with pytest.raises(ValueError, match="min_renewables"):
            optimize_capacity(mixed_catalog, [short_week], min_renewables=120, solver=solver)


# ======================================================================
# Statistics and costs
# ======================================================================


class TestStatistics:
    """Weighted statistics and cost accounting."""

    def test_total_cost_matches_objective(self, mixed_catalog, short_week, solver):
        """With every hour in statistics the recomputed cost equals the objective."""
        result = optimize_capacity(mixed_catalog, [short_week], solver=solver)
        assert result.total_cost == pytest.approx(result.objective_value, rel=1e-6)

    def test_breakdown_sums_to_total(self, mixed_catalog, short_week, solver):
        result = optimize_capacity(mixed_catalog, [short_week], solver=solver)
        lost_load = VOLL * result.unserved_energy
        parts = sum(c.total for c in result.cost_breakdown.values())
        assert parts + lost_load == pytest.approx(result.total_cost, rel=1e-9)
        assert sum(c.lcoe_contribution for c in result.cost_breakdown.values()) == pytest.approx(
            parts / max(SERVED_ENERGY_EPSILON, result.annual_served), rel=1e-9
        )

    def test_stress_week_excluded_from_statistics(self, mixed_catalog, two_weeks, solver):
        result = optimize_capacity(mixed_catalog, two_weeks, solver=solver)
        assert result.annual_demand == pytest.approx(24 * 1000.0 * 10.0)
        assert len(result.hourly) == 48
        assert not result.hourly[30].include_in_stats

    def test_week_weights_scale_statistics(self, cheap_gas_catalog, flat_week, solver):
        """The owning week's weight applies even when its records carry the default."""
        heavy = RepresentativeWeek(records=flat_week.records, weight=3.0)
        assert all(r.weight == 1.0 for r in heavy.records)
        single = optimize_capacity(cheap_gas_catalog, [flat_week], solver=solver)
        tripled = optimize_capacity(cheap_gas_catalog, [heavy], solver=solver)
        assert tripled.annual_demand == pytest.approx(3 * single.annual_demand)
        assert tripled.capacities["GAS"] == pytest.approx(single.capacities["GAS"], rel=1e-6)

    def test_week_stats_flag_overrides_records(self, cheap_gas_catalog, flat_week, solver):
        hidden = RepresentativeWeek(records=flat_week.records, include_in_stats=False)
        result = optimize_capacity(cheap_gas_catalog, [hidden], solver=solver)
        assert result.annual_demand == 0.0
        assert result.total_co2 == 0.0
        assert not any(h.include_in_stats for h in result.hourly)
        assert result.capacities["GAS"] == pytest.approx(30_000.0, rel=1e-6)


# ======================================================================
# Comparative properties
# ======================================================================


class TestComparative:
    """Order independence, monotonicity, determinism."""

    def test_order_independence(self, mixed_techs, short_week, solver):
        forward = TechnologyCatalog.from_dict(mixed_techs)
        backward = TechnologyCatalog.from_dict(dict(reversed(list(mixed_techs.items()))))
        a = optimize_capacity(forward, [short_week], solver=solver)
        b = optimize_capacity(backward, [short_week], solver=solver)
        assert a.total_cost == pytest.approx(b.total_cost, rel=1e-9)
        for tech_id, cap in a.capacities.items():
            assert b.capacities[tech_id] == pytest.approx(cap, rel=1e-6, abs=1e-6)

    def test_cost_monotone_in_fuel_cost(self, mixed_catalog, short_week, solver):
        base = optimize_capacity(mixed_catalog, [short_week], solver=solver)
        dearer = mixed_catalog.with_overrides("GAS_CCGT", fuel_cost=150)
        result = optimize_capacity(dearer, [short_week], solver=solver)
        assert result.total_cost >= base.total_cost * (1 - 1e-9)
        assert result.mix["GAS_CCGT"] <= base.mix["GAS_CCGT"] * (1 + 1e-6) + 1e-3

    def test_cost_monotone_in_capex(self, mixed_catalog, short_week, solver):
        base = optimize_capacity(mixed_catalog, [short_week], solver=solver)
        dearer = mixed_catalog.with_overrides("SOLAR", capex=2000)
        result = optimize_capacity(dearer, [short_week], solver=solver)
        assert result.total_cost >= base.total_cost * (1 - 1e-9)

    @pytest.fixture
    def solar_gas(self, mixed_techs) -> TechnologyCatalog:
        return TechnologyCatalog.from_dict(
            {k: mixed_techs[k] for k in ("SOLAR", "GAS_CCGT")}
        )

    @pytest.fixture
    def year_week(self, short_week) -> RepresentativeWeek:
        """The 48-hour block weighted up to a full year of hours."""
        return RepresentativeWeek(records=short_week.records, weight=8760 / 48)

    def test_capacity_non_increasing_in_own_capex(self, solar_gas, year_week, solver):
        capacities = [
            optimize_capacity(
                solar_gas.with_overrides("SOLAR", capex=capex), [year_week], solver=solver
            ).capacities["SOLAR"]
            for capex in (600, 850, 1100, 1500, 2000)
        ]
        assert capacities[0] > 0
        for cheaper, dearer in zip(capacities, capacities[1:]):
            assert dearer <= cheaper * (1 + 1e-6) + 1e-6

    def test_lcoe_contribution_non_decreasing_in_own_capex(self, solar_gas, year_week, solver):
        """Gas covers the evening peak at every price, so it is always built."""
        results = [
            optimize_capacity(
                solar_gas.with_overrides("GAS_CCGT", capex=capex), [year_week], solver=solver
            )
            for capex in (1000, 2000, 3000, 4000)
        ]
        capacities = [r.capacities["GAS_CCGT"] for r in results]
        contributions = [r.cost_breakdown["GAS_CCGT"].lcoe_contribution for r in results]
        assert all(c > 0 for c in capacities)
        for cheaper, dearer in zip(capacities, capacities[1:]):
            assert dearer <= cheaper * (1 + 1e-6) + 1e-6
        for cheaper, dearer in zip(contributions, contributions[1:]):
            assert dearer >= cheaper * (1 - 1e-9)

    def test_determinism(self, mixed_catalog, two_weeks, solver):
        a = optimize_capacity(mixed_catalog, two_weeks, min_renewables=30, solver=solver)
        b = optimize_capacity(mixed_catalog, two_weeks, min_renewables=30, solver=solver)
        assert a.to_dict() == b.to_dict()


# ======================================================================
# Storage boundary policies
# ======================================================================


class TestStorageBoundary:
    """RESET and CYCLIC week boundaries."""

    @pytest.fixture
    def solar_battery(self) -> TechnologyCatalog:
        return TechnologyCatalog.from_dict(
            {
                "SOLAR": {"category": "renewable", "capex": 300, "lifetime": 25},
                "BATTERY": {"category": "storage", "capex_per_kwh": 50, "lifetime": 15},
                "GAS": {"category": "dispatchable", "capex": 500, "fuel_cost": 300},
            }
        )

    def test_reset_starts_empty(self, solar_battery, two_weeks, solver):
        result = optimize_capacity(solar_battery, two_weeks, solver=solver)
        for start in (0, 24):
            h = result.hourly[start]
            assert h.battery_soc == pytest.approx(
                0.9 * h.battery_charge - h.battery_discharge, abs=1e-4
            )
        _assert_balanced(result)

    def test_cyclic_wraps_within_week(self, solar_battery, two_weeks, solver):
        options = ModelOptions(storage_boundary=StorageBoundary.CYCLIC)
        result = optimize_capacity(solar_battery, two_weeks, options=options, solver=solver)
        for start, last in ((0, 23), (24, 47)):
            h = result.hourly[start]
            assert h.battery_soc == pytest.approx(
                result.hourly[last].battery_soc + 0.9 * h.battery_charge - h.battery_discharge,
                abs=1e-4,
            )
        _assert_balanced(result)

    def test_soc_dynamics_inside_week(self, solar_battery, two_weeks, solver):
        result = optimize_capacity(solar_battery, two_weeks, solver=solver)
        for i in range(1, 24):
            prev, h = result.hourly[i - 1], result.hourly[i]
            assert h.battery_soc == pytest.approx(
                prev.battery_soc + 0.9 * h.battery_charge - h.battery_discharge, abs=1e-4
            )


# ======================================================================
# Solver lifecycle and empty input
# ======================================================================


class TestSolverLifecycle:
    """Readiness, empty input and status errors."""

    @pytest.fixture(autouse=True)
    def _fresh_shared_solver(self):
        reset_solver()
        yield
        reset_solver()

    def test_uninitialised_solver_raises(self, cheap_gas_catalog, flat_week):
        with pytest.raises(SolverNotReadyError):
            optimize_capacity(cheap_gas_catalog, [flat_week], solver=HighsSolver())

    def test_shared_solver_not_ready(self, cheap_gas_catalog, flat_week):
        with pytest.raises(SolverNotReadyError):
            optimize_capacity(cheap_gas_catalog, [flat_week])

    def test_shared_solver_after_initialise(self, cheap_gas_catalog, flat_week):
        get_solver().initialize()
        result = optimize_capacity(cheap_gas_catalog, [flat_week])
        assert result.capacities["GAS"] == pytest.approx(30_000.0, rel=1e-6)

    def test_empty_weeks_return_empty_result(self, cheap_gas_catalog):
        """No solver is needed for empty input."""
        result = optimize_capacity(cheap_gas_catalog, [])
        assert result.solver_status == "empty"
        assert result.hourly == []
        assert result.total_cost == 0.0
        assert result.lcoe == 0.0

    def test_solver_reusable_after_many_solves(self, cheap_gas_catalog, flat_week, short_week):
        solver = HighsSolver().initialize()
        first = optimize_capacity(cheap_gas_catalog, [flat_week], solver=solver)
        optimize_capacity(cheap_gas_catalog, [short_week], solver=solver)
        again = optimize_capacity(cheap_gas_catalog, [flat_week], solver=solver)
        assert again.total_cost == pytest.approx(first.total_cost, rel=1e-9)

    def test_status_error_message(self):
        err = SolverStatusError("Infeasible")
        assert err.status == "Infeasible"
        assert "Model status: Infeasible" in str(err)

    def test_time_limit_raises_status_error(self, mixed_catalog, short_week):
        """A solve cut short by the time limit reports the HiGHS status."""
        lp = build_model(mixed_catalog, [short_week])
        hurried = HighsSolver(time_limit=1e-9).initialize()
        with pytest.raises(SolverStatusError) as excinfo:
            hurried.solve(lp)
        assert excinfo.value.status != "Optimal"
        assert excinfo.value.status in str(excinfo.value)

    def test_status_error_through_optimize(self, mixed_catalog, short_week):
        hurried = HighsSolver(time_limit=1e-9).initialize()
        with pytest.raises(SolverStatusError):
            optimize_capacity(mixed_catalog, [short_week], solver=hurried)
