"""Shared test fixtures for GridPlan engine and API tests."""

from __future__ import annotations

import numpy as np
import pytest

from engine.expansion.catalog import TechnologyCatalog
from engine.expansion.timeseries import HOURS_PER_WEEK, RepresentativeWeek, make_week

FLAT_DEMAND_MW = 30_000.0


# ======================================================================
# Week fixtures
# ======================================================================

def solar_shape(n: int) -> np.ndarray:
    """Bell-shaped daytime availability (06-18), zero at night."""
    hour_of_day = np.arange(n) % 24
    return np.where(
        (hour_of_day >= 6) & (hour_of_day <= 18),
        0.8 * np.sin(np.pi * (hour_of_day - 6) / 12),
        0.0,
    )


def wind_shape(n: int, seed: int = 42) -> np.ndarray:
    """Deterministic gusty wind availability between 0.05 and 0.75."""
    rng = np.random.default_rng(seed)
    base = 0.4 + 0.25 * np.sin(2 * np.pi * np.arange(n) / 60.0)
    return np.clip(base + rng.normal(0, 0.05, n), 0.05, 0.75)


@pytest.fixture
def flat_week() -> RepresentativeWeek:
    """One week of flat 30 GW demand and no renewable resource."""
    return make_week([FLAT_DEMAND_MW] * HOURS_PER_WEEK, label="flat")


@pytest.fixture
def short_week() -> RepresentativeWeek:
    """48 hours with a day/night demand swing and solar + wind availability."""
    n = 48
    hour_of_day = np.arange(n) % 24
    demand = np.where((hour_of_day >= 7) & (hour_of_day < 23), 1000.0, 800.0)
    return make_week(
        demand.tolist(),
        solar=solar_shape(n).tolist(),
        wind=wind_shape(n).tolist(),
        weight=2.0,
        label="short",
    )


@pytest.fixture
def two_weeks() -> list[RepresentativeWeek]:
    """Two 24-hour blocks; the second is a low-wind stress block outside stats."""
    n = 24
    normal = make_week(
        [1000.0] * n,
        solar=solar_shape(n).tolist(),
        wind=wind_shape(n, seed=1).tolist(),
        weight=10.0,
        label="normal",
    )
    stress = make_week(
        [1100.0] * n,
        solar=(solar_shape(n) * 0.2).tolist(),
        wind=[0.05] * n,
        weight=1.0,
        include_in_stats=False,
        is_extreme=True,
        label="stress",
    )
    return [normal, stress]


# ======================================================================
# Catalog fixtures
# ======================================================================

@pytest.fixture
def mixed_techs() -> dict[str, dict]:
    """Solar, wind, a battery and two thermal options."""
    return {
        "SOLAR": {
            "category": "renewable", "capex": 850, "opex_fixed": 10,
            "lifetime": 30, "discount_rate": 6,
        },
        "WIND": {
            "category": "renewable", "capex": 1400, "opex_fixed": 35,
            "lifetime": 25, "discount_rate": 6,
        },
        "BATTERY": {
            "category": "storage", "capex": 480, "capex_per_kwh": 120,
            "duration_hours": 4, "opex_fixed": 10, "lifetime": 20, "discount_rate": 5,
        },
        "GAS_CCGT": {
            "category": "dispatchable", "capex": 2000, "opex_fixed": 30,
            "opex_variable": 6, "fuel_cost": 50, "lifetime": 20, "discount_rate": 10,
            "emission_factor": 350,
        },
        "GAS_OCGT": {
            "category": "dispatchable", "capex": 800, "opex_fixed": 20,
            "opex_variable": 10, "fuel_cost": 68.3, "lifetime": 20, "discount_rate": 10,
            "emission_factor": 500,
        },
    }


@pytest.fixture
def mixed_catalog(mixed_techs) -> TechnologyCatalog:
    return TechnologyCatalog.from_dict(mixed_techs)


@pytest.fixture
def cheap_gas_catalog() -> TechnologyCatalog:
    """A single dispatchable tech with negligible fixed cost, $50/MWh fuel."""
    return TechnologyCatalog.from_dict(
        {
            "GAS": {
                "category": "dispatchable", "capex": 0, "opex_fixed": 0.001,
                "fuel_cost": 50, "lifetime": 20, "emission_factor": 400,
            },
        }
    )
