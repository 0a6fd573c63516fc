"""API test infrastructure: async httpx client over an in-memory dataset store."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from datetime import datetime, timedelta

import numpy as np
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.services.dataset_store import DatasetStore, RegionDataset
from engine.expansion.solver import initialize_solver, reset_solver
from engine.profiles.capacity_factors import CapacityFactorSeries
from engine.profiles.weeks import WeekConfig

HOURS_PER_YEAR = 8760

# ---------------------------------------------------------------------------
# Data fixtures
# ---------------------------------------------------------------------------


def _synthetic_year(seed: int = 42) -> CapacityFactorSeries:
    rng = np.random.default_rng(seed)
    start = datetime(2019, 1, 1)
    hours = np.arange(HOURS_PER_YEAR)
    hour_of_day = hours % 24
    solar = np.where(
        (hour_of_day >= 6) & (hour_of_day <= 18),
        0.7 * np.sin(np.pi * (hour_of_day - 6) / 12),
        0.0,
    )
    wind = np.clip(0.35 + rng.normal(0, 0.1, HOURS_PER_YEAR), 0.02, 0.9)
    return CapacityFactorSeries(
        timestamps=[(start + timedelta(hours=int(h))).strftime("%Y-%m-%d %H:%M") for h in hours],
        solar=np.clip(solar, 0.0, 1.0),
        wind=wind,
        offshore=np.zeros(HOURS_PER_YEAR),
    )


TEST_WEEK_CONFIGS = [
    WeekConfig(start_hour=672, weight=26.0, label="Winter"),
    WeekConfig(start_hour=3528, weight=26.0, label="Summer"),
]


@pytest.fixture
def dataset_store() -> DatasetStore:
    series = _synthetic_year()
    return DatasetStore(
        {"es": RegionDataset(code="es", series=series)},
        {"*": list(TEST_WEEK_CONFIGS)},
        default_region="es",
    )


# ---------------------------------------------------------------------------
# FastAPI app with a ready solver
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app(dataset_store):
    from app.main import create_app

    application = create_app()
    application.state.datasets = dataset_store

    reset_solver()
    initialize_solver()

    yield application

    reset_solver()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def small_techs() -> dict[str, dict]:
    """Solar plus a gas plant; keeps the LP small."""
    return {
        "SOLAR": {"type": "renewable", "capex": 850, "opexFixed": 10, "lifetime": 30, "wacc": 6},
        "GAS_CCGT": {
            "type": "dispatchable", "capex": 2000, "opexFixed": 30, "opexVar": 6,
            "fuelCost": 50, "lifetime": 20, "wacc": 10, "co2": 350,
        },
    }
