"""Synthetic national demand profiles for representative weeks.

Builds hourly demand (MW) from timestamps using simple seasonal and
time-of-day multipliers around a 30 GW base.  Noise is optional and drawn
from a seeded generator, so the same inputs always give the same profile.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime, timedelta
from typing import Optional

import numpy as np
from numpy.typing import NDArray

BASE_DEMAND_MW = 30_000.0
# Calendar used when an hour carries no timestamp.
_REFERENCE_YEAR_START = datetime(2019, 1, 1)

# Local time offset from UTC for the "spain" profile (CET, no DST).
_UTC_OFFSET_HOURS = 1


# ======================================================================
# Built-in multipliers
# ======================================================================

# Monthly seasonal multipliers (index 0 = January): winter heating
# Dec -- Feb, summer cooling Jul -- Aug.
_MONTHLY_SEASONAL_SPAIN = np.array(
    [
        1.10,  # Jan
        1.10,  # Feb
        1.00,  # Mar
        1.00,  # Apr
        1.00,  # May
        1.00,  # Jun
        1.15,  # Jul
        1.15,  # Aug
        1.00,  # Sep
        1.00,  # Oct
        1.00,  # Nov
        1.10,  # Dec
    ],
    dtype=np.float64,
)

# Hour-of-day multipliers (local time): night trough, daytime plateau,
# afternoon bump 13-16, evening peak 20-22.
_HOURLY_SPAIN = np.array(
    [
        0.80, 0.80, 0.80, 0.80, 0.80, 0.80,  # 00-05
        0.80, 1.00, 1.00, 1.00, 1.00, 1.00,  # 06-11
        1.00, 1.05, 1.05, 1.05, 1.00, 1.00,  # 12-17
        1.00, 1.00, 1.10, 1.10, 1.00, 0.80,  # 18-23
    ],
    dtype=np.float64,
)

DEMAND_PROFILES = ("spain", "baseload")


# ======================================================================
# Public API
# ======================================================================


def parse_timestamps(
    timestamps: Sequence[str | None],
    hours: Sequence[int] | None = None,
) -> list[datetime]:
    """Parse ISO-like timestamps (``"2019-01-01 00:00"``).

    Missing entries fall back to *hours* counted from the start of 2019.
    """
    parsed: list[datetime] = []
    for i, ts in enumerate(timestamps):
        if ts:
            text = str(ts).strip().replace("Z", "").replace("T", " ")
            parsed.append(datetime.fromisoformat(text))
        else:
            hour = hours[i] if hours is not None else i
            parsed.append(_REFERENCE_YEAR_START + timedelta(hours=int(hour)))
    return parsed


def generate_demand(
    timestamps: Sequence[datetime],
    profile: str = "spain",
    base_demand_mw: float = BASE_DEMAND_MW,
    noise_factor: float = 0.0,
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None,
) -> NDArray[np.float64]:
    """Hourly demand in MW for the given UTC *timestamps*.

    Parameters
    ----------
    timestamps : sequence of datetime
        UTC time of each hour.
    profile : str
        ``'spain'`` (seasonal and daily shape) or ``'baseload'`` (flat).
    base_demand_mw : float
        Demand level the multipliers are applied to.
    noise_factor : float
        Half-width of uniform multiplicative noise, e.g. ``0.05`` gives
        factors in [0.95, 1.05].  ``0.0`` is fully deterministic.
    seed : int, optional
        Seed for the noise generator.  Ignored when *rng* is supplied.
    rng : numpy.random.Generator, optional
        Injected noise source.

    Returns
    -------
    NDArray[np.float64]
        Demand per hour, rounded to whole MW.

    Raises
    ------
    ValueError
        If *profile* is unknown or *base_demand_mw* / *noise_factor* is
        negative.
    """
    if base_demand_mw < 0:
        raise ValueError(f"base_demand_mw must be >= 0, got {base_demand_mw}")
    if noise_factor < 0:
        raise ValueError(f"noise_factor must be >= 0, got {noise_factor}")

    profile = profile.lower()
    if profile not in DEMAND_PROFILES:
        raise ValueError(
            f"Unknown demand profile '{profile}'. Choose from: {list(DEMAND_PROFILES)}"
        )

    n = len(timestamps)
    if profile == "baseload":
        demand = np.full(n, base_demand_mw, dtype=np.float64)
    else:
        local_hour = np.array(
            [(ts.hour + _UTC_OFFSET_HOURS) % 24 for ts in timestamps], dtype=np.int64
        )
        month = np.array([ts.month - 1 for ts in timestamps], dtype=np.int64)
        demand = base_demand_mw * _MONTHLY_SEASONAL_SPAIN[month] * _HOURLY_SPAIN[local_hour]

    if noise_factor > 0 and n:
        rng = rng if rng is not None else np.random.default_rng(seed)
        demand = demand * rng.uniform(1.0 - noise_factor, 1.0 + noise_factor, size=n)

    return np.round(demand)
