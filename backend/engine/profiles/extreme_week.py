"""Search for the week with the least renewable resource."""

import json
import logging
from dataclasses import dataclass

import numpy as np

from engine.expansion.timeseries import HOURS_PER_WEEK

from .capacity_factors import CapacityFactorSeries

logger = logging.getLogger(__name__)


@dataclass
class ExtremeWeek:
    """The worst window found and its hourly availability."""

    start_index: int
    combined_sum: float
    series: CapacityFactorSeries

    def to_records(self) -> list[dict]:
        """Hour-indexed records in the ``*_extreme_week.json`` layout."""
        s = self.series
        return [
            {
                "hour": j,
                "time": s.timestamps[j],
                "solar": float(s.solar[j]),
                "wind": float(s.wind[j]),
                "offshore": float(s.offshore[j]),
            }
            for j in range(len(s))
        ]


def find_extreme_week(
    series: CapacityFactorSeries,
    window: int = HOURS_PER_WEEK,
) -> ExtremeWeek:
    """Return the *window*-hour span minimising summed solar+wind+offshore.

    Ties go to the earliest start.

    Raises:
        ValueError: if the series is shorter than one window.
    """
    if window <= 0:
        raise ValueError(f"window must be positive, got {window}")
    combined = series.combined()
    if len(combined) < window:
        raise ValueError(
            f"Need at least {window} hours to find an extreme week, got {len(combined)}"
        )

    csum = np.concatenate(([0.0], np.cumsum(combined)))
    sums = csum[window:] - csum[:-window]
    start = int(np.argmin(sums))
    total = float(sums[start])

    logger.info(
        "Extreme week starts at index %d (%s), mean factor %.4f",
        start, series.timestamps[start], total / window,
    )
    return ExtremeWeek(start_index=start, combined_sum=total, series=series.window(start, window))


def parse_extreme_week_json(json_text: str) -> CapacityFactorSeries:
    """Read a stored ``*_extreme_week.json`` back into a series."""
    records = json.loads(json_text)
    if not isinstance(records, list):
        raise ValueError("Extreme week file must contain a list of hourly records")
    return CapacityFactorSeries(
        timestamps=[str(r.get("time", "")) for r in records],
        solar=np.array([float(r.get("solar") or 0.0) for r in records], dtype=np.float64),
        wind=np.array([float(r.get("wind") or 0.0) for r in records], dtype=np.float64),
        offshore=np.array([float(r.get("offshore") or 0.0) for r in records], dtype=np.float64),
    )
