"""Assemble weighted representative weeks from capacity-factor data.

A year is represented by a handful of 168-hour windows cut from the regional
2019 series, each scaled by a weight, plus an optional historical extreme
week taken from a separate series.  Demand is synthesised from each hour's
timestamp.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from typing import Any, Optional

import numpy as np

from engine.expansion.timeseries import HOURS_PER_WEEK, RepresentativeWeek, make_week
from engine.load.load_model import generate_demand, parse_timestamps

from .capacity_factors import CapacityFactorSeries

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WeekConfig:
    """Where a representative week comes from and how much it counts."""

    start_hour: int
    weight: float = 1.0
    is_extreme: bool = False
    include_in_stats: bool = True
    label: str = ""

    def __post_init__(self) -> None:
        if self.weight < 0:
            raise ValueError(f"Week weight must be >= 0, got {self.weight}")
        if not self.is_extreme and self.start_hour < 0:
            raise ValueError(f"start_hour must be >= 0, got {self.start_hour}")

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> WeekConfig:
        """Accept snake_case or the camelCase keys used by stored configs."""
        def _get(*keys: str, default: Any = None) -> Any:
            for key in keys:
                if key in data:
                    return data[key]
            return default

        return cls(
            start_hour=int(_get("start_hour", "startHour", default=0)),
            weight=float(_get("weight", default=1.0)),
            is_extreme=bool(_get("is_extreme", "isExtreme", default=False)),
            include_in_stats=bool(_get("include_in_stats", "includeInStats", default=True)),
            label=str(_get("label", default="")),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


# Four 2019 weeks standing in for 13 weeks each, plus a stress week that
# shapes the build but is left out of reported statistics.
DEFAULT_WEEK_CONFIGS: tuple[WeekConfig, ...] = (
    WeekConfig(start_hour=3528, weight=13.0, label="Summer (High Solar)"),
    WeekConfig(start_hour=672, weight=13.0, label="Winter (High Wind)"),
    WeekConfig(start_hour=5712, weight=13.0, label="Late Summer (Low Renewables)"),
    WeekConfig(start_hour=8591, weight=13.0, label="Extreme (Worst in 2019)"),
    WeekConfig(
        start_hour=-1,
        weight=1.0,
        is_extreme=True,
        include_in_stats=False,
        label="Extreme (Worst since 1980)",
    ),
)


def parse_week_configs(data: Any) -> dict[str, list[WeekConfig]]:
    """Parse ``representative_weeks.json``.

    The file is either a list of week configs shared by all regions or a
    mapping from region code to such a list.  A bare list is returned under
    the ``"*"`` key.
    """
    if isinstance(data, list):
        return {"*": [WeekConfig.from_dict(item) for item in data]}
    if isinstance(data, dict):
        return {
            str(region).lower(): [WeekConfig.from_dict(item) for item in items]
            for region, items in data.items()
        }
    raise ValueError("Week configuration must be a list or a mapping of region to list")


def build_week(
    series: CapacityFactorSeries,
    config: WeekConfig,
    demand_profile: str = "spain",
    start: Optional[int] = None,
    noise_factor: float = 0.0,
    rng: Optional[np.random.Generator] = None,
) -> RepresentativeWeek:
    """Cut one week out of *series* and attach synthetic demand.

    *start* overrides ``config.start_hour``; extreme weeks are read from the
    beginning of their own series.  Windows running past the series end are
    truncated, and a window starting beyond it yields an empty week.
    """
    if start is None:
        start = 0 if config.is_extreme else config.start_hour
    chunk = series.window(start, HOURS_PER_WEEK)
    if not len(chunk):
        logger.warning("Week '%s' starts at %d, past the end of the data", config.label, start)
        return make_week([], weight=config.weight, include_in_stats=config.include_in_stats,
                         is_extreme=config.is_extreme, label=config.label)

    hours = list(range(start, start + len(chunk)))
    times = parse_timestamps(chunk.timestamps, hours=hours)
    demand = generate_demand(times, demand_profile, noise_factor=noise_factor, rng=rng)

    return make_week(
        demand=demand.tolist(),
        solar=chunk.solar.tolist(),
        wind=chunk.wind.tolist(),
        offshore=chunk.offshore.tolist(),
        weight=config.weight,
        include_in_stats=config.include_in_stats,
        timestamps=chunk.timestamps,
        start_hour=0 if config.is_extreme else start,
        is_extreme=config.is_extreme,
        label=config.label,
    )


def build_representative_weeks(
    series: CapacityFactorSeries,
    configs: Iterable[WeekConfig] = DEFAULT_WEEK_CONFIGS,
    demand_profile: str = "spain",
    extreme: Optional[CapacityFactorSeries] = None,
    noise_factor: float = 0.0,
    seed: Optional[int] = None,
) -> list[RepresentativeWeek]:
    """Build every configured week in order.

    Extreme configs draw from *extreme*; when it is ``None`` they are
    skipped with a warning.  Noise, if any, comes from one generator seeded
    with *seed* and shared across the weeks.
    """
    rng = np.random.default_rng(seed) if noise_factor > 0 else None
    weeks: list[RepresentativeWeek] = []
    for config in configs:
        if config.is_extreme:
            if extreme is None:
                logger.warning("No extreme-week data; skipping '%s'", config.label)
                continue
            week = build_week(extreme, config, demand_profile, noise_factor=noise_factor, rng=rng)
        else:
            week = build_week(series, config, demand_profile, noise_factor=noise_factor, rng=rng)
        weeks.append(week)
    return weeks
