"""Regional renewable datasets and the representative weeks built from them.

Each region is a set of flat files in ``settings.data_dir``:

    {code}_solar_2019.csv       time,factor
    {code}_wind_2019.csv        time,factor
    {code}_offshore_2019.csv    optional, time,factor
    {code}_extreme_week.json    optional, worst historical week
    representative_weeks.json   week configs, shared or per region

Regions whose files are missing are logged and left out; requests for an
unknown or unloaded region fall back to the default region.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from app.config import settings
from engine.expansion.timeseries import HOURS_PER_WEEK, RepresentativeWeek
from engine.profiles.capacity_factors import (
    CapacityFactorSeries,
    combine_columns,
    load_factor_file,
)
from engine.profiles.extreme_week import find_extreme_week, parse_extreme_week_json
from engine.profiles.weeks import (
    DEFAULT_WEEK_CONFIGS,
    WeekConfig,
    build_representative_weeks,
    parse_week_configs,
)

logger = logging.getLogger(__name__)

REGIONS = ("es", "gb", "fr")
WEEKS_FILE = "representative_weeks.json"


@dataclass
class RegionDataset:
    code: str
    series: CapacityFactorSeries
    extreme: CapacityFactorSeries | None = None

    @property
    def n_hours(self) -> int:
        return len(self.series)


def load_region(data_dir: Path, code: str) -> RegionDataset:
    """Read one region's files.

    Raises FileNotFoundError when the solar or wind file is absent.
    """
    solar = load_factor_file(data_dir / f"{code}_solar_2019.csv")
    wind = load_factor_file(data_dir / f"{code}_wind_2019.csv")

    offshore_path = data_dir / f"{code}_offshore_2019.csv"
    offshore = load_factor_file(offshore_path) if offshore_path.exists() else None

    series = combine_columns(solar, wind, offshore)

    extreme_path = data_dir / f"{code}_extreme_week.json"
    if extreme_path.exists():
        extreme = parse_extreme_week_json(extreme_path.read_text(encoding="utf-8"))
    elif len(series) >= HOURS_PER_WEEK:
        logger.info("No extreme-week file for %s; searching the 2019 series instead", code)
        extreme = find_extreme_week(series).series
    else:
        extreme = None

    return RegionDataset(code=code, series=series, extreme=extreme)


class DatasetStore:
    """In-memory region datasets and week configurations, read-only after load."""

    def __init__(
        self,
        datasets: dict[str, RegionDataset],
        week_configs: dict[str, list[WeekConfig]] | None = None,
        default_region: str = "es",
    ) -> None:
        self.datasets = datasets
        self.week_configs = week_configs or {"*": list(DEFAULT_WEEK_CONFIGS)}
        self.default_region = default_region

    @classmethod
    def load(
        cls,
        data_dir: Path,
        regions: Iterable[str] = REGIONS,
        default_region: str = "es",
    ) -> DatasetStore:
        data_dir = Path(data_dir)
        datasets: dict[str, RegionDataset] = {}
        for code in regions:
            try:
                datasets[code] = load_region(data_dir, code)
                logger.info("Loaded %d hours for region %s", datasets[code].n_hours, code)
            except (OSError, ValueError) as exc:
                logger.error("Failed to load data for region %s: %s", code, exc)

        week_configs = None
        weeks_path = data_dir / WEEKS_FILE
        if weeks_path.exists():
            try:
                week_configs = parse_week_configs(json.loads(weeks_path.read_text(encoding="utf-8")))
                logger.info("Loaded representative weeks config from %s", weeks_path)
            except ValueError as exc:
                logger.error("Failed to parse %s: %s", weeks_path, exc)
        else:
            logger.warning("%s not found; using built-in week configs", weeks_path)

        return cls(datasets, week_configs, default_region)

    @property
    def data_loaded(self) -> bool:
        dataset = self.datasets.get(self.default_region)
        return dataset is not None and dataset.n_hours > 0

    @property
    def regions(self) -> list[str]:
        return sorted(self.datasets)

    def resolve_region(self, region: str | None) -> str:
        code = (region or self.default_region).lower()
        return code if code in self.datasets else self.default_region

    def configs_for(self, region: str | None) -> list[WeekConfig]:
        code = (region or self.default_region).lower()
        for key in (code, self.default_region, "*"):
            if key in self.week_configs:
                return self.week_configs[key]
        return list(DEFAULT_WEEK_CONFIGS)

    def all_configs(self) -> dict[str, list[dict]]:
        """Week configs per known region, for display."""
        codes = sorted(set(REGIONS) | set(self.datasets))
        return {code: [c.to_dict() for c in self.configs_for(code)] for code in codes}

    def weeks_for(self, region: str | None, demand_profile: str = "spain") -> list[RepresentativeWeek]:
        """Representative weeks for *region*, or an empty list if no data is loaded."""
        code = self.resolve_region(region)
        dataset = self.datasets.get(code)
        if dataset is None:
            logger.warning("No dataset available for region %s", region)
            return []
        return build_representative_weeks(
            dataset.series,
            self.configs_for(code),
            demand_profile=demand_profile,
            extreme=dataset.extreme,
        )


def load_dataset_store() -> DatasetStore:
    return DatasetStore.load(settings.data_dir, default_region=settings.default_region)
