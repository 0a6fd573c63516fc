"""Renewable availability data and representative-week assembly."""

from .capacity_factors import (
    CapacityFactorSeries,
    FactorColumn,
    combine_columns,
    parse_factor_csv,
    parse_ninja_csv,
)
from .extreme_week import ExtremeWeek, find_extreme_week, parse_extreme_week_json
from .weeks import (
    DEFAULT_WEEK_CONFIGS,
    WeekConfig,
    build_representative_weeks,
    build_week,
    parse_week_configs,
)

__all__ = [
    "CapacityFactorSeries",
    "FactorColumn",
    "combine_columns",
    "parse_factor_csv",
    "parse_ninja_csv",
    "ExtremeWeek",
    "find_extreme_week",
    "parse_extreme_week_json",
    "DEFAULT_WEEK_CONFIGS",
    "WeekConfig",
    "build_representative_weeks",
    "build_week",
    "parse_week_configs",
]
