"""Hourly input records and weighted representative weeks."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field, replace

import numpy as np
from numpy.typing import NDArray

HOURS_PER_WEEK = 168


@dataclass(frozen=True)
class HourlyRecord:
    """One hour of demand and renewable availability."""

    hour: int
    demand: float  # MW
    solar: float = 0.0  # availability factor, 0 -- 1
    wind: float = 0.0
    offshore: float = 0.0
    weight: float = 1.0
    include_in_stats: bool = True
    timestamp: str | None = None

    def availability(self, resource: str | None) -> float:
        if resource is None:
            return 0.0
        return float(getattr(self, resource))


@dataclass(frozen=True)
class RepresentativeWeek:
    """An ordered block of hours standing in for ``weight`` real weeks."""

    records: tuple[HourlyRecord, ...]
    weight: float = 1.0
    include_in_stats: bool = True
    is_extreme: bool = False
    label: str = ""

    def __len__(self) -> int:
        return len(self.records)


@dataclass(frozen=True)
class Timeline:
    """Weeks concatenated into flat hourly arrays.

    ``week_starts[k]`` / ``week_ends[k]`` delimit week *k* (end exclusive)
    on the concatenated axis.
    """

    records: tuple[HourlyRecord, ...]
    demand: NDArray[np.float64]
    weight: NDArray[np.float64]
    in_stats: NDArray[np.bool_]
    availability: dict[str, NDArray[np.float64]]
    week_starts: NDArray[np.int64]
    week_ends: NDArray[np.int64] = field(repr=False)

    @property
    def n_hours(self) -> int:
        return len(self.records)

    def week_first_hours(self) -> set[int]:
        return {int(s) for s, e in zip(self.week_starts, self.week_ends) if e > s}

    def stats_weight(self) -> NDArray[np.float64]:
        """Per-hour weight for reported statistics (0 outside stats weeks)."""
        return np.where(self.in_stats, self.weight, 0.0)


def build_timeline(weeks: Sequence[RepresentativeWeek]) -> Timeline:
    """Flatten *weeks* in order, dropping empty ones.

    Each hour takes its weight and stats flag from the week that owns it.
    """
    records: list[HourlyRecord] = []
    starts: list[int] = []
    ends: list[int] = []
    for week in weeks:
        if not week.records:
            continue
        starts.append(len(records))
        records.extend(
            replace(r, weight=float(week.weight), include_in_stats=bool(week.include_in_stats))
            for r in week.records
        )
        ends.append(len(records))

    def _column(name: str) -> NDArray[np.float64]:
        return np.array([float(getattr(r, name) or 0.0) for r in records], dtype=np.float64)

    return Timeline(
        records=tuple(records),
        demand=_column("demand"),
        weight=_column("weight"),
        in_stats=np.array([bool(r.include_in_stats) for r in records], dtype=bool),
        availability={name: _column(name) for name in ("solar", "wind", "offshore")},
        week_starts=np.array(starts, dtype=np.int64),
        week_ends=np.array(ends, dtype=np.int64),
    )


def make_week(
    demand: Sequence[float],
    solar: Sequence[float] | None = None,
    wind: Sequence[float] | None = None,
    offshore: Sequence[float] | None = None,
    weight: float = 1.0,
    include_in_stats: bool = True,
    timestamps: Sequence[str] | None = None,
    start_hour: int = 0,
    is_extreme: bool = False,
    label: str = "",
) -> RepresentativeWeek:
    """Assemble a :class:`RepresentativeWeek` from parallel hourly arrays."""
    n = len(demand)

    def _series(values: Sequence[float] | None) -> list[float]:
        if values is None:
            return [0.0] * n
        if len(values) != n:
            raise ValueError(f"Availability series has {len(values)} values, expected {n}")
        return [float(v) for v in values]

    solar_v, wind_v, offshore_v = _series(solar), _series(wind), _series(offshore)
    records = tuple(
        HourlyRecord(
            hour=start_hour + i,
            demand=float(demand[i]),
            solar=solar_v[i],
            wind=wind_v[i],
            offshore=offshore_v[i],
            weight=weight,
            include_in_stats=include_in_stats,
            timestamp=timestamps[i] if timestamps is not None else None,
        )
        for i in range(n)
    )
    return RepresentativeWeek(
        records=records,
        weight=weight,
        include_in_stats=include_in_stats,
        is_extreme=is_extreme,
        label=label,
    )
