"""Hourly renewable capacity-factor series and their CSV parsers.

Two layouts are understood:

* the processed ``time,factor`` files shipped per region and technology;
* raw renewables.ninja country exports, which start with ``#`` metadata
  lines and carry the national factor in a ``NATIONAL`` column.
"""

import csv
import io
from dataclasses import dataclass
from pathlib import Path

import numpy as np

RESOURCES = ("solar", "wind", "offshore")


@dataclass
class FactorColumn:
    """One parsed CSV: timestamps and per-hour availability factors."""

    timestamps: list[str]
    factors: np.ndarray

    def __len__(self) -> int:
        return len(self.factors)


@dataclass
class CapacityFactorSeries:
    """Aligned hourly solar, onshore wind and offshore wind availability."""

    timestamps: list[str]
    solar: np.ndarray
    wind: np.ndarray
    offshore: np.ndarray

    def __len__(self) -> int:
        return len(self.timestamps)

    def validate(self) -> None:
        """Check that all series share one length and lie in [0, 1]."""
        n = len(self.timestamps)
        for name in RESOURCES:
            arr = getattr(self, name)
            if len(arr) != n:
                raise ValueError(f"{name} has {len(arr)} values, expected {n}")
            if n and (arr.min() < 0.0 or arr.max() > 1.0):
                raise ValueError(f"{name} factors must lie in [0, 1]")

    def combined(self) -> np.ndarray:
        """Summed availability of all three resources, hour by hour."""
        return self.solar + self.wind + self.offshore

    def window(self, start: int, length: int) -> "CapacityFactorSeries":
        """Slice ``[start, start + length)``, truncated at the series end."""
        end = min(start + length, len(self))
        return CapacityFactorSeries(
            timestamps=self.timestamps[start:end],
            solar=self.solar[start:end],
            wind=self.wind[start:end],
            offshore=self.offshore[start:end],
        )


def _to_factor(value: str | None) -> float:
    if value is None or not value.strip():
        return 0.0
    return float(value)


def parse_factor_csv(csv_text: str) -> FactorColumn:
    """Parse a processed ``time,factor`` CSV.

    Blank factors count as zero; rows whose factor is not numeric are
    skipped.
    """
    reader = csv.DictReader(io.StringIO(csv_text.strip()))
    timestamps: list[str] = []
    factors: list[float] = []
    for row in reader:
        if not row or not row.get("time"):
            continue
        try:
            factor = _to_factor(row.get("factor"))
        except ValueError:
            continue
        timestamps.append(row["time"].strip())
        factors.append(factor)
    return FactorColumn(timestamps=timestamps, factors=np.array(factors, dtype=np.float64))


def parse_ninja_csv(csv_text: str, column: str = "NATIONAL", year: int | None = None) -> FactorColumn:
    """Parse a renewables.ninja country CSV.

    Args:
        csv_text: file content, metadata comment lines included
        column: factor column to read
        year: keep only rows whose timestamp starts with this year
    """
    lines = [line for line in csv_text.strip().split("\n") if not line.startswith("#")]
    reader = csv.DictReader(lines)
    if reader.fieldnames is None or column not in reader.fieldnames:
        raise ValueError(f"Column '{column}' not found in renewables.ninja CSV")

    prefix = str(year) if year is not None else None
    timestamps: list[str] = []
    factors: list[float] = []
    for row in reader:
        time = (row.get("time") or "").strip()
        if not time or (prefix and not time.startswith(prefix)):
            continue
        try:
            factors.append(_to_factor(row.get(column)))
        except ValueError:
            continue
        timestamps.append(time)
    return FactorColumn(timestamps=timestamps, factors=np.array(factors, dtype=np.float64))


def combine_columns(
    solar: FactorColumn,
    wind: FactorColumn,
    offshore: FactorColumn | None = None,
) -> CapacityFactorSeries:
    """Align the three resources on the solar timeline.

    Wind and offshore are matched by position; missing trailing hours and a
    missing offshore file read as zero availability.
    """
    n = len(solar)

    def _aligned(col: FactorColumn | None) -> np.ndarray:
        out = np.zeros(n, dtype=np.float64)
        if col is not None:
            m = min(n, len(col))
            out[:m] = col.factors[:m]
        return out

    series = CapacityFactorSeries(
        timestamps=list(solar.timestamps),
        solar=solar.factors.astype(np.float64),
        wind=_aligned(wind),
        offshore=_aligned(offshore),
    )
    series.validate()
    return series


def load_factor_file(path: Path) -> FactorColumn:
    return parse_factor_csv(Path(path).read_text(encoding="utf-8"))
