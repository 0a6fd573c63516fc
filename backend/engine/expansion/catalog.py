"""Technology definitions and the per-request technology catalog.

A :class:`TechnologyCatalog` is an immutable snapshot of the caller's
technology settings.  The optimiser never reads ambient state: every request
passes its own catalog, and "editing" a catalog returns a new one.

Units follow the usual planning conventions:

* ``capex`` -- $/kW of power capacity (storage: derived from
  ``capex_per_kwh`` x ``duration_hours`` when given)
* ``opex_fixed`` -- $/kW-yr
* ``opex_variable``, ``fuel_cost`` -- $/MWh
* ``emission_factor`` -- kg CO2 / MWh
* ``fixed_capacity`` -- GW
"""

from __future__ import annotations

import enum
from collections.abc import Iterator, Mapping
from dataclasses import asdict, dataclass, field, replace
from typing import Any

import numpy as np

from .errors import CatalogError

DEFAULT_STORAGE_DURATION_HOURS = 4.0


class TechCategory(str, enum.Enum):
    RENEWABLE = "renewable"
    STORAGE = "storage"
    DISPATCHABLE = "dispatchable"
    BASELOAD = "baseload"


# Availability series a renewable follows when ``resource`` is not given.
_DEFAULT_RESOURCES = {
    "SOLAR": "solar",
    "WIND": "wind",
    "WIND_OFFSHORE": "offshore",
}

RESOURCES = ("solar", "wind", "offshore")


@dataclass(frozen=True)
class TechnologyDefinition:
    """Economics and optimisation flags for one technology."""

    id: str
    category: TechCategory
    capex: float = 0.0
    opex_fixed: float = 0.0
    opex_variable: float = 0.0
    fuel_cost: float = 0.0
    lifetime: float = 20.0
    discount_rate: float = 0.0  # percent, 0 -- 100
    emission_factor: float = 0.0
    enabled: bool = True
    is_fixed: bool = False
    fixed_capacity: float = 0.0
    name: str = ""
    capex_per_kwh: float | None = None
    duration_hours: float = DEFAULT_STORAGE_DURATION_HOURS
    resource: str | None = None

    def __post_init__(self) -> None:
        try:
            category = TechCategory(self.category)
        except ValueError as exc:
            raise CatalogError(
                f"{self.id}: unknown category '{self.category}'. "
                f"Choose from: {[c.value for c in TechCategory]}"
            ) from exc
        object.__setattr__(self, "category", category)

        for attr in ("capex", "opex_fixed", "opex_variable", "fuel_cost",
                     "emission_factor", "fixed_capacity"):
            value = getattr(self, attr)
            if not np.isfinite(value) or value < 0:
                raise CatalogError(f"{self.id}: {attr} must be a finite value >= 0, got {value}")
        if self.capex_per_kwh is not None and (
            not np.isfinite(self.capex_per_kwh) or self.capex_per_kwh < 0
        ):
            raise CatalogError(
                f"{self.id}: capex_per_kwh must be a finite value >= 0, got {self.capex_per_kwh}"
            )
        if not np.isfinite(self.lifetime) or self.lifetime <= 0:
            raise CatalogError(f"{self.id}: lifetime must be a finite value > 0, got {self.lifetime}")
        if not np.isfinite(self.discount_rate) or not 0 <= self.discount_rate <= 100:
            raise CatalogError(
                f"{self.id}: discount_rate is a percentage in [0, 100], got {self.discount_rate}"
            )
        if not np.isfinite(self.duration_hours) or self.duration_hours <= 0:
            raise CatalogError(
                f"{self.id}: duration_hours must be a finite value > 0, got {self.duration_hours}"
            )

        if self.resource is None and category is TechCategory.RENEWABLE:
            object.__setattr__(self, "resource", _DEFAULT_RESOURCES.get(self.id))
        if self.resource is not None and self.resource not in RESOURCES:
            raise CatalogError(
                f"{self.id}: unknown resource '{self.resource}'. Choose from: {list(RESOURCES)}"
            )

    @property
    def is_storage(self) -> bool:
        return self.category is TechCategory.STORAGE

    @property
    def is_renewable(self) -> bool:
        return self.category is TechCategory.RENEWABLE

    @property
    def counts_as_non_renewable(self) -> bool:
        """Output limited by the minimum-renewable-share policy."""
        return not (self.is_renewable or self.is_storage)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        return data


# Keys accepted from callers using the front-end's camelCase names.
_ALIASES = {
    "type": "category",
    "opexFixed": "opex_fixed",
    "opexVar": "opex_variable",
    "fuelCost": "fuel_cost",
    "wacc": "discount_rate",
    "co2": "emission_factor",
    "isFixed": "is_fixed",
    "fixedCapacity": "fixed_capacity",
    "capexPerKwh": "capex_per_kwh",
    "duration": "duration_hours",
}

_FIELDS = set(TechnologyDefinition.__dataclass_fields__)


def technology_from_dict(tech_id: str, config: Mapping[str, Any]) -> TechnologyDefinition:
    """Normalise a technology config dict into a :class:`TechnologyDefinition`.

    Unknown keys (colours, installed capacity, UI labels) are ignored.
    """
    kwargs: dict[str, Any] = {}
    for key, value in config.items():
        key = _ALIASES.get(key, key)
        if key in _FIELDS and value is not None:
            kwargs[key] = value
    kwargs["id"] = str(kwargs.get("id", tech_id))
    if "category" not in kwargs:
        raise CatalogError(f"{tech_id}: missing 'category'")
    try:
        return TechnologyDefinition(**kwargs)
    except TypeError as exc:
        raise CatalogError(f"{tech_id}: {exc}") from exc


@dataclass(frozen=True)
class TechnologyCatalog(Mapping[str, TechnologyDefinition]):
    """Immutable id -> :class:`TechnologyDefinition` mapping for one request."""

    technologies: tuple[TechnologyDefinition, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        ids = [t.id for t in self.technologies]
        duplicates = sorted({i for i in ids if ids.count(i) > 1})
        if duplicates:
            raise CatalogError(f"Duplicate technology ids: {duplicates}")
        # Canonical order makes the LP column layout independent of the
        # order in which the caller toggled technologies.
        object.__setattr__(
            self, "technologies", tuple(sorted(self.technologies, key=lambda t: t.id))
        )

    @classmethod
    def from_dict(cls, techs: Mapping[str, Mapping[str, Any]]) -> TechnologyCatalog:
        return cls(tuple(technology_from_dict(tid, cfg) for tid, cfg in techs.items()))

    def __getitem__(self, tech_id: str) -> TechnologyDefinition:
        for tech in self.technologies:
            if tech.id == tech_id:
                return tech
        raise KeyError(tech_id)

    def __iter__(self) -> Iterator[str]:
        return (t.id for t in self.technologies)

    def __len__(self) -> int:
        return len(self.technologies)

    def enabled(self) -> list[TechnologyDefinition]:
        """Enabled technologies in canonical id order."""
        return [t for t in self.technologies if t.enabled]

    def generators(self) -> list[TechnologyDefinition]:
        """Enabled non-storage technologies."""
        return [t for t in self.enabled() if not t.is_storage]

    def storage(self) -> TechnologyDefinition | None:
        """The storage technology that gets modelled, if any.

        Only one storage technology is modelled at a time; when several are
        enabled the first in canonical order wins.
        """
        for tech in self.enabled():
            if tech.is_storage:
                return tech
        return None

    def ignored_storage(self) -> list[TechnologyDefinition]:
        chosen = self.storage()
        return [t for t in self.enabled() if t.is_storage and t is not chosen]

    def with_overrides(self, tech_id: str, **changes: Any) -> TechnologyCatalog:
        """Return a new catalog with *tech_id* updated."""
        if tech_id not in self:
            raise KeyError(tech_id)
        return TechnologyCatalog(
            tuple(replace(t, **changes) if t.id == tech_id else t for t in self.technologies)
        )

    def to_dict(self) -> dict[str, dict[str, Any]]:
        return {t.id: t.to_dict() for t in self.technologies}


# ======================================================================
# Default technologies
# ======================================================================

DEFAULT_TECHNOLOGIES: dict[str, dict[str, Any]] = {
    "SOLAR": {
        "name": "Solar PV", "category": "renewable", "capex": 850, "opex_fixed": 10,
        "opex_variable": 0, "fuel_cost": 0, "lifetime": 30, "discount_rate": 6,
        "emission_factor": 0, "enabled": True,
    },
    "WIND": {
        "name": "Onshore Wind", "category": "renewable", "capex": 1400, "opex_fixed": 35,
        "opex_variable": 0, "fuel_cost": 0, "lifetime": 25, "discount_rate": 6,
        "emission_factor": 0, "enabled": True,
    },
    "WIND_OFFSHORE": {
        "name": "Offshore Wind", "category": "renewable", "capex": 3200, "opex_fixed": 80,
        "opex_variable": 3, "fuel_cost": 0, "lifetime": 25, "discount_rate": 7,
        "emission_factor": 0, "enabled": False,
    },
    "BATTERY": {
        "name": "Li-Ion Battery", "category": "storage", "capex": 480, "capex_per_kwh": 120,
        "duration_hours": 4, "opex_fixed": 10, "opex_variable": 1, "fuel_cost": 0,
        "lifetime": 20, "discount_rate": 5, "emission_factor": 0, "enabled": True,
    },
    "NUCLEAR": {
        "name": "Nuclear", "category": "dispatchable", "capex": 8500, "opex_fixed": 125,
        "opex_variable": 2, "fuel_cost": 8, "lifetime": 40, "discount_rate": 7,
        "emission_factor": 0, "enabled": True,
    },
    "COAL": {
        "name": "Coal", "category": "dispatchable", "capex": 3500, "opex_fixed": 40,
        "opex_variable": 5, "fuel_cost": 25, "lifetime": 30, "discount_rate": 10,
        "emission_factor": 950, "enabled": True,
    },
    "GAS_CCGT": {
        "name": "Gas CCGT", "category": "dispatchable", "capex": 2000, "opex_fixed": 30,
        "opex_variable": 6, "fuel_cost": 50, "lifetime": 20, "discount_rate": 10,
        "emission_factor": 350, "enabled": True,
    },
    "GAS_OCGT": {
        "name": "Gas OCGT (Peaker)", "category": "dispatchable", "capex": 800,
        "opex_fixed": 20, "opex_variable": 10, "fuel_cost": 68.3, "lifetime": 20,
        "discount_rate": 10, "emission_factor": 500, "enabled": True,
    },
    "HYDROGEN": {
        "name": "Hydrogen Peaker", "category": "dispatchable", "capex": 1000,
        "opex_fixed": 25, "opex_variable": 8, "fuel_cost": 200, "lifetime": 20,
        "discount_rate": 8, "emission_factor": 0, "enabled": True,
    },
    "DIESEL": {
        "name": "Diesel Gen", "category": "dispatchable", "capex": 350, "opex_fixed": 10,
        "opex_variable": 15, "fuel_cost": 150, "lifetime": 20, "discount_rate": 10,
        "emission_factor": 700, "enabled": True,
    },
}


def default_catalog() -> TechnologyCatalog:
    return TechnologyCatalog.from_dict(DEFAULT_TECHNOLOGIES)


# ======================================================================
# Cost trajectories (2025 -- 2050)
# ======================================================================

# capex in $/kW (battery: $/kWh), opex_fixed in $/kW-yr.
COST_PROJECTIONS: dict[int, dict[str, dict[str, float]]] = {
    2025: {"SOLAR": {"capex": 850, "opex_fixed": 10},
           "WIND": {"capex": 1400, "opex_fixed": 35},
           "BATTERY": {"capex_per_kwh": 120, "opex_fixed": 10}},
    2030: {"SOLAR": {"capex": 650, "opex_fixed": 9},
           "WIND": {"capex": 1150, "opex_fixed": 32},
           "BATTERY": {"capex_per_kwh": 90, "opex_fixed": 8}},
    2035: {"SOLAR": {"capex": 550, "opex_fixed": 8},
           "WIND": {"capex": 1000, "opex_fixed": 29},
           "BATTERY": {"capex_per_kwh": 70, "opex_fixed": 6}},
    2040: {"SOLAR": {"capex": 500, "opex_fixed": 7},
           "WIND": {"capex": 900, "opex_fixed": 26},
           "BATTERY": {"capex_per_kwh": 55, "opex_fixed": 5}},
    2045: {"SOLAR": {"capex": 450, "opex_fixed": 6},
           "WIND": {"capex": 820, "opex_fixed": 24},
           "BATTERY": {"capex_per_kwh": 45, "opex_fixed": 4}},
    2050: {"SOLAR": {"capex": 400, "opex_fixed": 6},
           "WIND": {"capex": 780, "opex_fixed": 22},
           "BATTERY": {"capex_per_kwh": 35, "opex_fixed": 3}},
}


def projected_costs(year: float) -> dict[str, dict[str, float]]:
    """Interpolate the cost trajectory linearly; clamp outside 2025 -- 2050."""
    years = np.array(sorted(COST_PROJECTIONS), dtype=np.float64)
    projected: dict[str, dict[str, float]] = {}
    for tech_id, params in COST_PROJECTIONS[int(years[0])].items():
        projected[tech_id] = {}
        for param in params:
            values = np.array(
                [COST_PROJECTIONS[int(y)][tech_id][param] for y in years], dtype=np.float64
            )
            projected[tech_id][param] = float(np.interp(year, years, values))
    return projected


def apply_cost_projection(catalog: TechnologyCatalog, year: float) -> TechnologyCatalog:
    """Return *catalog* with solar, wind and battery costs projected to *year*.

    The battery's $/kW capex is kept consistent with its $/kWh figure.
    """
    updated = catalog
    for tech_id, params in projected_costs(year).items():
        if tech_id not in updated:
            continue
        changes = dict(params)
        if "capex_per_kwh" in changes:
            changes["capex"] = changes["capex_per_kwh"] * updated[tech_id].duration_hours
        updated = updated.with_overrides(tech_id, **changes)
    return updated
