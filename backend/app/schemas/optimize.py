from typing import Any

from pydantic import BaseModel, Field


class OptimizeRequest(BaseModel):
    model_config = {"populate_by_name": True}

    techs: dict[str, dict[str, Any]] | None = None
    demand_profile: str = Field(default="spain", alias="demandProfile")
    region: str = Field(default="es", max_length=8)
    min_renewables: float = Field(default=0.0, ge=0, le=100, alias="minRenewables")
    cost_year: float | None = Field(default=None, ge=2025, le=2050, alias="costYear")


class HourlyDispatchResponse(BaseModel):
    hour: int
    timestamp: str | None
    demand: float
    solar: float
    wind: float
    offshore: float
    weight: float
    include_in_stats: bool
    generation: dict[str, float]
    battery_charge: float
    battery_discharge: float
    battery_soc: float
    shortfall: float
    curtailment: float
    curtailment_by_tech: dict[str, float]


class TechnologyCostResponse(BaseModel):
    fixed: float
    variable: float
    total: float
    lcoe_contribution: float


class OptimizeResponse(BaseModel):
    hourly: list[HourlyDispatchResponse]
    capacities: dict[str, float]
    mix: dict[str, float]
    cost_breakdown: dict[str, TechnologyCostResponse]
    total_cost: float
    lcoe: float
    total_co2: float
    unserved_energy: float
    annual_served: float
    annual_demand: float
    objective_value: float
    solver_status: str


class HealthResponse(BaseModel):
    status: str
    data_loaded: bool
    solver_ready: bool
    regions: list[str]


class WeekConfigResponse(BaseModel):
    start_hour: int
    weight: float
    is_extreme: bool
    include_in_stats: bool
    label: str


class TechnologyResponse(BaseModel):
    id: str
    name: str
    category: str
    capex: float
    opex_fixed: float
    opex_variable: float
    fuel_cost: float
    lifetime: float
    discount_rate: float
    emission_factor: float
    enabled: bool
    is_fixed: bool
    fixed_capacity: float
    capex_per_kwh: float | None
    duration_hours: float
    resource: str | None
    capacity_unit: str
