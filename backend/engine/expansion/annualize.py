"""Annualised cost helpers for capacity-expansion planning.

Turns one-off capital costs into equivalent yearly payments with the
capital recovery factor, and collects the per-MWh operating cost of each
technology.  Monetary values are in USD; power in MW, energy in MWh.
"""

from __future__ import annotations

from .catalog import TechnologyDefinition

KW_PER_MW: float = 1000.0


def capital_recovery_factor(rate: float, years: float) -> float:
    """Annuity factor converting a present cost into *years* equal payments.

    ``CRF = r (1 + r)^n / ((1 + r)^n - 1)``; falls back to straight-line
    ``1 / n`` for a zero rate.  *rate* is a fraction (0.07 = 7 %).
    """
    if years <= 0:
        return 0.0
    if rate == 0:
        return 1.0 / years
    growth = (1.0 + rate) ** years
    return rate * growth / (growth - 1.0)


def _annualized_capex(capex: float, tech: TechnologyDefinition) -> float:
    return capex * capital_recovery_factor(tech.discount_rate / 100.0, tech.lifetime)


def storage_capex_per_kwh(tech: TechnologyDefinition) -> float:
    """Energy-based capex ($/kWh), derived from $/kW and duration when absent."""
    if tech.capex_per_kwh is not None:
        return float(tech.capex_per_kwh)
    return tech.capex / tech.duration_hours


def annualized_fixed_cost(tech: TechnologyDefinition) -> float:
    """Yearly fixed cost per unit of capacity.

    Returns $/MW-yr for generators and $/MWh-yr (energy capacity) for
    storage.  Storage fixed O&M is quoted per kW and is prorated over the
    technology's duration.
    """
    if tech.is_storage:
        per_kwh = (
            _annualized_capex(storage_capex_per_kwh(tech), tech)
            + tech.opex_fixed / tech.duration_hours
        )
        return per_kwh * KW_PER_MW
    return (_annualized_capex(tech.capex, tech) + tech.opex_fixed) * KW_PER_MW


def marginal_cost(tech: TechnologyDefinition) -> float:
    """Variable operating cost, $/MWh."""
    return tech.opex_variable + tech.fuel_cost


def capacity_unit(tech: TechnologyDefinition) -> str:
    """Unit of the optimised capacity: MWh of energy for storage, MW otherwise."""
    return "MWh" if tech.is_storage else "MW"


def fixed_capacity_mw(tech: TechnologyDefinition) -> float:
    """Caller-pinned capacity in model units.

    ``fixed_capacity`` is given in GW.  Storage capacity is modelled as
    energy; at a C-rate of 1 a GW of power is a GWh of energy.
    """
    return tech.fixed_capacity * KW_PER_MW
