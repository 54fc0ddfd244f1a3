"""
Coverage Calculator — surface area (m²) → required volume per role.

Rates are the corrugated/painted profile defaults. Sealant, sealer and
geotextile only cover the seams and cracks, modelled as a coverage area of
15% of the total area. Thermal coating covers the full surface. Rapid-cure
additive is dosed per liter of sealant actually required.

All volumes round UP to 2dp, except geotextile metres which round UP to
whole units (rolls are sold by the metre).
"""

from ..models import Role
from .base import ceil2, ceil_whole

# Corrugated/painted profile rates (L/m², m/m² for geotextile)
DEFAULT_RATES = {
    Role.SEALANT: 1.5,
    Role.THERMAL: 0.5,
    Role.SEALER: 1 / 8,
    Role.GEOTEXTILE: 1.0,
    Role.RAPID_CURE: 0.02,  # L per L of sealant, not per m²
}

# Share of total area that is seams/cracks
COVERAGE_FRACTION = 0.15

# Roles whose rate applies to the coverage area instead of the full area
COVERAGE_AREA_ROLES = (Role.SEALANT, Role.SEALER, Role.GEOTEXTILE)


def coverage_area(area_m2: float) -> float:
    """Seams/cracks sub-area used for sealant, sealer and geotextile."""
    return ceil2(max(0.0, area_m2) * COVERAGE_FRACTION)


def resolve_rates(overrides: dict = None) -> dict:
    """Default rates with any per-role overrides applied on top."""
    rates = dict(DEFAULT_RATES)
    for role, rate in (overrides or {}).items():
        if role in rates and rate is not None:
            rates[role] = float(rate)
    return rates


def compute_role_volumes(area_m2: float, overrides: dict = None) -> dict:
    """
    Required volume per role for a surface area.

    Returns {Role: volume}; geotextile is whole metres, everything else liters.
    The brush kit role carries no volume and is not included.
    """
    area = max(0.0, area_m2 or 0.0)
    rates = resolve_rates(overrides)
    cov_area = coverage_area(area)

    sealant = ceil2(cov_area * rates[Role.SEALANT])
    return {
        Role.SEALANT: sealant,
        Role.THERMAL: ceil2(area * rates[Role.THERMAL]),
        Role.SEALER: ceil2(cov_area * rates[Role.SEALER]),
        Role.GEOTEXTILE: ceil_whole(cov_area * rates[Role.GEOTEXTILE]),
        Role.RAPID_CURE: ceil2(sealant * rates[Role.RAPID_CURE]),
    }
