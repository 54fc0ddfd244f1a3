"""
Coverage Calculator + roof kit breakdown tests.

Tests:
1-5.   Role volumes from area (default rates, rounding, overrides)
6-11.  compute_breakdown line items, labels, brush kit, unmapped roles
12-13. Calculator registry

No network, no database.
"""

from diy_checkout.calculators.base import ceil2, ceil_whole, format_size
from diy_checkout.calculators.coverage import (
    DEFAULT_RATES, coverage_area, compute_role_volumes, resolve_rates,
)
from diy_checkout.calculators.registry import get_calculator, has_calculator, list_calculators
from diy_checkout.calculators.roof_kit import RoofKitCalculator, compute_breakdown
from diy_checkout.models import Role


def _variants_by_role():
    """Priced packs per role, roughly matching a real store."""
    return {
        Role.SEALANT: [{"size": 15, "price": 389.99}, {"size": 10, "price": 285.99},
                       {"size": 5, "price": 149.99}],
        Role.THERMAL: [{"size": 15, "price": 299.00}, {"size": 4, "price": 99.00}],
        Role.SEALER: [{"size": 1, "price": 39.00}, {"size": 4, "price": 119.00}],
        Role.GEOTEXTILE: [{"size": 20, "price": 24.00}, {"size": 50, "price": 49.00}],
        Role.RAPID_CURE: [{"size": 0.5, "price": 19.00}, {"size": 1, "price": 29.00}],
        Role.BRUSH_KIT: [{"size": 0, "price": 15.00}, {"size": 0, "price": 35.00}],
    }


def _items(breakdown, role):
    return {li["size"]: li["quantity"] for li in breakdown["line_items"] if li["role"] == role}


# ============================================================
# 1-5. Role volumes
# ============================================================

def test_default_rates_for_100_m2():
    """100 m² → coverage 15, sealant 22.5 L, thermal 50 L, rapid-cure 0.45 L."""
    volumes = compute_role_volumes(100)
    assert coverage_area(100) == 15.0
    assert volumes[Role.SEALANT] == 22.5
    assert volumes[Role.THERMAL] == 50.0
    assert volumes[Role.RAPID_CURE] == 0.45
    assert volumes[Role.SEALER] == 1.88   # 15 / 8 = 1.875, rounded up
    assert volumes[Role.GEOTEXTILE] == 15


def test_volumes_round_up_not_nearest():
    """Every volume rounds UP to 2dp; geotextile rounds up to whole metres."""
    volumes = compute_role_volumes(33)
    # coverage = 4.95; sealant = 7.425 → 7.43
    assert volumes[Role.SEALANT] == 7.43
    # geotextile = 4.95 m → 5 m
    assert volumes[Role.GEOTEXTILE] == 5
    assert isinstance(volumes[Role.GEOTEXTILE], int)


def test_ceil_helpers_ignore_float_noise():
    """100 × 0.15 is 15.000000000000002 in binary; it must not become 15.01."""
    assert ceil2(100 * 0.15) == 15.0
    assert ceil2(1.001) == 1.01
    assert ceil_whole(3.0000000000000004) == 3
    assert ceil_whole(3.2) == 4
    assert format_size(15.0) == "15"
    assert format_size(0.5) == "0.5"


def test_zero_and_negative_area():
    volumes = compute_role_volumes(0)
    assert all(v == 0 for v in volumes.values())
    assert compute_role_volumes(-10) == volumes


def test_coverage_overrides_replace_defaults():
    """An override replaces the rate before the volume is computed."""
    volumes = compute_role_volumes(100, {Role.SEALANT: 2.0, Role.THERMAL: None})
    assert volumes[Role.SEALANT] == 30.0
    # None override keeps the default
    assert volumes[Role.THERMAL] == 50.0
    # Rapid-cure follows the overridden sealant liters
    assert volumes[Role.RAPID_CURE] == 0.6
    rates = resolve_rates({Role.SEALER: 0.25})
    assert rates[Role.SEALER] == 0.25
    assert rates[Role.SEALANT] == DEFAULT_RATES[Role.SEALANT]


# ============================================================
# 6-11. Breakdown
# ============================================================

def test_breakdown_100_m2():
    breakdown = compute_breakdown(100, _variants_by_role())
    assert breakdown["sealant_liters"] == 22.5
    assert breakdown["volumes"]["thermal"] == 50.0
    assert breakdown["volumes"]["rapid-cure"] == 0.45
    assert _items(breakdown, Role.SEALANT) == {15: 1, 10: 1}
    assert _items(breakdown, Role.THERMAL) == {15: 3, 4: 2}
    assert _items(breakdown, Role.SEALER) == {1: 2}
    assert _items(breakdown, Role.GEOTEXTILE) == {20: 1}
    assert _items(breakdown, Role.RAPID_CURE) == {0.5: 1}
    assert breakdown["total_item_count"] == sum(li["quantity"] for li in breakdown["line_items"])
    assert breakdown["unmapped_roles"] == []


def test_breakdown_labels():
    breakdown = compute_breakdown(100, _variants_by_role())
    labels = {(li["role"], li["label"]) for li in breakdown["line_items"]}
    assert (Role.SEALANT, "15L") in labels
    assert (Role.GEOTEXTILE, "20m Roll") in labels
    assert (Role.RAPID_CURE, "0.5L Bottle") in labels
    assert (Role.BRUSH_KIT, "Brush + Roller Kit") in labels


def test_brush_kit_by_area():
    """Below 5 m² the brush-only kit (first entry), otherwise the roller combo (second)."""
    small = compute_breakdown(4, _variants_by_role())
    large = compute_breakdown(5, _variants_by_role())
    small_brush = [li for li in small["line_items"] if li["role"] == Role.BRUSH_KIT]
    large_brush = [li for li in large["line_items"] if li["role"] == Role.BRUSH_KIT]
    assert small_brush[0]["index"] == 0
    assert small_brush[0]["label"] == "Brush Kit"
    assert large_brush[0]["index"] == 1
    assert large_brush[0]["quantity"] == 1


def test_single_brush_entry_always_used():
    variants = _variants_by_role()
    variants[Role.BRUSH_KIT] = [{"size": 0, "price": 15.00}]
    for area in (2, 80):
        breakdown = compute_breakdown(area, variants)
        brush = [li for li in breakdown["line_items"] if li["role"] == Role.BRUSH_KIT]
        assert len(brush) == 1
        assert brush[0]["index"] == 0


def test_unmapped_role_is_omitted_and_reported():
    """A role with volume but no catalog products adds no items and is reported."""
    variants = _variants_by_role()
    variants[Role.THERMAL] = []
    breakdown = compute_breakdown(100, variants)
    assert _items(breakdown, Role.THERMAL) == {}
    assert Role.THERMAL in breakdown["unmapped_roles"]
    # Other roles are unaffected
    assert _items(breakdown, Role.SEALANT) == {15: 1, 10: 1}


def test_breakdown_zero_area_is_empty():
    breakdown = compute_breakdown(0, _variants_by_role())
    assert breakdown["line_items"] == []
    assert breakdown["total_item_count"] == 0


def test_parse_area_strings():
    calc = RoofKitCalculator()
    assert calc.parse_area("100 m2") == 100.0
    assert calc.parse_area("42.5sqm") == 42.5
    assert calc.parse_area("lots") == 0.0
    assert calc.parse_area(None) == 0.0


# ============================================================
# 12-13. Registry
# ============================================================

def test_registry_roof_kit():
    assert has_calculator("roof-kit")
    assert "roof-kit" in list_calculators()
    assert isinstance(get_calculator("roof-kit"), RoofKitCalculator)


def test_registry_unknown_key_falls_back_to_roof_kit():
    assert not has_calculator("caravan-kit")
    assert isinstance(get_calculator("caravan-kit"), RoofKitCalculator)
    assert isinstance(get_calculator(None), RoofKitCalculator)
