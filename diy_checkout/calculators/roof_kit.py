"""
Roof kit calculator — area (m²) → multi-role product breakdown.

Corrugated/painted profile only. Every volume role goes through the bucket
optimizer; the brush kit is a single bundled item picked by area.
"""

import logging

from ..models import Role
from ..role_resolver import select_brush_variant
from .base import BaseCalculator, format_size
from .bucket_optimizer import optimize_buckets
from .coverage import compute_role_volumes

logger = logging.getLogger(__name__)

# Display suffix per volume role
ROLE_LABELS = {
    Role.SEALANT: "{size}L",
    Role.THERMAL: "{size}L",
    Role.SEALER: "{size}L",
    Role.GEOTEXTILE: "{size}m Roll",
    Role.RAPID_CURE: "{size}L Bottle",
}


class RoofKitCalculator(BaseCalculator):

    def calculate(self, area_m2: float, variants_by_role: dict,
                  coverage_overrides: dict = None) -> dict:
        area = self.parse_area(area_m2)
        volumes = compute_role_volumes(area, coverage_overrides)

        line_items = []
        unmapped = []

        for role, label in ROLE_LABELS.items():
            needed = volumes[role]
            variants = variants_by_role.get(role) or []
            if needed > 0 and not variants:
                # Quote still goes out without this role; flagged for the operator
                logger.warning("No catalog products mapped to role %s (%.2f needed)",
                               role.value, needed)
                unmapped.append(role)
                continue
            for bucket in optimize_buckets(needed, variants):
                line_items.append(self.make_line_item(
                    role=role,
                    size=bucket["size"],
                    label=label.format(size=format_size(bucket["size"])),
                    quantity=bucket["quantity"],
                ))

        brush_variants = variants_by_role.get(Role.BRUSH_KIT) or []
        index, label = select_brush_variant(brush_variants, area) if area > 0 else (None, None)
        if index is not None:
            item = self.make_line_item(
                role=Role.BRUSH_KIT,
                size=brush_variants[index].get("size") or 0,
                label=label,
                quantity=1,
            )
            item["index"] = index
            line_items.append(item)
        elif area > 0:
            unmapped.append(Role.BRUSH_KIT)

        breakdown = self.make_breakdown(line_items, volumes[Role.SEALANT], unmapped)
        breakdown["volumes"] = {role.value: vol for role, vol in volumes.items()}
        return breakdown


def compute_breakdown(area_m2: float, variants_by_role: dict,
                      coverage_overrides: dict = None) -> dict:
    """Roof kit Breakdown for an area and per-role variant tables."""
    return RoofKitCalculator().calculate(area_m2, variants_by_role, coverage_overrides)
