"""
Abstract base class for all kit calculators.

Input: area in m², pack variants per role, optional coverage overrides
Output: Breakdown dict {line_items, sealant_liters, total_item_count, unmapped_roles}
"""

import math
from abc import ABC, abstractmethod


def ceil2(value: float) -> float:
    """Round UP to 2 decimal places, ignoring binary float noise (15.000000000000002 -> 15.0)."""
    return math.ceil(round(value * 100, 6)) / 100


def ceil_whole(value: float) -> int:
    """Round UP to the next whole unit, ignoring binary float noise."""
    return math.ceil(round(value, 6))


def format_size(size: float) -> str:
    """15.0 -> '15', 0.5 -> '0.5'."""
    return f"{size:g}"


class BaseCalculator(ABC):
    """All kit calculators inherit from this."""

    @abstractmethod
    def calculate(self, area_m2: float, variants_by_role: dict,
                  coverage_overrides: dict = None) -> dict:
        """
        Takes the area and the per-role variant tables.
        Returns a Breakdown dict.
        """
        pass

    # --- Helper methods for all calculators ---

    def parse_area(self, value, default: float = 0.0) -> float:
        """Parse an area from user input. Handles strings like '100', '100 m2', '42.5sqm'."""
        if value is None:
            return default
        try:
            text = str(value).strip().lower()
            for suffix in ("sqm", "m²", "m2"):
                if text.endswith(suffix):
                    text = text[: -len(suffix)].strip()
            area = float(text)
            if not math.isfinite(area):
                return default
            return max(0.0, area)
        except (ValueError, TypeError):
            return default

    def make_line_item(self, role, size: float, label: str, quantity: int) -> dict:
        """Build a LineItem dict."""
        return {
            "role": role,
            "size": size,
            "label": label,
            "quantity": int(quantity),
        }

    def make_breakdown(self, line_items: list, sealant_liters: float,
                       unmapped_roles: list = None) -> dict:
        """Build the Breakdown output dict."""
        return {
            "line_items": line_items,
            "sealant_liters": sealant_liters,
            "total_item_count": sum(li["quantity"] for li in line_items),
            "unmapped_roles": unmapped_roles or [],
        }
