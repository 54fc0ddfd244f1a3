"""
Calculator registry — maps kit builder keys to calculator classes.

Kit builders the operator names freely (caravan-kit, shed-kit, ...) share
the roof kit rates until they get a calculator of their own.
"""

from .roof_kit import RoofKitCalculator
from .base import BaseCalculator

DEFAULT_CALCULATOR = "roof-kit"

CALCULATOR_REGISTRY: dict[str, type] = {
    "roof-kit": RoofKitCalculator,
}


def get_calculator(calculator_key: str = None) -> BaseCalculator:
    """Returns a calculator instance for a kit key, falling back to the roof kit."""
    key = (calculator_key or "").strip().lower()
    return CALCULATOR_REGISTRY.get(key, CALCULATOR_REGISTRY[DEFAULT_CALCULATOR])()


def has_calculator(calculator_key: str) -> bool:
    """Check if a dedicated calculator exists for a kit key."""
    return (calculator_key or "").strip().lower() in CALCULATOR_REGISTRY


def list_calculators() -> list[str]:
    """List all registered calculator keys."""
    return list(CALCULATOR_REGISTRY.keys())
