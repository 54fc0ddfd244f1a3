"""
Role–Product Resolver — maps abstract kit roles onto an operator's catalog.

The Role enum is closed; which catalog products fill each role is operator
data: a kit builder's product_entries list, e.g.

    [{"product_handle": "netzero-ultratherm", "role": "sealant",
      "coverage_per_sqm": 1.2, "display_name": "UltraTherm Sealant"}, ...]

From that we derive role -> ordered handle list, per-role coverage overrides,
and per-role priced variant tables the optimizer runs over.
"""

import logging
import math

from .config import settings
from .models import Role, ROLE_ORDER, LEGACY_ROLE_HANDLES, parse_role

logger = logging.getLogger(__name__)

# Catalog products with a blank handle predate kit builders and were sealant
BLANK_HANDLE_FALLBACK = LEGACY_ROLE_HANDLES[Role.SEALANT]

BRUSH_ONLY_LABEL = "Brush Kit"
BRUSH_ROLLER_LABEL = "Brush + Roller Kit"


def normalize_handle(handle) -> str:
    return str(handle or "").strip().lower()


def build_role_mapping(product_entries: list) -> tuple:
    """
    Derive (role_handles, coverage_overrides, display_names) from kit entries.

    role_handles: {Role: [handle, ...]} in entry order, no duplicates
    coverage_overrides: {Role: rate} — first entry per role with a finite rate
    display_names: {handle: name}
    """
    role_handles = {role: [] for role in ROLE_ORDER}
    coverage_overrides = {}
    display_names = {}

    for entry in product_entries or []:
        handle = normalize_handle(entry.get("product_handle"))
        role = parse_role(entry.get("role"))
        if not handle or role is None:
            logger.debug("Skipping kit entry %r (blank handle or unknown role)", entry)
            continue
        if handle not in role_handles[role]:
            role_handles[role].append(handle)

        rate = entry.get("coverage_per_sqm")
        if rate is not None and role not in coverage_overrides:
            try:
                rate = float(rate)
            except (TypeError, ValueError):
                rate = None
            if rate is not None and math.isfinite(rate):
                coverage_overrides[role] = rate

        name = str(entry.get("display_name") or "").strip()
        if name and handle not in display_names:
            display_names[handle] = name

    return role_handles, coverage_overrides, display_names


def default_role_mapping() -> dict:
    """Legacy one-handle-per-role mapping for operators without a kit builder."""
    return {role: [LEGACY_ROLE_HANDLES[role]] for role in ROLE_ORDER}


def dedupe_by_size(rows: list) -> list:
    """Keep the cheapest row per size, in first-seen size order."""
    best = {}
    order = []
    for row in rows:
        size = row["size"]
        if size not in best:
            order.append(size)
            best[size] = row
        elif row["price"] < best[size]["price"]:
            best[size] = row
    return [best[size] for size in order]


def dedupe_by_entry(rows: list) -> list:
    """Keep one row per (handle, size) — distinct kits may share a nominal size."""
    seen = {}
    order = []
    for row in rows:
        key = (normalize_handle(row.get("handle")), row["size"])
        if key not in seen:
            order.append(key)
            seen[key] = row
        elif row["price"] < seen[key]["price"]:
            seen[key] = row
    return [seen[key] for key in order]


def select_brush_variant(variants: list, area_m2: float,
                         brush_only_max_area: float = None) -> tuple:
    """
    Pick the bundled brush kit for an area.

    With two entries, the first is the brush-only kit (area below the
    threshold) and the second the brush + roller combo. A single entry is
    always used. Returns (index, label) or (None, None) when there are none.
    """
    if not variants:
        return None, None
    threshold = settings.BRUSH_ONLY_MAX_AREA_M2 if brush_only_max_area is None else brush_only_max_area
    brush_only = area_m2 < threshold
    label = BRUSH_ONLY_LABEL if brush_only else BRUSH_ROLLER_LABEL
    if len(variants) >= 2:
        return (0 if brush_only else 1), label
    return 0, label


class RoleProductResolver:
    """
    Resolves roles to priced catalog rows for one operator.

    catalog: flattened catalog rows from catalog.get_catalog()
    product_entries: kit builder entries; None/empty uses the legacy mapping
    """

    def __init__(self, catalog: list, product_entries: list = None):
        self.catalog = [dict(row) for row in catalog or []]
        if product_entries:
            self.role_handles, self.coverage_overrides, self.display_names = \
                build_role_mapping(product_entries)
        else:
            self.role_handles = default_role_mapping()
            self.coverage_overrides = {}
            self.display_names = {}
        self._tables = self._build_tables()

    def _build_tables(self) -> dict:
        by_handle = {}
        for row in self.catalog:
            handle = normalize_handle(row.get("handle")) or BLANK_HANDLE_FALLBACK
            by_handle.setdefault(handle, []).append(row)

        tables = {}
        for role in ROLE_ORDER:
            rows = []
            for handle in self.role_handles.get(role, []):
                rows.extend(by_handle.get(handle, []))
            if role == Role.BRUSH_KIT:
                tables[role] = dedupe_by_entry(rows)
            else:
                tables[role] = dedupe_by_size(rows)
        return tables

    def table(self, role: Role) -> list:
        """Catalog rows backing a role, deduplicated."""
        return list(self._tables.get(role, []))

    def variants_by_role(self) -> dict:
        """{Role: [{"size", "price"}]} — the optimizer's view of the catalog."""
        return {
            role: [{"size": row["size"], "price": row["price"]} for row in rows]
            for role, rows in self._tables.items()
        }

    def sealant_variants(self) -> list:
        """Sealant rows, largest pack first (explicit bucket-count mode)."""
        return sorted(self.table(Role.SEALANT), key=lambda r: r["size"], reverse=True)

    def is_mapped(self, role: Role) -> bool:
        return bool(self._tables.get(role))

    def resolve(self, role: Role, size: float = None, index: int = None) -> dict:
        """Catalog row for a role by table index, or by size. None if absent."""
        rows = self._tables.get(role, [])
        if index is not None:
            return rows[index] if 0 <= index < len(rows) else None
        for row in rows:
            if row["size"] == size:
                return row
        return None

    def display_name(self, row: dict) -> str:
        handle = normalize_handle(row.get("handle")) or BLANK_HANDLE_FALLBACK
        return self.display_names.get(handle) or row.get("name") or handle
