"""
Checkout Assembler — area or bucket counts in, checkout link + preview out.

Area mode:      coverage → role resolver → bucket optimizer → pricing → checkout
Explicit mode:  sealant bucket counts → pricing → checkout (no optimizer)

Checkout goes one of two ways:
1. Cart link   — every item has a variant id and the shop domain is known.
                 Pure URL building, no network call.
2. Draft order — otherwise. One POST; if the platform rejects a variant,
                 exactly one retry with variant ids stripped so it creates
                 free-form line items.

Outbound calls are strictly sequential: image lookup (only when an item has
no image yet), draft order, retry. Nothing is persisted here.
"""

import logging
import math
import re
from typing import Optional

from sqlalchemy.orm import Session

from . import catalog
from .calculators.bucket_optimizer import VolumeTooLargeError
from .calculators.registry import get_calculator
from .commerce import CommerceClient, CommerceErrorKind, FIXED_DISCOUNT_CODE_BY_PERCENT
from .config import settings
from .errors import CheckoutError, ConfigurationError, InputError, PlatformError
from .models import Role
from .role_resolver import RoleProductResolver

logger = logging.getLogger(__name__)

CART_LINK = "cart_link"
DRAFT_ORDER = "draft_order"

DRAFT_ORDER_TAGS = "diy,chat"

# Explicit bucket counts, mapped onto sealant sizes largest first
EXPLICIT_COUNT_FIELDS = ("count_15l", "count_10l", "count_5l")

# "15L", "2.5 L", "20m": the size/variant label shown next to a title
VARIANT_LABEL_RE = re.compile(r"\d+(?:\.\d+)?\s*(?:[lL]|m)\b")


def format_money(value: float) -> str:
    """1234.5 -> '1,234.50'."""
    return f"{value:,.2f}"


def extract_variant_label(title: str) -> Optional[str]:
    match = VARIANT_LABEL_RE.search(title or "")
    return match.group(0).strip() if match else None


def accepted_discount_percent(value):
    """
    The discount percent if it falls in the allowed range, else None.
    Out-of-range values are ignored rather than rejected so a bad chat
    discount never blocks checkout.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        pct = float(value)
    except (TypeError, ValueError):
        return None
    if not settings.DISCOUNT_MIN_PERCENT <= pct <= settings.DISCOUNT_MAX_PERCENT:
        return None
    return int(pct) if pct.is_integer() else pct


def compute_pricing(subtotal: float, discount_percent=None) -> dict:
    """
    Returns {"subtotal", "discount_percent", "discount_amount", "total"}.
    discount_percent is None when no discount applies.
    """
    subtotal = round(subtotal, 2)
    pct = accepted_discount_percent(discount_percent)
    if pct is None:
        return {"subtotal": subtotal, "discount_percent": None,
                "discount_amount": 0.0, "total": subtotal}
    amount = round(subtotal * pct / 100, 2)
    return {
        "subtotal": subtotal,
        "discount_percent": pct,
        "discount_amount": amount,
        "total": round(subtotal - amount, 2),
    }


def check_area(area_m2):
    """Raise InputError unless the area is a finite number within MAX_AREA_M2."""
    try:
        area = float(area_m2)
    except (TypeError, ValueError) as e:
        raise InputError("area_m2 must be a number.") from e
    if not math.isfinite(area) or area < 0:
        raise InputError("area_m2 must be a finite, non-negative number.")
    if area > settings.MAX_AREA_M2:
        raise InputError(f"area_m2 exceeds the {settings.MAX_AREA_M2:g} m² limit.")


def default_images_by_size() -> dict:
    """Environment-configured fallback image per sealant bucket size."""
    images = {
        15.0: settings.DIY_PRODUCT_IMAGE_15L,
        10.0: settings.DIY_PRODUCT_IMAGE_10L,
        5.0: settings.DIY_PRODUCT_IMAGE_5L,
    }
    return {size: url.strip() for size, url in images.items() if url and url.strip()}


class CheckoutAssembler:
    """
    Builds a DIY checkout for one widget owner.

    db: session for the catalog/config provider
    commerce: commerce platform client (CommerceClient or a stand-in)
    """

    def __init__(self, db: Session, commerce=None):
        self.db = db
        self.commerce = commerce if commerce is not None else CommerceClient()

    def assemble_checkout(self, owner_id: str, checkout_input: dict) -> dict:
        """
        Args:
            checkout_input: {
                "area_m2": float,                      # area mode, or
                "count_15l" / "count_10l" / "count_5l": int,  # explicit mode
                "discount_percent": float,             # optional, 1-20
                "email": str,                          # optional
                "calculator_key": str,                 # optional kit builder key
            }

        Returns:
            {"ok": True, "data": {"checkout_url", "checkout_path", "line_items", "summary"}}
            or {"ok": False, "error": str, "kind": str}
        """
        try:
            data = self._assemble(owner_id, dict(checkout_input or {}))
        except CheckoutError as e:
            logger.info("Checkout for %s not created (%s): %s", owner_id, e.kind, e)
            return {"ok": False, "error": str(e), "kind": e.kind}
        return {"ok": True, "data": data}

    def preview_breakdown(self, owner_id: str, area_m2: float,
                          calculator_key: str = None) -> dict:
        """Breakdown for an area against the owner's catalog. No network calls."""
        try:
            rows = catalog.get_catalog(self.db, owner_id)
            if not rows:
                raise ConfigurationError(
                    "No product pricing configured. Add products in Settings → Product Pricing."
                )
            kit = catalog.get_kit_builder(self.db, owner_id, calculator_key)
            resolver = RoleProductResolver(rows, kit.product_entries if kit else None)
            breakdown = self.build_breakdown(area_m2, resolver, kit.calculator_key if kit else None)
        except CheckoutError as e:
            return {"ok": False, "error": str(e), "kind": e.kind}
        return {"ok": True, "data": breakdown}

    def build_breakdown(self, area_m2: float, resolver: RoleProductResolver,
                        calculator_key: str = None) -> dict:
        check_area(area_m2)
        calculator = get_calculator(calculator_key)
        try:
            return calculator.calculate(area_m2, resolver.variants_by_role(),
                                        resolver.coverage_overrides)
        except VolumeTooLargeError as e:
            raise InputError(f"{e}. Split the job into smaller areas.") from e

    # --- Pipeline ---

    def _assemble(self, owner_id: str, checkout_input: dict) -> dict:
        config = catalog.get_commerce_config(self.db, owner_id)
        if config is None:
            raise ConfigurationError(
                "Shopify is not connected. Connect Shopify in Settings → Integrations."
            )
        rows = catalog.get_catalog(self.db, owner_id)
        if not rows:
            raise ConfigurationError(
                "No product pricing configured. Add products in Settings → Product Pricing."
            )

        kit = catalog.get_kit_builder(self.db, owner_id, checkout_input.get("calculator_key"))
        resolver = RoleProductResolver(rows, kit.product_entries if kit else None)

        area = checkout_input.get("area_m2")
        if area is not None:
            check_area(area)
        counts = self._explicit_counts(checkout_input)
        if area is not None and area > 0:
            breakdown = self.build_breakdown(area, resolver, kit.calculator_key if kit else None)
            items = self._items_from_breakdown(breakdown, resolver)
            liters = breakdown["sealant_liters"]
        elif any(counts):
            items, liters = self._items_from_counts(counts, resolver)
        else:
            raise InputError(
                "Provide area_m2 or at least one bucket count (count_15l, count_10l, count_5l)."
            )
        if not items:
            raise InputError("No items to add. Provide area_m2 or bucket counts.")

        self._attach_images(config, items)

        currency = rows[0].get("currency") or settings.DEFAULT_CURRENCY
        subtotal = sum(item["price"] * item["quantity"] for item in items)
        pricing = compute_pricing(subtotal, checkout_input.get("discount_percent"))
        note = self._build_note(items, liters)

        checkout_url, path = self._create_checkout(
            config, items, pricing, currency, note, checkout_input.get("email"),
        )
        logger.info("Checkout for %s via %s: %d line items, total %.2f %s",
                    owner_id, path, len(items), pricing["total"], currency)

        return {
            "checkout_url": checkout_url,
            "checkout_path": path,
            "line_items": [self._preview_item(item) for item in items],
            "summary": self._build_summary(items, pricing, currency),
        }

    def _explicit_counts(self, checkout_input: dict) -> list:
        counts = []
        for field in EXPLICIT_COUNT_FIELDS:
            try:
                counts.append(max(0, int(checkout_input.get(field) or 0)))
            except (TypeError, ValueError):
                counts.append(0)
        return counts

    def _make_item(self, role: Role, size: float, title: str, quantity: int, row: dict) -> dict:
        return {
            "role": role,
            "size": size,
            "title": title,
            "quantity": quantity,
            "price": round(row["price"], 2),
            "variant_id": row.get("variant_id"),
            "image_url": row.get("image_url"),
        }

    def _items_from_breakdown(self, breakdown: dict, resolver: RoleProductResolver) -> list:
        items = []
        for li in breakdown["line_items"]:
            if li["quantity"] <= 0:
                continue
            row = resolver.resolve(li["role"], size=li["size"], index=li.get("index"))
            if row is None:
                logger.warning("No catalog row for %s %s", li["role"].value, li["label"])
                continue
            name = resolver.display_name(row)
            if li["role"] == Role.BRUSH_KIT or li["label"].lower() in name.lower():
                title = name
            else:
                title = f"{name} {li['label']}"
            items.append(self._make_item(li["role"], li["size"], title, li["quantity"], row))
        return items

    def _items_from_counts(self, counts: list, resolver: RoleProductResolver) -> tuple:
        items = []
        for row, quantity in zip(resolver.sealant_variants(), counts):
            if quantity <= 0:
                continue
            name = resolver.display_name(row)
            label = f"{row['size']:g}L"
            title = name if label.lower() in name.lower() else f"{name} {label}"
            items.append(self._make_item(Role.SEALANT, row["size"], title, quantity, row))
        liters = sum(item["size"] * item["quantity"] for item in items)
        return items, liters

    def _attach_images(self, config, items: list):
        """Catalog image → environment default (sealant only) → platform lookup by title."""
        defaults = default_images_by_size()
        for item in items:
            if not item["image_url"] and item["role"] == Role.SEALANT:
                item["image_url"] = defaults.get(item["size"])

        missing = [item for item in items if not item["image_url"]]
        if not missing:
            return

        buckets = {}
        for item in missing:
            buckets.setdefault(item["title"], {
                "title": item["title"],
                "size": item["size"],
                "unit": "m" if item["role"] == Role.GEOTEXTILE else "L",
                "price": item["price"],
            })
        try:
            found = self.commerce.fetch_product_images(config, list(buckets.values()))
        except Exception as e:
            # Images are cosmetic; never block checkout on them
            logger.warning("Product image lookup failed: %s", e)
            return
        for item in missing:
            item["image_url"] = (found or {}).get(item["title"]) or None

    def _build_note(self, items: list, liters: float) -> str:
        parts = ", ".join(f"{item['quantity']}× {item['title']}" for item in items)
        return f"DIY quote: {liters:g}L total ({parts})"

    def _create_checkout(self, config, items: list, pricing: dict, currency: str,
                         note: str, email: str = None) -> tuple:
        """Returns (checkout_url, path)."""
        pct = pricing["discount_percent"]

        if config.shop_domain and all(item["variant_id"] for item in items):
            url = self.commerce.build_cart_url(
                config.shop_domain,
                [{"variant_id": item["variant_id"], "quantity": item["quantity"]} for item in items],
                discount_code=FIXED_DISCOUNT_CODE_BY_PERCENT.get(pct) if pct else None,
                note=note,
            )
            return url, CART_LINK

        applied_discount = None
        if pct:
            applied_discount = {
                "title": f"{pct:g}% off",
                "description": f"Chat discount - {pct:g}% off",
                "value_type": "percentage",
                "value": f"{pct:g}",
                "amount": f"{pricing['discount_amount']:.2f}",
            }
        payload = {
            "line_items": [
                {
                    "title": item["title"],
                    "quantity": item["quantity"],
                    "price": f"{item['price']:.2f}",
                    "variant_id": item["variant_id"],
                }
                for item in items
            ],
            "note": note,
            "tags": DRAFT_ORDER_TAGS,
            "currency": currency,
            "applied_discount": applied_discount,
            "email": (email or "").strip() or None,
        }

        result = self.commerce.create_draft_order(config, payload)
        if not result.ok and result.error_kind == CommerceErrorKind.VARIANT_UNAVAILABLE:
            logger.warning("Draft order rejected a variant (%s); retrying as custom line items",
                           result.error)
            payload = dict(payload, line_items=[
                dict(li, variant_id=None) for li in payload["line_items"]
            ])
            result = self.commerce.create_draft_order(config, payload)

        if not result.ok:
            raise PlatformError(result.error or "Failed to create checkout link")
        if not result.checkout_url:
            raise PlatformError("Checkout link was not returned by Shopify.")
        return result.checkout_url, DRAFT_ORDER

    # --- Preview ---

    def _preview_item(self, item: dict) -> dict:
        return {
            "image_url": item["image_url"] or None,
            "title": item["title"],
            "variant": extract_variant_label(item["title"]),
            "quantity": item["quantity"],
            "unit_price": format_money(item["price"]),
            "line_total": format_money(item["price"] * item["quantity"]),
        }

    def _build_summary(self, items: list, pricing: dict, currency: str) -> dict:
        summary = {
            "item_count": sum(item["quantity"] for item in items),
            "subtotal": format_money(pricing["subtotal"]),
            "total": format_money(pricing["total"]),
            "currency": currency,
        }
        if pricing["discount_percent"] is not None:
            summary["discount_percent"] = pricing["discount_percent"]
            summary["discount_amount"] = format_money(pricing["discount_amount"])
        return summary


def assemble_checkout(db: Session, owner_id: str, checkout_input: dict,
                      commerce=None) -> dict:
    """Module-level entry point; see CheckoutAssembler.assemble_checkout."""
    return CheckoutAssembler(db, commerce).assemble_checkout(owner_id, checkout_input)
