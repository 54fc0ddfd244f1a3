"""
Catalog / config provider — the operator data the checkout core consumes.

- Commerce credential (shop domain + access token)
- Priced product catalog, flattened to one row per sellable variant
- Kit builders: role -> catalog product entries per kit key
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from . import models
from .commerce import CommerceConfig, normalize_shop_domain
from .config import settings
from .models import parse_role

logger = logging.getLogger(__name__)


# --- Commerce credential ---

def get_commerce_config(db: Session, owner_id: str) -> Optional[CommerceConfig]:
    """The owner's commerce config, or None if not connected."""
    row = db.query(models.CommerceIntegration).filter(
        models.CommerceIntegration.owner_id == owner_id
    ).first()
    if not row:
        return None
    token = (row.access_token or "").strip()
    domain = normalize_shop_domain(row.shop_domain)
    if not token or not domain:
        return None
    return CommerceConfig(
        shop_domain=domain,
        access_token=token,
        api_version=(row.api_version or "").strip() or settings.COMMERCE_API_VERSION,
    )


def save_commerce_integration(db: Session, owner_id: str, shop_domain: str,
                              access_token: str, api_version: str = None):
    row = db.query(models.CommerceIntegration).filter(
        models.CommerceIntegration.owner_id == owner_id
    ).first()
    if not row:
        row = models.CommerceIntegration(owner_id=owner_id)
        db.add(row)
    row.shop_domain = normalize_shop_domain(shop_domain)
    row.access_token = access_token.strip()
    row.api_version = api_version
    db.commit()
    db.refresh(row)
    return row


def delete_commerce_integration(db: Session, owner_id: str) -> bool:
    deleted = db.query(models.CommerceIntegration).filter(
        models.CommerceIntegration.owner_id == owner_id
    ).delete()
    db.commit()
    return bool(deleted)


# --- Product catalog ---

def _parse_variant(raw: dict) -> dict:
    """Normalize one stored variant; tolerate camelCase keys from older rows."""
    def pick(*keys):
        for key in keys:
            if raw.get(key) is not None:
                return raw[key]
        return None

    def number(value, default=0.0):
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    variant_id = pick("variant_id", "shopifyVariantId", "shopify_variant_id")
    image_url = pick("image_url", "imageUrl")
    return {
        "size": number(pick("size", "sizeLitres", "size_litres")),
        "price": round(number(pick("price")), 2),
        "currency": pick("currency") or settings.DEFAULT_CURRENCY,
        "variant_id": int(variant_id) if variant_id not in (None, "") else None,
        "image_url": image_url.strip() if isinstance(image_url, str) and image_url.strip() else None,
        "color": pick("color"),
    }


def get_catalog(db: Session, owner_id: str) -> list:
    """
    The owner's priced catalog, one row per variant, in sort order.

    Row: {product_id, name, handle, size, price, currency, variant_id,
          image_url, color, sort_order}
    """
    products = db.query(models.ProductPricing).filter(
        models.ProductPricing.owner_id == owner_id
    ).order_by(models.ProductPricing.sort_order, models.ProductPricing.id).all()

    rows = []
    for product in products:
        for raw in product.variants or []:
            if not isinstance(raw, dict):
                continue
            variant = _parse_variant(raw)
            variant.update({
                "product_id": product.id,
                "name": product.name,
                "handle": product.product_handle,
                "sort_order": len(rows),
            })
            rows.append(variant)
    return rows


def list_products(db: Session, owner_id: str) -> list:
    return db.query(models.ProductPricing).filter(
        models.ProductPricing.owner_id == owner_id
    ).order_by(models.ProductPricing.sort_order, models.ProductPricing.id).all()


def create_product(db: Session, owner_id: str, data: dict):
    product = models.ProductPricing(owner_id=owner_id, **data)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


# --- Kit builders ---

def normalize_kit_key(calculator_key) -> str:
    """Kit keys are stored lowercase; 'Roof-Kit ' -> 'roof-kit'."""
    return str(calculator_key or "").strip().lower()


def _clean_entries(entries: list) -> list:
    """Drop entries without a handle or with an unknown role."""
    cleaned = []
    for entry in entries or []:
        handle = str(entry.get("product_handle") or "").strip()
        role = parse_role(entry.get("role"))
        if not handle or role is None:
            continue
        cleaned.append({
            "product_handle": handle,
            "role": role.value,
            "coverage_per_sqm": entry.get("coverage_per_sqm"),
            "display_name": entry.get("display_name"),
        })
    return cleaned


def list_kit_builders(db: Session, owner_id: str) -> list:
    return db.query(models.KitBuilder).filter(
        models.KitBuilder.owner_id == owner_id
    ).order_by(models.KitBuilder.calculator_key).all()


def get_kit_builder(db: Session, owner_id: str, calculator_key: str = None):
    """
    Kit builder by key. Without a key: the default kit, then the first one.
    Returns None if the owner has none.
    """
    calculator_key = normalize_kit_key(calculator_key)
    query = db.query(models.KitBuilder).filter(models.KitBuilder.owner_id == owner_id)
    if calculator_key:
        return query.filter(models.KitBuilder.calculator_key == calculator_key).first()
    kit = query.filter(models.KitBuilder.calculator_key == settings.DEFAULT_KIT_KEY).first()
    if kit:
        return kit
    return query.order_by(models.KitBuilder.calculator_key).first()


def save_kit_builder(db: Session, owner_id: str, calculator_key: str, data: dict):
    """Create or update a kit builder by (owner, key)."""
    calculator_key = normalize_kit_key(calculator_key)
    kit = db.query(models.KitBuilder).filter(
        models.KitBuilder.owner_id == owner_id,
        models.KitBuilder.calculator_key == calculator_key,
    ).first()
    if not kit:
        kit = models.KitBuilder(owner_id=owner_id, calculator_key=calculator_key)
        db.add(kit)
    kit.name = data.get("name") or calculator_key
    kit.product_entries = _clean_entries(data.get("product_entries"))
    kit.checkout_button_color = data.get("checkout_button_color")
    kit.qty_badge_background_color = data.get("qty_badge_background_color")
    kit.updated_at = datetime.utcnow()
    db.commit()
    db.refresh(kit)
    logger.info("Saved kit builder %s for %s (%d entries)",
                calculator_key, owner_id, len(kit.product_entries))
    return kit


def delete_kit_builder(db: Session, owner_id: str, calculator_key: str) -> bool:
    deleted = db.query(models.KitBuilder).filter(
        models.KitBuilder.owner_id == owner_id,
        models.KitBuilder.calculator_key == normalize_kit_key(calculator_key),
    ).delete()
    db.commit()
    return bool(deleted)
