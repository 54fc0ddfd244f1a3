from sqlalchemy import Column, Integer, String, DateTime, Text, JSON, UniqueConstraint
from datetime import datetime
from typing import Optional
from .database import Base
import enum


# --- Enums ---

class Role(str, enum.Enum):
    """Abstract material roles a DIY kit is built from."""
    SEALANT = "sealant"
    THERMAL = "thermal"
    SEALER = "sealer"
    GEOTEXTILE = "geotextile"
    RAPID_CURE = "rapid-cure"
    BRUSH_KIT = "brush-kit"


# Order line items appear in on a quote
ROLE_ORDER = [
    Role.SEALANT,
    Role.THERMAL,
    Role.SEALER,
    Role.GEOTEXTILE,
    Role.RAPID_CURE,
    Role.BRUSH_KIT,
]

# Catalog handles used by operators who never configured a kit builder.
# Products with no handle at all are treated as sealant.
LEGACY_ROLE_HANDLES = {
    Role.SEALANT: "waterproof-sealant",
    Role.THERMAL: "protective-top-coat",
    Role.SEALER: "sealer",
    Role.GEOTEXTILE: "geo-textile",
    Role.RAPID_CURE: "rapid-cure-spray",
    Role.BRUSH_KIT: "brush-roller",
}


def parse_role(value) -> Optional[Role]:
    """Accepts a Role, its value, or a legacy handle. Returns None if unknown."""
    if isinstance(value, Role):
        return value
    text = str(value or "").strip().lower()
    for role in Role:
        if text == role.value or text == LEGACY_ROLE_HANDLES[role]:
            return role
    return None


# --- Tables ---

class CommerceIntegration(Base):
    """Connected commerce-platform credential for a widget owner."""
    __tablename__ = "commerce_integrations"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String, unique=True, nullable=False, index=True)
    shop_domain = Column(String, nullable=True)
    access_token = Column(String, nullable=True)
    api_version = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class ProductPricing(Base):
    """One priced catalog product; its sellable pack sizes live in variants JSON."""
    __tablename__ = "product_pricing"

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    product_handle = Column(String, nullable=True)  # null = waterproof sealant
    shopify_product_id = Column(String, nullable=True)
    sort_order = Column(Integer, default=0)
    # [{size, price, currency, variant_id, image_url, color}]
    variants = Column(JSON, default=list)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class KitBuilder(Base):
    """Operator's role -> catalog mapping for one kit (e.g. roof-kit, caravan-kit)."""
    __tablename__ = "kit_builders"
    __table_args__ = (UniqueConstraint("owner_id", "calculator_key", name="uq_kit_builder_owner_key"),)

    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(String, nullable=False, index=True)
    calculator_key = Column(String, nullable=False)
    name = Column(String, nullable=True)
    # [{product_handle, role, coverage_per_sqm, display_name}]
    product_entries = Column(JSON, default=list)
    checkout_button_color = Column(String, nullable=True)
    qty_badge_background_color = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
