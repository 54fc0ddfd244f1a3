from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from .calculators.bucket_optimizer import MAX_VOLUME
from .config import settings
from .models import Role


# --- Checkout ---

class CheckoutRequest(BaseModel):
    area_m2: Optional[float] = Field(default=None, ge=0, le=settings.MAX_AREA_M2, allow_inf_nan=False)
    count_15l: Optional[int] = Field(default=None, ge=0)
    count_10l: Optional[int] = Field(default=None, ge=0)
    count_5l: Optional[int] = Field(default=None, ge=0)
    discount_percent: Optional[float] = Field(default=None, allow_inf_nan=False)
    email: Optional[str] = None
    calculator_key: Optional[str] = None


class BreakdownRequest(BaseModel):
    area_m2: float = Field(ge=0, le=settings.MAX_AREA_M2, allow_inf_nan=False)
    calculator_key: Optional[str] = None


# --- Optimizer ---

class PackVariant(BaseModel):
    size: float = Field(gt=0, le=MAX_VOLUME, allow_inf_nan=False)
    price: float = Field(ge=0, allow_inf_nan=False)


class OptimizeRequest(BaseModel):
    volume_needed: float = Field(le=MAX_VOLUME, allow_inf_nan=False)
    variants: List[PackVariant] = []
    max_small_packs: Optional[int] = Field(default=None, ge=0, le=100)


# --- Catalog / config ---

class ProductVariant(BaseModel):
    size: float = Field(ge=0, le=MAX_VOLUME, allow_inf_nan=False)
    price: float = Field(ge=0, allow_inf_nan=False)
    currency: Optional[str] = None
    variant_id: Optional[int] = None
    image_url: Optional[str] = None
    color: Optional[str] = None


class ProductBase(BaseModel):
    name: str
    description: Optional[str] = None
    product_handle: Optional[str] = None
    shopify_product_id: Optional[str] = None
    sort_order: int = 0
    variants: List[ProductVariant] = []


class ProductCreate(ProductBase):
    pass


class Product(ProductBase):
    id: int
    owner_id: str
    created_at: datetime
    class Config:
        from_attributes = True


class KitProductEntry(BaseModel):
    product_handle: str
    role: Role
    coverage_per_sqm: Optional[float] = None
    display_name: Optional[str] = None


class KitBuilderSave(BaseModel):
    name: Optional[str] = None
    product_entries: List[KitProductEntry] = []
    checkout_button_color: Optional[str] = None
    qty_badge_background_color: Optional[str] = None


class KitBuilder(BaseModel):
    id: int
    owner_id: str
    calculator_key: str
    name: Optional[str] = None
    product_entries: List[KitProductEntry] = []
    checkout_button_color: Optional[str] = None
    qty_badge_background_color: Optional[str] = None
    updated_at: datetime
    class Config:
        from_attributes = True


class CommerceIntegrationSave(BaseModel):
    shop_domain: str
    access_token: str
    api_version: Optional[str] = None


class CommerceIntegration(BaseModel):
    owner_id: str
    shop_domain: Optional[str] = None
    api_version: Optional[str] = None
    connected: bool
