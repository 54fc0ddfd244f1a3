"""
Shared test fixtures — SQLite database, test client, seeded catalog,
recording commerce client.
"""

import copy
import os
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

# Set before importing app modules
os.environ["DATABASE_URL"] = "sqlite:///./test.db"

from diy_checkout import models
from diy_checkout.commerce import DraftOrderResult, build_cart_url
from diy_checkout.database import Base, get_db
from diy_checkout.main import app
from diy_checkout.routers.checkout import get_commerce_client


TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

OWNER = "owner-1"
SHOP_DOMAIN = "netzero-diy.myshopify.com"


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


class FakeCommerceClient:
    """
    Stands in for CommerceClient. Records every call; build_cart_url is local,
    the other two count as network calls.
    """

    def __init__(self, draft_results=None, images=None, image_error=None):
        self.calls = []
        self.draft_results = list(draft_results or [])
        self.images = dict(images or {})
        self.image_error = image_error

    @property
    def network_calls(self):
        return [c for c in self.calls if c[0] != "build_cart_url"]

    def calls_to(self, name):
        return [c[1] for c in self.calls if c[0] == name]

    def build_cart_url(self, shop_domain, items, discount_code=None, note=None):
        self.calls.append(("build_cart_url", {
            "shop_domain": shop_domain, "items": copy.deepcopy(items),
            "discount_code": discount_code, "note": note,
        }))
        return build_cart_url(shop_domain, items, discount_code=discount_code, note=note)

    def create_draft_order(self, config, payload):
        self.calls.append(("create_draft_order", copy.deepcopy(payload)))
        if self.draft_results:
            return self.draft_results.pop(0)
        return DraftOrderResult(
            ok=True, draft_order_id=1, name="#D1",
            checkout_url=f"https://{config.shop_domain}/invoices/abc123",
        )

    def fetch_product_images(self, config, buckets):
        self.calls.append(("fetch_product_images", copy.deepcopy(buckets)))
        if self.image_error:
            raise self.image_error
        return dict(self.images)


# --- Seed helpers ---

def add_product(db, name, handle, variants, owner_id=OWNER, sort_order=0):
    product = models.ProductPricing(
        owner_id=owner_id, name=name, product_handle=handle,
        sort_order=sort_order, variants=variants,
    )
    db.add(product)
    db.commit()
    return product


def connect_commerce(db, owner_id=OWNER, shop_domain=SHOP_DOMAIN):
    db.add(models.CommerceIntegration(
        owner_id=owner_id, shop_domain=shop_domain,
        access_token="shpat_test", api_version="2024-04",
    ))
    db.commit()


def _variant(size, price, variant_id, with_ids, with_images):
    return {
        "size": size,
        "price": price,
        "currency": "AUD",
        "variant_id": variant_id if with_ids else None,
        "image_url": f"https://cdn.example.com/{variant_id}.png" if with_images else None,
    }


# (name, handle, role, [(size, price, variant_id)])
ROOF_KIT_CATALOG = [
    ("NetZero Roof Sealant", "netzero-sealant", "sealant",
     [(15, 389.99, 1001), (10, 285.99, 1002), (5, 149.99, 1003)]),
    ("UltraTherm Top Coat", "ultratherm-top-coat", "thermal",
     [(15, 299.00, 2001), (4, 99.00, 2002)]),
    ("Clear Sealer", "clear-sealer", "sealer",
     [(1, 39.00, 3001), (4, 119.00, 3002)]),
    ("Geo Textile 100mm", "geo-textile-100mm", "geotextile",
     [(20, 24.00, 4001), (50, 49.00, 4002)]),
    ("Rapid Cure Spray", "rapid-cure", "rapid-cure",
     [(0.5, 19.00, 5001), (1, 29.00, 5002)]),
    ("Brush Kit", "brush-kit", "brush-kit", [(0, 15.00, 6001)]),
    ("Brush + Roller Kit", "brush-roller-kit", "brush-kit", [(0, 35.00, 6002)]),
]


def seed_catalog(db, owner_id=OWNER, with_ids=True, with_images=True, with_kit=True):
    """Full roof kit catalog plus a roof-kit builder mapping every role."""
    entries = []
    for i, (name, handle, role, variants) in enumerate(ROOF_KIT_CATALOG):
        add_product(
            db, name, handle,
            [_variant(s, p, vid, with_ids, with_images) for s, p, vid in variants],
            owner_id=owner_id, sort_order=i,
        )
        entries.append({"product_handle": handle, "role": role})
    if with_kit:
        db.add(models.KitBuilder(
            owner_id=owner_id, calculator_key="roof-kit", name="Roof Kit",
            product_entries=entries,
        ))
        db.commit()


# --- Fixtures ---

@pytest.fixture(autouse=True)
def setup_database():
    """Create all tables before each test, drop after."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    """Direct database session for test setup/assertions."""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_commerce():
    return FakeCommerceClient()


@pytest.fixture
def client(fake_commerce):
    """FastAPI test client wired to the recording commerce client."""
    app.dependency_overrides[get_commerce_client] = lambda: fake_commerce
    yield TestClient(app)
    app.dependency_overrides.pop(get_commerce_client, None)


@pytest.fixture
def seeded(db):
    """Connected owner with the full roof kit catalog."""
    connect_commerce(db)
    seed_catalog(db)
    return OWNER
