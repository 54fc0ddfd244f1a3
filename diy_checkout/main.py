from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .database import engine, Base
from . import models  # noqa: F401 (registers tables on Base.metadata)
from .routers import checkout, kit_builders, products, integrations

logger = logging.getLogger("diy_checkout")

# Create tables (handles new tables but won't add columns to existing ones)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    description="Quote-to-checkout pipeline for the DIY kit ordering widget",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(checkout.router, prefix="/api")
app.include_router(kit_builders.router, prefix="/api")
app.include_router(products.router, prefix="/api")
app.include_router(integrations.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "diy-checkout"}


@app.on_event("startup")
def log_startup():
    logger.info("%s started (currency %s, commerce API %s)",
                settings.APP_NAME, settings.DEFAULT_CURRENCY, settings.COMMERCE_API_VERSION)
