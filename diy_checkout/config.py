from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./diy_checkout.db"
    APP_NAME: str = "DIY Kit Checkout"
    DEFAULT_CURRENCY: str = "AUD"

    # Commerce platform (Shopify Admin REST API)
    COMMERCE_API_VERSION: str = "2024-04"
    COMMERCE_TIMEOUT_SECONDS: float = 20.0

    # Fallback product images per bucket size, used when the catalog has none
    DIY_PRODUCT_IMAGE_15L: str = ""
    DIY_PRODUCT_IMAGE_10L: str = ""
    DIY_PRODUCT_IMAGE_5L: str = ""

    # Chat discounts outside this inclusive range are ignored, not rejected
    DISCOUNT_MIN_PERCENT: float = 1
    DISCOUNT_MAX_PERCENT: float = 20

    # Below this area the brush-only kit is bundled instead of brush + roller
    BRUSH_ONLY_MAX_AREA_M2: float = 5.0

    # Largest surface a single quote accepts
    MAX_AREA_M2: float = 10000.0

    DEFAULT_KIT_KEY: str = "roof-kit"

    class Config:
        env_file = ".env"


settings = Settings()
