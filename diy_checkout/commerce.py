"""
Commerce platform client — Shopify Admin REST API.

Three operations the checkout needs:
1. build_cart_url       — cart permalink, pure string building, no I/O
2. create_draft_order   — POST draft_orders.json, returns the invoice URL
3. fetch_product_images — best-effort image lookup per line item title

Platform rejections are returned as results carrying a structured
CommerceErrorKind, never raised. This module is the only place that reads
the platform's free-text error messages. Responses that are not the JSON
object the API documents raise CommerceResponseError.
"""

import enum
import json
import logging
import re
import urllib.error
import urllib.parse
import urllib.request
from typing import Optional

from pydantic import BaseModel

from .config import settings

logger = logging.getLogger(__name__)

# Pre-provisioned promo codes in the store, prefilled via ?discount= on cart links
FIXED_DISCOUNT_CODE_BY_PERCENT = {10: "NZ10", 15: "NZ15", 20: "NZ20"}

# Shopify phrasing for a line item whose variant can't be sold
VARIANT_ERROR_PHRASES = (
    "no longer available",
    "not found",
    "could not be found",
    "unavailable",
    "variant",
    "invalid variant",
    "does not exist",
    "merchandise",
)

_NEXT_PAGE_RE = re.compile(r'<[^>]*[?&]page_info=([^>&]+)>;\s*rel="next"')


class CommerceErrorKind(str, enum.Enum):
    VARIANT_UNAVAILABLE = "variant_unavailable"
    REJECTED = "rejected"
    TRANSPORT = "transport"


class CommerceResponseError(Exception):
    """The platform answered, but not with the JSON object its API documents."""


class CommerceConfig(BaseModel):
    shop_domain: str
    access_token: str
    api_version: str = settings.COMMERCE_API_VERSION


class DraftOrderResult(BaseModel):
    ok: bool
    checkout_url: Optional[str] = None
    draft_order_id: Optional[int] = None
    name: Optional[str] = None
    error: Optional[str] = None
    error_kind: Optional[CommerceErrorKind] = None


def normalize_shop_domain(value) -> str:
    """'https://store.myshopify.com/' -> 'store.myshopify.com'."""
    text = str(value or "").strip()
    text = re.sub(r"^https?://", "", text, flags=re.IGNORECASE)
    return text.rstrip("/").split("/")[0]


def classify_error(message) -> CommerceErrorKind:
    """Map a platform rejection message to a structured kind."""
    text = str(message or "").lower()
    if any(phrase in text for phrase in VARIANT_ERROR_PHRASES):
        return CommerceErrorKind.VARIANT_UNAVAILABLE
    return CommerceErrorKind.REJECTED


def _error_text(body: str, fallback: str) -> str:
    """Pull a readable message out of a Shopify error body."""
    try:
        parsed = json.loads(body) if body else None
    except ValueError:
        parsed = None
    detail = parsed.get("errors") if isinstance(parsed, dict) else None
    if isinstance(detail, str) and detail.strip():
        return detail
    if detail:
        return json.dumps(detail)
    return fallback or "Commerce request failed"


def build_cart_url(shop_domain: str, items: list, discount_code: str = None,
                   note: str = None) -> str:
    """
    Cart permalink: https://{domain}/cart/{variant:qty,...}?discount=CODE&note=...

    Args:
        shop_domain: store domain, scheme optional
        items: [{"variant_id": int, "quantity": int}, ...]
    """
    cart = ",".join(f"{item['variant_id']}:{item['quantity']}" for item in items)
    url = f"https://{normalize_shop_domain(shop_domain)}/cart/{cart}"
    params = {}
    if discount_code and discount_code.strip():
        params["discount"] = discount_code.strip()
    if note and note.strip():
        params["note"] = note.strip()
    if params:
        url += "?" + urllib.parse.urlencode(params)
    return url


class CommerceClient:
    """
    Thin Shopify Admin REST client.

    No retries, no backoff — callers decide whether a rejection is worth
    another attempt.
    """

    def __init__(self, timeout: float = None):
        self.timeout = timeout if timeout is not None else settings.COMMERCE_TIMEOUT_SECONDS

    def _url(self, config: CommerceConfig, path: str, query: dict = None) -> str:
        domain = normalize_shop_domain(config.shop_domain)
        url = f"https://{domain}/admin/api/{config.api_version}/{path.lstrip('/')}"
        params = {k: v for k, v in (query or {}).items() if v not in (None, "")}
        if params:
            url += "?" + urllib.parse.urlencode(params)
        return url

    def request(self, config: CommerceConfig, path: str, method: str = "GET",
                body: dict = None, query: dict = None) -> dict:
        """
        Call the Admin API.

        Returns {"ok", "status", "data", "link"} on success and
        {"ok": False, "status", "error", "error_kind"} on rejection.
        """
        url = self._url(config, path, query)
        payload = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib.request.Request(
            url,
            data=payload,
            headers={
                "Content-Type": "application/json",
                "X-Shopify-Access-Token": config.access_token,
            },
            method=method,
        )
        logger.debug("Commerce %s %s", method, path)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                status = response.status
                link = response.headers.get("Link")
                text = response.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            message = _error_text(e.read().decode("utf-8", errors="replace"), str(e.reason or ""))
            logger.info("Commerce %s %s rejected (%s): %s", method, path, e.code, message)
            return {
                "ok": False,
                "status": e.code,
                "error": message,
                "error_kind": classify_error(message),
            }
        except OSError as e:
            reason = getattr(e, "reason", None) or e
            logger.warning("Commerce %s %s failed: %s", method, path, reason)
            return {
                "ok": False,
                "status": None,
                "error": f"Commerce request failed: {reason}",
                "error_kind": CommerceErrorKind.TRANSPORT,
            }

        try:
            data = json.loads(text) if text else {}
        except ValueError as e:
            raise CommerceResponseError(f"{method} {path} returned non-JSON body") from e
        if not isinstance(data, dict):
            raise CommerceResponseError(f"{method} {path} returned {type(data).__name__}, expected object")
        return {"ok": True, "status": status, "data": data, "link": link}

    # --- Checkout ---

    def build_cart_url(self, shop_domain: str, items: list, discount_code: str = None,
                       note: str = None) -> str:
        return build_cart_url(shop_domain, items, discount_code=discount_code, note=note)

    def create_draft_order(self, config: CommerceConfig, payload: dict) -> DraftOrderResult:
        """
        Create a draft order and return its invoice URL.

        Args:
            payload: {
                "line_items": [{"title", "quantity", "price", "variant_id"?}],
                "note": str, "tags": str, "currency": str,
                "applied_discount": dict | None, "email": str | None,
            }
        """
        draft_order = {
            "line_items": [
                {k: v for k, v in item.items() if v is not None}
                for item in payload.get("line_items", [])
            ],
            "note": payload.get("note"),
            "tags": payload.get("tags"),
            "currency": payload.get("currency"),
        }
        if payload.get("email"):
            draft_order["email"] = payload["email"]
        if payload.get("applied_discount"):
            draft_order["applied_discount"] = payload["applied_discount"]

        res = self.request(config, "draft_orders.json", method="POST",
                           body={"draft_order": draft_order})
        if not res["ok"]:
            return DraftOrderResult(
                ok=False,
                error=res.get("error") or "Failed to create draft order",
                error_kind=res.get("error_kind") or CommerceErrorKind.REJECTED,
            )

        draft = res["data"].get("draft_order")
        if not isinstance(draft, dict) or not draft.get("id"):
            return DraftOrderResult(ok=False, error="Draft order not returned",
                                    error_kind=CommerceErrorKind.REJECTED)
        return DraftOrderResult(
            ok=True,
            draft_order_id=draft["id"],
            name=draft.get("name"),
            checkout_url=draft.get("invoice_url"),
        )

    # --- Catalog images ---

    def list_products(self, config: CommerceConfig, limit: int = 250,
                      max_pages: int = 50) -> list:
        """All products with title, image and variant prices (cursor pagination)."""
        products = []
        page_info = None
        for _ in range(max_pages):
            if page_info:
                # Shopify only allows limit + page_info on follow-up pages
                query = {"limit": min(limit, 250), "page_info": page_info}
            else:
                query = {"limit": min(limit, 250), "fields": "id,title,handle,image,variants"}
            res = self.request(config, "products.json", query=query)
            if not res["ok"]:
                logger.info("Product listing stopped: %s", res.get("error"))
                break
            for p in res["data"].get("products") or []:
                image = p.get("image") or {}
                products.append({
                    "id": p.get("id"),
                    "title": p.get("title") or "",
                    "handle": p.get("handle"),
                    "image_src": image.get("src") if isinstance(image, dict) else None,
                    "variants": p.get("variants") or [],
                })
            match = _NEXT_PAGE_RE.search(res.get("link") or "")
            if not match:
                break
            page_info = urllib.parse.unquote(match.group(1))
        return products

    def fetch_product_images(self, config: CommerceConfig, buckets: list) -> dict:
        """
        Resolve image URLs for line items by matching product titles.

        A sized item matches titles carrying its size and unit ("15L",
        "20 m"); a price within 1.00 breaks ties between products of the
        same size. Unsized items (brush kits) match on their own title.

        Args:
            buckets: [{"title": str, "size": float, "unit": "L" | "m", "price": float}, ...]

        Returns:
            {title: image_url} for the items that matched
        """
        products = self.list_products(config, limit=100)
        result = {}
        if not products:
            return result

        for bucket in buckets:
            size = bucket.get("size") or 0
            if size > 0:
                unit = re.escape(bucket.get("unit") or "L")
                pattern = re.compile(r"(?<![\d.])%s\s*%s\b" % (re.escape(f"{size:g}"), unit),
                                     re.IGNORECASE)
                titled = [p for p in products if pattern.search(p["title"])]
            else:
                wanted = bucket["title"].strip().lower()
                titled = [p for p in products if p["title"].strip().lower() == wanted]
            match = None
            for p in titled:
                price = (p["variants"][0] or {}).get("price") if p["variants"] else None
                try:
                    if price is None or abs(float(price) - float(bucket.get("price", 0))) < 1:
                        match = p
                        break
                except (TypeError, ValueError):
                    continue
            if match is None and titled:
                match = titled[0]
            if match and match.get("image_src"):
                result[bucket["title"]] = match["image_src"]
        return result
