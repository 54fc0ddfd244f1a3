"""
DIY checkout API — called by the widget and by workflow automations.

POST /api/owners/{owner_id}/checkout   — build a checkout link + preview
POST /api/owners/{owner_id}/breakdown  — kit breakdown for an area (no network)
POST /api/optimize                     — cheapest pack combination for a volume
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from .. import schemas
from ..calculators.bucket_optimizer import optimize_buckets, combination_volume, MAX_SMALL_PACKS
from ..checkout import CheckoutAssembler
from ..commerce import CommerceClient
from ..database import get_db

router = APIRouter(tags=["checkout"])

# HTTP status per failure kind; the body stays {"ok": false, "error": ...}
STATUS_BY_KIND = {
    "configuration": 409,
    "input": 422,
    "platform": 502,
}


def get_commerce_client() -> CommerceClient:
    return CommerceClient()


def _respond(result: dict) -> JSONResponse:
    if result["ok"]:
        return JSONResponse(status_code=200, content=result)
    return JSONResponse(status_code=STATUS_BY_KIND.get(result.get("kind"), 400), content=result)


@router.post("/owners/{owner_id}/checkout")
def create_checkout(
    owner_id: str,
    request: schemas.CheckoutRequest,
    db: Session = Depends(get_db),
    commerce: CommerceClient = Depends(get_commerce_client),
):
    """
    Area mode ({"area_m2": 120}) or bucket counts ({"count_15l": 2, "count_5l": 1}).
    Returns {"ok": true, "data": {checkout_url, checkout_path, line_items, summary}}
    or {"ok": false, "error": str, "kind": str}.
    """
    assembler = CheckoutAssembler(db, commerce)
    result = assembler.assemble_checkout(owner_id, request.model_dump(exclude_none=True))
    return _respond(result)


@router.post("/owners/{owner_id}/breakdown")
def preview_breakdown(
    owner_id: str,
    request: schemas.BreakdownRequest,
    db: Session = Depends(get_db),
):
    """Line items and role volumes for an area, against the owner's catalog."""
    assembler = CheckoutAssembler(db, commerce=None)
    result = assembler.preview_breakdown(owner_id, request.area_m2, request.calculator_key)
    if result["ok"]:
        data = result["data"]
        data["line_items"] = [dict(li, role=li["role"].value) for li in data["line_items"]]
        data["unmapped_roles"] = [role.value for role in data["unmapped_roles"]]
    return _respond(result)


@router.post("/optimize")
def optimize(request: schemas.OptimizeRequest):
    """Cheapest pack combination covering volume_needed."""
    variants = [v.model_dump() for v in request.variants]
    max_small = MAX_SMALL_PACKS if request.max_small_packs is None else request.max_small_packs
    combination = optimize_buckets(request.volume_needed, variants, max_small_packs=max_small)
    return {
        "volume_needed": request.volume_needed,
        "combination": combination,
        "total_volume": combination_volume(combination),
    }
