from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from .. import catalog, schemas
from ..database import get_db

router = APIRouter(prefix="/owners/{owner_id}/integrations", tags=["integrations"])


@router.get("/commerce", response_model=schemas.CommerceIntegration)
def get_commerce_integration(owner_id: str, db: Session = Depends(get_db)):
    config = catalog.get_commerce_config(db, owner_id)
    return {
        "owner_id": owner_id,
        "shop_domain": config.shop_domain if config else None,
        "api_version": config.api_version if config else None,
        "connected": config is not None,
    }


@router.put("/commerce", response_model=schemas.CommerceIntegration)
def connect_commerce(owner_id: str, payload: schemas.CommerceIntegrationSave,
                     db: Session = Depends(get_db)):
    """Store the shop domain + Admin API access token. The token is never returned."""
    if not payload.shop_domain.strip() or not payload.access_token.strip():
        raise HTTPException(status_code=400, detail="shop_domain and access_token are required")
    row = catalog.save_commerce_integration(
        db, owner_id, payload.shop_domain, payload.access_token, payload.api_version,
    )
    config = catalog.get_commerce_config(db, owner_id)
    return {
        "owner_id": owner_id,
        "shop_domain": row.shop_domain,
        "api_version": config.api_version if config else None,
        "connected": config is not None,
    }


@router.delete("/commerce")
def disconnect_commerce(owner_id: str, db: Session = Depends(get_db)):
    if not catalog.delete_commerce_integration(db, owner_id):
        raise HTTPException(status_code=404, detail="Commerce platform not connected")
    return {"ok": True}
