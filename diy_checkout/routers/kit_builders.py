import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import List
from .. import catalog, schemas
from ..calculators.registry import has_calculator
from ..database import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/owners/{owner_id}/kit-builders", tags=["kit-builders"])


@router.get("/", response_model=List[schemas.KitBuilder])
def list_kit_builders(owner_id: str, db: Session = Depends(get_db)):
    return catalog.list_kit_builders(db, owner_id)


@router.get("/{calculator_key}", response_model=schemas.KitBuilder)
def get_kit_builder(owner_id: str, calculator_key: str, db: Session = Depends(get_db)):
    kit = catalog.get_kit_builder(db, owner_id, calculator_key)
    if not kit:
        raise HTTPException(status_code=404, detail="Kit builder not found")
    return kit


@router.put("/{calculator_key}", response_model=schemas.KitBuilder)
def save_kit_builder(owner_id: str, calculator_key: str, payload: schemas.KitBuilderSave,
                     db: Session = Depends(get_db)):
    """Create or replace a kit builder. Unknown keys run the roof kit calculator."""
    key = catalog.normalize_kit_key(calculator_key)
    if not key:
        raise HTTPException(status_code=400, detail="calculator_key is required")
    data = payload.model_dump()
    data["product_entries"] = [
        dict(e, role=e["role"].value) for e in data["product_entries"]
    ]
    kit = catalog.save_kit_builder(db, owner_id, key, data)
    if not has_calculator(key):
        logger.info("Kit builder %s has no dedicated calculator; roof kit rates apply", key)
    return kit


@router.delete("/{calculator_key}")
def delete_kit_builder(owner_id: str, calculator_key: str, db: Session = Depends(get_db)):
    if not catalog.delete_kit_builder(db, owner_id, calculator_key):
        raise HTTPException(status_code=404, detail="Kit builder not found")
    return {"ok": True}
