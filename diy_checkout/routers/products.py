from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List
from .. import catalog, schemas
from ..database import get_db

router = APIRouter(prefix="/owners/{owner_id}/products", tags=["products"])


@router.get("/", response_model=List[schemas.Product])
def list_products(owner_id: str, db: Session = Depends(get_db)):
    return catalog.list_products(db, owner_id)


@router.post("/", response_model=schemas.Product)
def create_product(owner_id: str, product: schemas.ProductCreate, db: Session = Depends(get_db)):
    return catalog.create_product(db, owner_id, product.model_dump())
