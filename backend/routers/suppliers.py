from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from crud import suppliers as crud_suppliers
from schemas.suppliers import Supplier, SupplierCreate
from utils.tenancy import get_organization_id, get_acting_user

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])
logger = logging.getLogger("suppliers")


@router.post("/", response_model=Supplier, status_code=status.HTTP_201_CREATED)
def create_supplier(
    supplier: SupplierCreate,
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
    user_id: Optional[str] = Depends(get_acting_user),
):
    if crud_suppliers.get_supplier_by_name(db, supplier.name, organization_id):
        raise HTTPException(status_code=400, detail="Supplier with this name already exists")

    db_supplier = crud_suppliers.create_supplier(db, supplier, organization_id, changed_by=user_id)
    logger.info(f"Supplier '{db_supplier.entity_name}' created by user {user_id} for organization {organization_id}")
    return crud_suppliers.supplier_to_dict(db, db_supplier)


@router.get("/", response_model=List[Supplier])
def read_suppliers(
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    suppliers = crud_suppliers.get_suppliers(db, organization_id, skip=skip, limit=limit)
    return [crud_suppliers.supplier_to_dict(db, supplier) for supplier in suppliers]


@router.get("/{supplier_id}", response_model=Supplier)
def read_supplier(
    supplier_id: str,
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    db_supplier = crud_suppliers.get_supplier(db, supplier_id, organization_id)
    if db_supplier is None:
        raise HTTPException(status_code=404, detail="Supplier not found")
    return crud_suppliers.supplier_to_dict(db, db_supplier)
