from pydantic import BaseModel, Field
from typing import Optional, Dict
from datetime import datetime

class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1)
    code: Optional[str] = None
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    payment_terms: Optional[str] = None

class SupplierCreate(SupplierBase):
    pass

class Supplier(BaseModel):
    id: str
    organization_id: str
    name: str
    code: Optional[str] = None
    status: str
    details: Dict[str, str] = {}
    created_at: datetime

    class Config:
        from_attributes = True
