from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import date, datetime
from decimal import Decimal
from models.universal_transactions import PurchaseOrderStatus

class PurchaseOrderItemCreate(BaseModel):
    item_id: Optional[str] = None
    description: str = Field(..., min_length=1)
    quantity: Decimal = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)
    unit: Optional[str] = None

class PurchaseOrderCreate(BaseModel):
    supplier_id: str
    requested_by: str = Field(..., min_length=1)
    items: List[PurchaseOrderItemCreate]
    delivery_date: Optional[date] = None
    notes: Optional[str] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    # Overrides the amount-based tier when the requester already knows it
    approval_tier: Optional[int] = Field(None, ge=1, le=3)

class PurchaseOrder(BaseModel):
    id: str
    organization_id: str
    transaction_number: Optional[str] = None
    transaction_date: datetime
    total_amount: Decimal
    currency: str
    workflow_status: PurchaseOrderStatus
    transaction_status: PurchaseOrderStatus
    requires_approval: bool
    procurement_metadata: Dict[str, Any] = {}
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
