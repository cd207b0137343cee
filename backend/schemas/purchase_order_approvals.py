from pydantic import BaseModel, Field
from typing import Optional, Literal, Any
from datetime import datetime

class ApprovalActionRequest(BaseModel):
    po_id: str = Field(..., alias="poId", min_length=1)
    action: Literal["approve", "reject"]
    user_id: str = Field(..., alias="userId", min_length=1)
    user_role: Optional[str] = Field(None, alias="userRole")
    comments: Optional[str] = None
    organization_id: str = Field(..., alias="organizationId", min_length=1)

    class Config:
        populate_by_name = True

class ApprovalActionResult(BaseModel):
    id: str
    po_number: Optional[str] = Field(None, alias="poNumber")
    status: str
    total_amount: float = Field(..., alias="totalAmount")
    action_performed_by: str = Field(..., alias="actionPerformedBy")
    timestamp: datetime

    class Config:
        populate_by_name = True

class ApprovalActionResponse(BaseModel):
    success: bool = True
    data: ApprovalActionResult
    message: str

class ApprovalHistoryEntry(BaseModel):
    id: str
    action: Optional[str] = None
    performed_by: Optional[str] = None
    timestamp: Optional[str] = None
    comments: Optional[str] = None
    approval_tier: Optional[Any] = None
    po_number: Optional[str] = None
    total_amount: Optional[float] = None
    created_at: datetime
