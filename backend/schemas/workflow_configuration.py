from pydantic import BaseModel, Field, field_validator
from typing import Optional, Dict
from decimal import Decimal

class WorkflowConfigurationUpdate(BaseModel):
    # Leaving a field out keeps its stored value; sending null clears it
    tier_1_approver_user_id: Optional[str] = None
    tier_2_approver_user_id: Optional[str] = None
    tier_3_approver_user_id: Optional[str] = None
    auto_approval_threshold: Optional[Decimal] = Field(None, ge=0)
    tier_1_threshold: Optional[Decimal] = Field(None, ge=0)
    tier_2_threshold: Optional[Decimal] = Field(None, ge=0)

    @field_validator('tier_1_approver_user_id', 'tier_2_approver_user_id', 'tier_3_approver_user_id')
    @classmethod
    def blank_approver_clears_tier(cls, v):
        if v is None:
            return None
        return v.strip() or None

class WorkflowConfigurationOut(BaseModel):
    organization_id: str
    deployment_id: str
    fields: Dict[str, str] = {}
