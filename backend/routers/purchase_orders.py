# backend/routers/purchase_orders.py

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
import logging

from database import get_db
from crud import purchase_orders as crud_purchase_orders
from crud import purchase_order_approvals as crud_approvals
from crud.purchase_order_approvals import (
    ApprovalPermissionError,
    InvalidApprovalStateError,
    PurchaseOrderNotFoundError,
    WorkflowNotConfiguredError,
)
from models.universal_transactions import PurchaseOrderStatus
from schemas.purchase_orders import PurchaseOrder as PurchaseOrderSchema, PurchaseOrderCreate
from schemas.purchase_order_approvals import (
    ApprovalActionRequest,
    ApprovalActionResponse,
    ApprovalActionResult,
    ApprovalHistoryEntry,
)
from utils.tenancy import get_organization_id, get_acting_user

router = APIRouter(prefix="/purchase-orders", tags=["Purchase Orders"])
logger = logging.getLogger("purchase_orders")


@router.put("/approve", response_model=ApprovalActionResponse)
def approve_purchase_order(
    request: ApprovalActionRequest,
    db: Session = Depends(get_db),
):
    """Approve or reject a purchase order waiting in pending_approval."""
    try:
        outcome = crud_approvals.apply_approval_action(
            db,
            po_id=request.po_id,
            organization_id=request.organization_id,
            action=request.action,
            user_id=request.user_id,
            user_role=request.user_role,
            comments=request.comments,
        )
    except (PurchaseOrderNotFoundError, WorkflowNotConfiguredError) as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidApprovalStateError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ApprovalPermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))
    except Exception:
        db.rollback()
        logger.exception(f"Failed to {request.action} purchase order {request.po_id}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to update purchase order")

    past_tense = "approved" if request.action == "approve" else "rejected"
    return ApprovalActionResponse(
        success=True,
        data=ApprovalActionResult(**outcome),
        message=f"Purchase order {outcome['po_number'] or outcome['id']} {past_tense} successfully",
    )


@router.get("/pending")
def read_pending_approvals(
    organization_id: str = Query(..., alias="organizationId", min_length=1),
    user_id: str = Query(..., alias="userId", min_length=1),
    user_role: Optional[str] = Query(None, alias="userRole"),
    db: Session = Depends(get_db),
):
    """Purchase orders the user may decide on, most urgent first."""
    try:
        return crud_approvals.get_pending_approvals(db, organization_id, user_id, user_role)
    except WorkflowNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except Exception:
        logger.exception(f"Failed to list pending approvals for user {user_id} in organization {organization_id}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to fetch pending purchase orders")


@router.post("/", response_model=PurchaseOrderSchema, status_code=status.HTTP_201_CREATED)
def create_purchase_order(
    po: PurchaseOrderCreate,
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
    user_id: Optional[str] = Depends(get_acting_user),
):
    """Create a purchase order; amounts above the auto-approval threshold wait for approval."""
    try:
        return crud_purchase_orders.create_purchase_order(db, po, organization_id, changed_by=user_id or po.requested_by)
    except crud_purchase_orders.PurchaseOrderNumberConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception:
        db.rollback()
        logger.exception(f"Failed to create purchase order for organization {organization_id}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to create purchase order")


@router.get("/", response_model=List[PurchaseOrderSchema])
def read_purchase_orders(
    skip: int = 0,
    limit: int = 100,
    status: Optional[PurchaseOrderStatus] = None,
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    """Retrieve the organization's purchase orders, newest first."""
    return crud_purchase_orders.get_purchase_orders(db, organization_id, status=status, skip=skip, limit=limit)


@router.get("/{po_id}", response_model=PurchaseOrderSchema)
def read_purchase_order(
    po_id: str,
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    db_po = crud_purchase_orders.get_purchase_order(db, po_id, organization_id)
    if db_po is None:
        raise HTTPException(status_code=404, detail="Purchase order not found")
    return db_po


@router.get("/{po_id}/approval-history", response_model=List[ApprovalHistoryEntry])
def read_approval_history(
    po_id: str,
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    """Approval decisions recorded for a purchase order, oldest first."""
    try:
        return crud_approvals.get_approval_history(db, po_id, organization_id)
    except PurchaseOrderNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
