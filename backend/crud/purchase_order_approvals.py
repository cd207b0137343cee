"""
Tiered purchase-order approval workflow.

A purchase order waiting in ``pending_approval`` is decided exactly once,
by a user who is either the explicit approver configured for the order's
tier or, when the tier has no explicit approver, holds the tier's fallback
role. Each decision leaves an ``approval_action`` relationship behind as an
audit trail.
"""
from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
import logging

from crud.purchase_orders import get_purchase_order
from crud.suppliers import supplier_summary
from crud.workflow_configuration import get_workflow_configuration
from models.audit_mixin import utc_now
from models.core_relationships import CoreRelationship, APPROVAL_ACTION_RELATIONSHIP
from models.universal_transactions import (
    UniversalTransaction,
    PurchaseOrderStatus,
    PURCHASE_ORDER_TRANSACTION_TYPE,
    status_columns,
)
from utils.approval_rules import (
    approval_level_label,
    approval_tier_for,
    authorized_tiers,
    can_approve,
    days_pending,
    pending_sort_key,
    urgency_for,
)

logger = logging.getLogger("purchase_order_approvals")

# action -> (resulting status, metadata keys for actor, date and comments)
APPROVAL_ACTIONS = {
    "approve": (PurchaseOrderStatus.APPROVED, "approved_by", "approval_date", "approval_comments"),
    "reject": (PurchaseOrderStatus.REJECTED, "rejected_by", "rejection_date", "rejection_comments"),
}


class PurchaseOrderNotFoundError(ValueError):
    def __init__(self, message: str = "Purchase order not found"):
        super().__init__(message)


class WorkflowNotConfiguredError(ValueError):
    def __init__(self, message: str = "No approval workflow configured for this organization"):
        super().__init__(message)


class InvalidApprovalStateError(ValueError):
    def __init__(self, current_status: Optional[str]):
        self.current_status = current_status
        super().__init__(
            f"Purchase order cannot be processed: current status is '{current_status}' "
            f"(only '{PurchaseOrderStatus.PENDING_APPROVAL.value}' orders can be approved or rejected)"
        )


class ApprovalPermissionError(PermissionError):
    def __init__(self, message: str = "User does not have permission to approve this purchase order"):
        super().__init__(message)


def record_approval_action(
    db: Session,
    po: UniversalTransaction,
    action: str,
    performed_by: str,
    timestamp: datetime,
    comments: Optional[str],
    approval_tier: Optional[int],
) -> CoreRelationship:
    """Append the immutable approval trail entry; the PO is its own parent and child."""
    db_action = CoreRelationship(
        organization_id=po.organization_id,
        parent_entity_id=po.id,
        child_entity_id=po.id,
        relationship_type=APPROVAL_ACTION_RELATIONSHIP,
        relationship_data={
            "action": action,
            "performed_by": performed_by,
            "timestamp": timestamp.isoformat(),
            "comments": comments,
            "approval_tier": approval_tier,
            "po_number": po.transaction_number,
            "total_amount": float(po.total_amount or 0),
        },
        created_by=performed_by,
        created_at=timestamp,
    )
    db.add(db_action)
    db.commit()
    return db_action


def apply_approval_action(
    db: Session,
    po_id: str,
    organization_id: str,
    action: str,
    user_id: str,
    user_role: Optional[str] = None,
    comments: Optional[str] = None,
) -> Dict:
    """
    Approve or reject a pending purchase order.

    Raises PurchaseOrderNotFoundError (also for orders of another
    organization), InvalidApprovalStateError, WorkflowNotConfiguredError or
    ApprovalPermissionError. The status change is written with a conditional
    update, so of two concurrent decisions only the first one lands; the
    second gets InvalidApprovalStateError with the stored status.
    """
    if action not in APPROVAL_ACTIONS:
        raise ValueError(f"Invalid action '{action}'. Must be 'approve' or 'reject'")

    db_po = get_purchase_order(db, po_id, organization_id)
    if db_po is None:
        raise PurchaseOrderNotFoundError()

    if db_po.workflow_status != PurchaseOrderStatus.PENDING_APPROVAL.value:
        raise InvalidApprovalStateError(db_po.workflow_status)

    configuration = get_workflow_configuration(db, organization_id)
    if configuration is None:
        raise WorkflowNotConfiguredError()

    approval_tier = approval_tier_for(db_po.procurement_metadata)
    if not can_approve(configuration, user_id, user_role, approval_tier):
        logger.warning(f"User {user_id} (role {user_role}) denied {action} on PO {po_id} at tier {approval_tier}")
        raise ApprovalPermissionError()

    new_status, actor_key, date_key, comments_key = APPROVAL_ACTIONS[action]
    acted_at = utc_now()
    metadata = {
        **(db_po.procurement_metadata or {}),
        actor_key: user_id,
        date_key: acted_at.isoformat(),
        comments_key: comments,
    }

    updated = db.query(UniversalTransaction).filter(
        UniversalTransaction.id == po_id,
        UniversalTransaction.organization_id == organization_id,
        UniversalTransaction.transaction_type == PURCHASE_ORDER_TRANSACTION_TYPE,
        UniversalTransaction.workflow_status == PurchaseOrderStatus.PENDING_APPROVAL.value,
    ).update(
        {
            **status_columns(new_status),
            "procurement_metadata": metadata,
            "updated_at": acted_at,
            "updated_by": user_id,
        },
        synchronize_session=False,
    )
    if updated == 0:
        db.rollback()
        current = get_purchase_order(db, po_id, organization_id)
        if current is None:
            raise PurchaseOrderNotFoundError()
        logger.warning(f"PO {po_id} was decided concurrently; stored status is {current.workflow_status}")
        raise InvalidApprovalStateError(current.workflow_status)
    db.commit()

    db_po = get_purchase_order(db, po_id, organization_id)
    logger.info(
        f"Purchase Order {db_po.transaction_number} (ID: {po_id}) {new_status.value} by user {user_id} "
        f"for organization {organization_id}"
    )

    try:
        record_approval_action(db, db_po, action, user_id, acted_at, comments, approval_tier)
    except Exception:
        db.rollback()
        logger.exception(f"Failed to record approval action for PO {po_id}; the {new_status.value} status stands")

    if new_status == PurchaseOrderStatus.APPROVED:
        # Goods receipt, inventory and accounting postings pick approved orders up on their own
        logger.info(f"PO {db_po.transaction_number} approved; downstream processing is left to receiving and accounting")

    return {
        "id": db_po.id,
        "po_number": db_po.transaction_number,
        "status": new_status.value,
        "total_amount": float(db_po.total_amount or 0),
        "action_performed_by": user_id,
        "timestamp": acted_at,
    }


def _pending_row(db: Session, po: UniversalTransaction, approval_tier: int, now: datetime) -> Dict:
    metadata = po.procurement_metadata or {}
    waited = days_pending(po.created_at, now)
    supplier = supplier_summary(db, metadata.get("supplier_id"), po.organization_id)
    if supplier is None and metadata.get("supplier_name"):
        # Supplier entity gone or never linked; show the name captured on the order
        supplier = {"id": metadata.get("supplier_id"), "name": metadata["supplier_name"], "code": None, "details": {}}
    return {
        "id": po.id,
        "poNumber": po.transaction_number,
        "supplierId": metadata.get("supplier_id"),
        "supplier": supplier,
        "totalAmount": float(po.total_amount or 0),
        "currency": po.currency,
        "approvalTier": approval_tier,
        "requiredApprovalLevel": approval_level_label(approval_tier),
        "requestedBy": metadata.get("requested_by"),
        "items": metadata.get("items") or [],
        "deliveryDate": metadata.get("delivery_date"),
        "notes": metadata.get("notes"),
        "createdAt": po.created_at.isoformat() if po.created_at else None,
        "daysPending": waited,
        "urgency": urgency_for(waited),
    }


def get_pending_approvals(
    db: Session,
    organization_id: str,
    user_id: str,
    user_role: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Dict:
    """
    Purchase orders waiting for this user's decision, most urgent first and
    then by amount. Raises WorkflowNotConfiguredError when the organization
    has no approval workflow.
    """
    configuration = get_workflow_configuration(db, organization_id)
    if configuration is None:
        raise WorkflowNotConfiguredError()

    tiers = authorized_tiers(configuration, user_id, user_role)
    if not tiers:
        return {
            "data": [],
            "message": "User is not authorized to approve purchase orders at any tier",
        }

    now = now or utc_now()
    pending = db.query(UniversalTransaction).filter(
        UniversalTransaction.organization_id == organization_id,
        UniversalTransaction.transaction_type == PURCHASE_ORDER_TRANSACTION_TYPE,
        UniversalTransaction.workflow_status == PurchaseOrderStatus.PENDING_APPROVAL.value,
        UniversalTransaction.requires_approval.is_(True),
    ).all()

    rows = []
    for po in pending:
        approval_tier = approval_tier_for(po.procurement_metadata)
        if approval_tier not in tiers:
            continue
        rows.append(_pending_row(db, po, approval_tier, now))
    rows.sort(key=pending_sort_key)

    return {
        "data": rows,
        "summary": {
            "total": len(rows),
            "highUrgency": sum(1 for row in rows if row["urgency"] == "high"),
            "totalValue": round(sum(row["totalAmount"] for row in rows), 2),
            "approvalTiers": tiers,
        },
    }


def get_approval_history(db: Session, po_id: str, organization_id: str) -> List[Dict]:
    if get_purchase_order(db, po_id, organization_id) is None:
        raise PurchaseOrderNotFoundError()

    entries = db.query(CoreRelationship).filter(
        CoreRelationship.organization_id == organization_id,
        CoreRelationship.parent_entity_id == po_id,
        CoreRelationship.relationship_type == APPROVAL_ACTION_RELATIONSHIP,
    ).order_by(CoreRelationship.created_at).all()
    return [{**(entry.relationship_data or {}), "id": entry.id, "created_at": entry.created_at} for entry in entries]
