from decimal import Decimal, InvalidOperation
from typing import Dict, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import logging
import os

from crud.audit_log import create_audit_log
from crud.suppliers import get_supplier
from crud.workflow_configuration import get_workflow_configuration
from models.universal_transactions import (
    UniversalTransaction,
    PurchaseOrderStatus,
    PURCHASE_ORDER_TRANSACTION_TYPE,
)
from schemas.audit_log import AuditLogCreate
from schemas.purchase_orders import PurchaseOrderCreate
from utils import sqlalchemy_to_dict
from utils.approval_rules import tier_for_amount

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = os.getenv("DEFAULT_CURRENCY", "USD")

# Amount matrix used when an organization has not configured its own thresholds
DEFAULT_APPROVAL_THRESHOLDS = {
    "auto_approval_threshold": Decimal(os.getenv("AUTO_APPROVAL_THRESHOLD", "100")),
    "tier_1_threshold": Decimal(os.getenv("TIER_1_THRESHOLD", "500")),
    "tier_2_threshold": Decimal(os.getenv("TIER_2_THRESHOLD", "2000")),
}

PO_NUMBER_PREFIX = "PO-"
PO_NUMBER_ATTEMPTS = 3


class PurchaseOrderNumberConflictError(Exception):
    def __init__(self, message: str = "Could not allocate a purchase order number, please retry"):
        super().__init__(message)


def get_purchase_order(db: Session, po_id: str, organization_id: str) -> Optional[UniversalTransaction]:
    return db.query(UniversalTransaction).filter(
        UniversalTransaction.id == po_id,
        UniversalTransaction.organization_id == organization_id,
        UniversalTransaction.transaction_type == PURCHASE_ORDER_TRANSACTION_TYPE,
    ).first()


def get_purchase_orders(db: Session, organization_id: str, status: Optional[PurchaseOrderStatus] = None, skip: int = 0, limit: int = 100):
    query = db.query(UniversalTransaction).filter(
        UniversalTransaction.organization_id == organization_id,
        UniversalTransaction.transaction_type == PURCHASE_ORDER_TRANSACTION_TYPE,
    )
    if status:
        query = query.filter(UniversalTransaction.workflow_status == status.value)
    return query.order_by(UniversalTransaction.transaction_date.desc(), UniversalTransaction.transaction_number.desc()).offset(skip).limit(limit).all()


def approval_thresholds(configuration: Optional[Dict[str, str]]) -> Dict[str, Decimal]:
    thresholds = dict(DEFAULT_APPROVAL_THRESHOLDS)
    for name in thresholds:
        raw = (configuration or {}).get(name)
        if raw is None:
            continue
        try:
            thresholds[name] = Decimal(raw)
        except InvalidOperation:
            logger.warning(f"Ignoring non-numeric approval threshold {name}={raw!r}")
    return thresholds


def next_transaction_number(db: Session, organization_id: str) -> str:
    """One past the highest numeric PO number of the organization; other numbering schemes are skipped."""
    numbers = db.query(UniversalTransaction.transaction_number).filter(
        UniversalTransaction.organization_id == organization_id,
        UniversalTransaction.transaction_type == PURCHASE_ORDER_TRANSACTION_TYPE,
        UniversalTransaction.transaction_number.like(f"{PO_NUMBER_PREFIX}%"),
    ).all()
    last_po_number = max(
        (int(number[len(PO_NUMBER_PREFIX):]) for (number,) in numbers if number[len(PO_NUMBER_PREFIX):].isdigit()),
        default=0,
    )
    return f"{PO_NUMBER_PREFIX}{last_po_number + 1:06d}"


def create_purchase_order(db: Session, po: PurchaseOrderCreate, organization_id: str, changed_by: Optional[str] = None) -> UniversalTransaction:
    """
    Create a purchase order. Orders under the auto-approval threshold are
    approved straight away; everything else waits in pending_approval with
    an approval tier taken from the request or from the amount matrix.
    """
    if not po.items:
        raise ValueError("Purchase order must contain at least one item.")

    supplier = get_supplier(db, po.supplier_id, organization_id)
    if supplier is None:
        raise ValueError(f"Supplier with ID {po.supplier_id} not found.")

    total_amount = Decimal(0)
    items = []
    for line_number, item in enumerate(po.items, start=1):
        line_total = item.quantity * item.unit_price
        total_amount += line_total
        items.append({
            "line_number": line_number,
            "item_id": item.item_id,
            "description": item.description,
            "quantity": float(item.quantity),
            "unit": item.unit,
            "unit_price": float(item.unit_price),
            "line_total": float(line_total),
        })

    thresholds = approval_thresholds(get_workflow_configuration(db, organization_id))
    approval_tier = po.approval_tier or tier_for_amount(total_amount, **thresholds)

    metadata = {
        "supplier_id": supplier.id,
        "supplier_name": supplier.entity_name,
        "items": items,
        "requested_by": po.requested_by,
        "delivery_date": po.delivery_date.isoformat() if po.delivery_date else None,
        "notes": po.notes,
    }
    if approval_tier is None:
        status = PurchaseOrderStatus.APPROVED
        metadata["auto_approved"] = True
    else:
        status = PurchaseOrderStatus.PENDING_APPROVAL
        metadata["approval_tier"] = approval_tier

    # Another writer can take the same number between our read and our insert
    for attempt in range(1, PO_NUMBER_ATTEMPTS + 1):
        db_po = UniversalTransaction(
            organization_id=organization_id,
            transaction_type=PURCHASE_ORDER_TRANSACTION_TYPE,
            transaction_number=next_transaction_number(db, organization_id),
            total_amount=total_amount,
            currency=(po.currency or DEFAULT_CURRENCY).upper(),
            requires_approval=approval_tier is not None,
            procurement_metadata=metadata,
            created_by=changed_by,
        )
        db_po.status = status
        db.add(db_po)
        try:
            db.flush()
            break
        except IntegrityError:
            db.rollback()
            logger.warning(
                f"PO number {db_po.transaction_number} already taken in organization {organization_id} "
                f"(attempt {attempt} of {PO_NUMBER_ATTEMPTS})"
            )
    else:
        raise PurchaseOrderNumberConflictError()

    create_audit_log(db, AuditLogCreate(
        organization_id=organization_id,
        table_name='universal_transactions',
        record_id=db_po.id,
        changed_by=changed_by,
        action='CREATE',
        old_values={},
        new_values=sqlalchemy_to_dict(db_po),
    ), commit=False)
    db.commit()
    db.refresh(db_po)

    logger.info(
        f"Purchase Order {db_po.transaction_number} (ID: {db_po.id}) created for organization {organization_id} "
        f"with total {total_amount}, status {db_po.workflow_status}, tier {approval_tier}"
    )
    return db_po
