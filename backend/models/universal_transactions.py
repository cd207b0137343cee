from sqlalchemy import Column, String, Numeric, Boolean, DateTime, JSON, UniqueConstraint, Index
from database import Base
import enum
from models.audit_mixin import TimestampMixin, utc_now, new_uuid

PURCHASE_ORDER_TRANSACTION_TYPE = "purchase_order"


class PurchaseOrderStatus(enum.Enum):
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


def status_columns(status: PurchaseOrderStatus) -> dict:
    """Column values for a status; older readers still look at transaction_status."""
    return {"workflow_status": status.value, "transaction_status": status.value}


class UniversalTransaction(Base, TimestampMixin):
    __tablename__ = "universal_transactions"
    __table_args__ = (
        UniqueConstraint("organization_id", "transaction_type", "transaction_number", name="_org_type_number_uc"),
        Index("ix_universal_transactions_org_type_status", "organization_id", "transaction_type", "workflow_status"),
    )

    id = Column(String(36), primary_key=True, default=new_uuid)
    organization_id = Column(String, nullable=False, index=True)
    transaction_type = Column(String(50), nullable=False)
    transaction_number = Column(String(50), nullable=True)
    transaction_date = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    total_amount = Column(Numeric(14, 2), default=0, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    workflow_status = Column(String(50), nullable=False, default=PurchaseOrderStatus.DRAFT.value)
    transaction_status = Column(String(50), nullable=False, default=PurchaseOrderStatus.DRAFT.value)
    requires_approval = Column(Boolean, nullable=False, default=False)
    procurement_metadata = Column(JSON, nullable=False, default=dict)

    @property
    def status(self) -> PurchaseOrderStatus:
        return PurchaseOrderStatus(self.workflow_status)

    @status.setter
    def status(self, value: PurchaseOrderStatus):
        for column, column_value in status_columns(value).items():
            setattr(self, column, column_value)

    def __repr__(self):
        return (
            f"<UniversalTransaction(id={self.id}, type={self.transaction_type}, "
            f"number={self.transaction_number}, status={self.workflow_status})>"
        )
