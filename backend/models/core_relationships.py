from sqlalchemy import Column, String, DateTime, JSON, Index
from database import Base
from models.audit_mixin import utc_now, new_uuid

APPROVAL_ACTION_RELATIONSHIP = "approval_action"


class CoreRelationship(Base):
    """Insert-only link between two universal records.

    Parent and child ids are plain strings rather than foreign keys because
    either side may live in ``core_entities`` or ``universal_transactions``.
    """
    __tablename__ = "core_relationships"
    __table_args__ = (
        Index("ix_core_relationships_parent_type", "parent_entity_id", "relationship_type"),
    )

    id = Column(String(36), primary_key=True, default=new_uuid)
    organization_id = Column(String, nullable=False, index=True)
    parent_entity_id = Column(String(36), nullable=False)
    child_entity_id = Column(String(36), nullable=False)
    relationship_type = Column(String(100), nullable=False)
    relationship_data = Column(JSON, nullable=True)
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
