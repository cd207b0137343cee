from sqlalchemy import Column, String, Text, ForeignKey, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from database import Base
from models.audit_mixin import TimestampMixin, new_uuid

# entity_type values used by the procurement module
SUPPLIER_ENTITY_TYPE = "supplier"
WORKFLOW_DEPLOYMENT_ENTITY_TYPE = "purchase_workflow_deployment"


class CoreEntity(Base, TimestampMixin):
    __tablename__ = "core_entities"
    __table_args__ = (
        Index("ix_core_entities_org_type", "organization_id", "entity_type"),
    )

    id = Column(String(36), primary_key=True, default=new_uuid)
    organization_id = Column(String, nullable=False, index=True)
    entity_type = Column(String(100), nullable=False)
    entity_name = Column(String(255), nullable=False)
    entity_code = Column(String(100), nullable=True)
    status = Column(String(50), nullable=False, default="active")

    dynamic_fields = relationship(
        "CoreDynamicData",
        back_populates="entity",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<CoreEntity(id={self.id}, type={self.entity_type}, name={self.entity_name})>"


class CoreDynamicData(Base, TimestampMixin):
    __tablename__ = "core_dynamic_data"
    __table_args__ = (UniqueConstraint("entity_id", "field_name", name="_dynamic_entity_field_uc"),)

    id = Column(String(36), primary_key=True, default=new_uuid)
    organization_id = Column(String, nullable=False, index=True)
    entity_id = Column(String(36), ForeignKey("core_entities.id", ondelete="CASCADE"), nullable=False, index=True)
    field_name = Column(String(100), nullable=False)
    field_value = Column(Text, nullable=True)
    field_type = Column(String(30), nullable=False, default="text")

    entity = relationship("CoreEntity", back_populates="dynamic_fields")
