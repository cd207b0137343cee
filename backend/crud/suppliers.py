from typing import Dict, Optional
from sqlalchemy.orm import Session
import logging

from crud.audit_log import create_audit_log
from crud.core_entities import get_entity, get_entities, get_dynamic_fields, set_dynamic_fields
from models.core_entities import CoreEntity, SUPPLIER_ENTITY_TYPE
from schemas.audit_log import AuditLogCreate
from schemas.suppliers import SupplierCreate
from utils import sqlalchemy_to_dict

logger = logging.getLogger(__name__)

SUPPLIER_DETAIL_FIELDS = ("contact_name", "email", "phone", "address", "payment_terms")


def supplier_to_dict(db: Session, entity: CoreEntity) -> Dict:
    return {
        "id": entity.id,
        "organization_id": entity.organization_id,
        "name": entity.entity_name,
        "code": entity.entity_code,
        "status": entity.status,
        "details": get_dynamic_fields(db, entity.id),
        "created_at": entity.created_at,
    }


def get_supplier(db: Session, supplier_id: str, organization_id: str) -> Optional[CoreEntity]:
    return get_entity(db, supplier_id, organization_id, SUPPLIER_ENTITY_TYPE)


def get_suppliers(db: Session, organization_id: str, skip: int = 0, limit: int = 100):
    return get_entities(db, organization_id, SUPPLIER_ENTITY_TYPE, skip=skip, limit=limit)


def get_supplier_by_name(db: Session, name: str, organization_id: str) -> Optional[CoreEntity]:
    return db.query(CoreEntity).filter(
        CoreEntity.organization_id == organization_id,
        CoreEntity.entity_type == SUPPLIER_ENTITY_TYPE,
        CoreEntity.entity_name == name,
    ).first()


def create_supplier(db: Session, supplier: SupplierCreate, organization_id: str, changed_by: Optional[str] = None) -> CoreEntity:
    db_supplier = CoreEntity(
        organization_id=organization_id,
        entity_type=SUPPLIER_ENTITY_TYPE,
        entity_name=supplier.name,
        entity_code=supplier.code,
        created_by=changed_by,
    )
    db.add(db_supplier)
    db.flush()

    details = supplier.model_dump(include=set(SUPPLIER_DETAIL_FIELDS))
    set_dynamic_fields(db, db_supplier, details, changed_by=changed_by)

    new_values = sqlalchemy_to_dict(db_supplier)
    new_values["details"] = get_dynamic_fields(db, db_supplier.id)
    create_audit_log(db, AuditLogCreate(
        organization_id=organization_id,
        table_name='core_entities',
        record_id=db_supplier.id,
        changed_by=changed_by,
        action='CREATE',
        old_values={},
        new_values=new_values,
    ), commit=False)
    db.commit()
    db.refresh(db_supplier)
    return db_supplier


def supplier_summary(db: Session, supplier_id: Optional[str], organization_id: str) -> Optional[Dict]:
    """
    Display block for a supplier referenced from a purchase order.
    Best-effort: a missing supplier, or a failed lookup, gives None.
    """
    if not supplier_id:
        return None
    try:
        entity = get_supplier(db, supplier_id, organization_id)
        if entity is None:
            return None
        return {
            "id": entity.id,
            "name": entity.entity_name,
            "code": entity.entity_code,
            "details": get_dynamic_fields(db, entity.id),
        }
    except Exception:
        db.rollback()
        logger.exception(f"Failed to load supplier {supplier_id} for organization {organization_id}")
        return None
