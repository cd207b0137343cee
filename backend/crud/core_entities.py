from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from models.core_entities import CoreEntity, CoreDynamicData
from models.audit_mixin import utc_now


def get_entity(db: Session, entity_id: str, organization_id: str, entity_type: str) -> Optional[CoreEntity]:
    return db.query(CoreEntity).filter(
        CoreEntity.id == entity_id,
        CoreEntity.organization_id == organization_id,
        CoreEntity.entity_type == entity_type,
    ).first()


def get_entity_by_type(db: Session, organization_id: str, entity_type: str) -> Optional[CoreEntity]:
    """First entity of a type for the organization (singletons such as workflow deployments)."""
    return (
        db.query(CoreEntity)
        .filter(CoreEntity.organization_id == organization_id, CoreEntity.entity_type == entity_type)
        .order_by(CoreEntity.created_at)
        .first()
    )


def get_entities(db: Session, organization_id: str, entity_type: str, skip: int = 0, limit: int = 100) -> List[CoreEntity]:
    return (
        db.query(CoreEntity)
        .filter(CoreEntity.organization_id == organization_id, CoreEntity.entity_type == entity_type)
        .order_by(CoreEntity.entity_name)
        .offset(skip)
        .limit(limit)
        .all()
    )


def get_dynamic_fields(db: Session, entity_id: str) -> Dict[str, str]:
    """
    Flatten an entity's dynamic fields into {field_name: field_value}.
    Blank values are left out so that a missing key always means "not set".
    """
    rows = db.query(CoreDynamicData).filter(CoreDynamicData.entity_id == entity_id).all()
    return {row.field_name: row.field_value for row in rows if row.field_value not in (None, "")}


def set_dynamic_fields(db: Session, entity: CoreEntity, fields: Dict[str, Optional[str]], changed_by: Optional[str] = None):
    """
    Upsert dynamic fields on an entity. A None or blank value deletes the field.
    The caller owns the commit.
    """
    existing = {
        row.field_name: row
        for row in db.query(CoreDynamicData).filter(CoreDynamicData.entity_id == entity.id).all()
    }
    for name, value in fields.items():
        row = existing.get(name)
        if value is None or str(value) == "":
            if row is not None:
                db.delete(row)
            continue

        field_type = "number" if isinstance(value, (int, float)) or hasattr(value, "quantize") else "text"
        if row is None:
            db.add(CoreDynamicData(
                organization_id=entity.organization_id,
                entity_id=entity.id,
                field_name=name,
                field_value=str(value),
                field_type=field_type,
                created_by=changed_by,
            ))
        else:
            row.field_value = str(value)
            row.field_type = field_type
            row.updated_at = utc_now()
            row.updated_by = changed_by
    db.flush()
