from typing import Dict, Optional
from sqlalchemy.orm import Session
import logging

from crud.audit_log import create_audit_log
from crud.core_entities import get_entity_by_type, get_dynamic_fields, set_dynamic_fields
from models.core_entities import CoreEntity, WORKFLOW_DEPLOYMENT_ENTITY_TYPE
from schemas.audit_log import AuditLogCreate

logger = logging.getLogger(__name__)


def get_workflow_deployment(db: Session, organization_id: str) -> Optional[CoreEntity]:
    return get_entity_by_type(db, organization_id, WORKFLOW_DEPLOYMENT_ENTITY_TYPE)


def get_workflow_configuration(db: Session, organization_id: str) -> Optional[Dict[str, str]]:
    """
    Approval workflow configuration of an organization as a flat dict, e.g.
    {"tier_1_approver_user_id": "<uuid>"}. Unconfigured fields are absent.

    Returns None when the organization has no workflow deployment at all.
    """
    if not organization_id:
        raise ValueError("organization_id is required")
    deployment = get_workflow_deployment(db, organization_id)
    if deployment is None:
        return None
    return get_dynamic_fields(db, deployment.id)


def save_workflow_configuration(db: Session, organization_id: str, fields: Dict[str, Optional[str]], changed_by: Optional[str] = None):
    """Create the organization's workflow deployment if needed and upsert its fields."""
    deployment = get_workflow_deployment(db, organization_id)
    if deployment is None:
        deployment = CoreEntity(
            organization_id=organization_id,
            entity_type=WORKFLOW_DEPLOYMENT_ENTITY_TYPE,
            entity_name="Purchase Order Approval Workflow",
            entity_code="PO-APPROVAL-WORKFLOW",
            created_by=changed_by,
        )
        db.add(deployment)
        db.flush()
        old_values = {}
        action = 'CREATE'
    else:
        old_values = get_dynamic_fields(db, deployment.id)
        action = 'UPDATE'

    set_dynamic_fields(db, deployment, fields, changed_by=changed_by)
    new_values = get_dynamic_fields(db, deployment.id)

    create_audit_log(db, AuditLogCreate(
        organization_id=organization_id,
        table_name='core_dynamic_data',
        record_id=deployment.id,
        changed_by=changed_by,
        action=action,
        old_values=old_values,
        new_values=new_values,
    ), commit=False)
    db.commit()
    db.refresh(deployment)

    logger.info(f"Approval workflow for organization {organization_id} {action.lower()}d by {changed_by}: {sorted(new_values)}")
    return deployment, new_values
