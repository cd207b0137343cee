from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
import logging

from database import get_db
from crud import workflow_configuration as crud_workflow
from schemas.workflow_configuration import WorkflowConfigurationOut, WorkflowConfigurationUpdate
from utils.tenancy import get_organization_id, get_acting_user

router = APIRouter(prefix="/workflow-configuration", tags=["Approval Workflow"])
logger = logging.getLogger(__name__)


@router.get("", response_model=WorkflowConfigurationOut)
def read_workflow_configuration(
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
):
    deployment = crud_workflow.get_workflow_deployment(db, organization_id)
    if deployment is None:
        raise HTTPException(status_code=404, detail="No approval workflow configured for this organization")
    return WorkflowConfigurationOut(
        organization_id=organization_id,
        deployment_id=deployment.id,
        fields=crud_workflow.get_workflow_configuration(db, organization_id),
    )


@router.put("", response_model=WorkflowConfigurationOut)
def update_workflow_configuration(
    config: WorkflowConfigurationUpdate,
    db: Session = Depends(get_db),
    organization_id: str = Depends(get_organization_id),
    user_id: Optional[str] = Depends(get_acting_user),
):
    """
    Assign tier approvers and amount thresholds. Fields left out of the body
    keep their value; a null clears the field, which re-enables the role
    fallback for an approver tier.
    """
    fields = config.model_dump(exclude_unset=True)
    if not fields:
        raise HTTPException(status_code=400, detail="No configuration fields supplied")
    try:
        deployment, values = crud_workflow.save_workflow_configuration(db, organization_id, fields, changed_by=user_id)
    except Exception:
        db.rollback()
        logger.exception(f"Failed to save approval workflow for organization {organization_id}")
        raise HTTPException(status_code=500, detail="Failed to save approval workflow configuration")
    return WorkflowConfigurationOut(organization_id=organization_id, deployment_id=deployment.id, fields=values)
