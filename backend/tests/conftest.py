import os
import tempfile

# Point the app at a throwaway database before anything imports database.py
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="procurement-logs-"))

from datetime import timedelta
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from crud.suppliers import create_supplier
from crud.workflow_configuration import save_workflow_configuration
from database import Base, engine, SessionLocal
from main import app
from models.audit_mixin import utc_now, new_uuid
from models.universal_transactions import UniversalTransaction, PURCHASE_ORDER_TRANSACTION_TYPE
from schemas.suppliers import SupplierCreate

ORG_ID = "org1"
OTHER_ORG_ID = "org2"


@pytest.fixture(autouse=True)
def fresh_tables():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def make_workflow(db):
    def _make_workflow(organization_id=ORG_ID, **fields):
        deployment, values = save_workflow_configuration(db, organization_id, fields, changed_by="admin")
        return deployment
    return _make_workflow


@pytest.fixture
def make_supplier(db):
    def _make_supplier(name="Fresh Farms", organization_id=ORG_ID, **details):
        return create_supplier(db, SupplierCreate(name=name, **details), organization_id, changed_by="admin")
    return _make_supplier


@pytest.fixture
def make_po(db):
    counter = {"n": 0}

    def _make_po(
        po_id=None,
        organization_id=ORG_ID,
        approval_tier=1,
        workflow_status="pending_approval",
        total_amount="250.00",
        requires_approval=True,
        days_old=0,
        transaction_type=PURCHASE_ORDER_TRANSACTION_TYPE,
        transaction_number=None,
        **metadata,
    ):
        counter["n"] += 1
        procurement_metadata = {"requested_by": "chef-mario", "items": [], **metadata}
        if approval_tier is not None:
            procurement_metadata["approval_tier"] = approval_tier
        created_at = utc_now() - timedelta(days=days_old, hours=1 if days_old else 0)
        po = UniversalTransaction(
            id=po_id or new_uuid(),
            organization_id=organization_id,
            transaction_type=transaction_type,
            transaction_number=transaction_number or f"PO-9{counter['n']:05d}",
            total_amount=Decimal(total_amount),
            currency="USD",
            workflow_status=workflow_status,
            transaction_status=workflow_status,
            requires_approval=requires_approval,
            procurement_metadata=procurement_metadata,
            created_at=created_at,
            transaction_date=created_at,
        )
        db.add(po)
        db.commit()
        db.refresh(po)
        return po
    return _make_po


@pytest.fixture
def reload_po(db):
    def _reload_po(po_id):
        db.expire_all()
        return db.query(UniversalTransaction).filter(UniversalTransaction.id == po_id).one()
    return _reload_po
