from datetime import timedelta

import pytest

import crud.purchase_order_approvals as approvals
from crud.purchase_order_approvals import (
    ApprovalPermissionError,
    InvalidApprovalStateError,
    PurchaseOrderNotFoundError,
    WorkflowNotConfiguredError,
    apply_approval_action,
    get_approval_history,
    get_pending_approvals,
)
from models.audit_mixin import utc_now
from models.core_relationships import CoreRelationship
from models.universal_transactions import UniversalTransaction

from conftest import ORG_ID, OTHER_ORG_ID


def _approval_actions(db, po_id):
    db.expire_all()
    return db.query(CoreRelationship).filter(CoreRelationship.parent_entity_id == po_id).all()


def test_approve_sets_both_statuses_and_keeps_metadata(db, make_workflow, make_po, reload_po):
    make_workflow(tier_1_approver_user_id="u1")
    po = make_po(po_id="po1", supplier_id="sup-1", notes="weekly produce")

    outcome = apply_approval_action(db, "po1", ORG_ID, "approve", "u1", comments="looks fine")

    assert outcome["status"] == "approved"
    assert outcome["action_performed_by"] == "u1"
    assert outcome["po_number"] == po.transaction_number
    assert outcome["total_amount"] == 250.0

    stored = reload_po("po1")
    assert stored.workflow_status == "approved"
    assert stored.transaction_status == "approved"
    metadata = stored.procurement_metadata
    assert metadata["requested_by"] == "chef-mario"
    assert metadata["supplier_id"] == "sup-1"
    assert metadata["notes"] == "weekly produce"
    assert metadata["approval_tier"] == 1
    assert metadata["approved_by"] == "u1"
    assert metadata["approval_comments"] == "looks fine"
    assert "approval_date" in metadata
    assert stored.updated_by == "u1"


def test_reject_records_rejection_fields(db, make_workflow, make_po, reload_po):
    make_workflow(tier_1_approver_user_id="u1")
    make_po(po_id="po1")

    outcome = apply_approval_action(db, "po1", ORG_ID, "reject", "u1", comments="over budget")

    assert outcome["status"] == "rejected"
    stored = reload_po("po1")
    assert stored.workflow_status == stored.transaction_status == "rejected"
    assert stored.procurement_metadata["rejected_by"] == "u1"
    assert stored.procurement_metadata["rejection_comments"] == "over budget"
    assert "approved_by" not in stored.procurement_metadata


def test_decision_appends_self_referencing_audit_entry(db, make_workflow, make_po):
    make_workflow(tier_1_approver_user_id="u1")
    po = make_po(po_id="po1", total_amount="320.50")

    apply_approval_action(db, "po1", ORG_ID, "approve", "u1", comments="ok")

    entries = _approval_actions(db, "po1")
    assert len(entries) == 1
    entry = entries[0]
    assert entry.child_entity_id == "po1"
    assert entry.relationship_type == "approval_action"
    assert entry.organization_id == ORG_ID
    assert entry.relationship_data["action"] == "approve"
    assert entry.relationship_data["performed_by"] == "u1"
    assert entry.relationship_data["comments"] == "ok"
    assert entry.relationship_data["approval_tier"] == 1
    assert entry.relationship_data["po_number"] == po.transaction_number
    assert entry.relationship_data["total_amount"] == 320.5


@pytest.mark.parametrize("current_status", ["approved", "rejected", "draft"])
def test_only_pending_orders_can_be_decided(db, make_workflow, make_po, reload_po, current_status):
    make_workflow(tier_1_approver_user_id="u1")
    make_po(po_id="po1", workflow_status=current_status)

    with pytest.raises(InvalidApprovalStateError) as excinfo:
        apply_approval_action(db, "po1", ORG_ID, "approve", "u1")

    assert current_status in str(excinfo.value)
    assert excinfo.value.current_status == current_status
    assert reload_po("po1").workflow_status == current_status
    assert _approval_actions(db, "po1") == []


def test_other_organization_sees_not_found(db, make_workflow, make_po, reload_po):
    make_workflow(tier_1_approver_user_id="u1")
    make_workflow(organization_id=OTHER_ORG_ID, tier_1_approver_user_id="u1")
    make_po(po_id="po1")

    with pytest.raises(PurchaseOrderNotFoundError):
        apply_approval_action(db, "po1", OTHER_ORG_ID, "approve", "u1")
    assert reload_po("po1").workflow_status == "pending_approval"


def test_other_transaction_types_are_not_purchase_orders(db, make_workflow, make_po):
    make_workflow(tier_1_approver_user_id="u1")
    make_po(po_id="sale1", transaction_type="sale")

    with pytest.raises(PurchaseOrderNotFoundError):
        apply_approval_action(db, "sale1", ORG_ID, "approve", "u1")


def test_missing_workflow_is_reported_and_nothing_changes(db, make_po, reload_po):
    make_po(po_id="po1")

    with pytest.raises(WorkflowNotConfiguredError):
        apply_approval_action(db, "po1", ORG_ID, "approve", "u1", user_role="manager")
    assert reload_po("po1").workflow_status == "pending_approval"


def test_unauthorized_user_is_refused(db, make_workflow, make_po, reload_po):
    make_workflow(tier_1_approver_user_id="u1")
    make_po(po_id="po1")

    with pytest.raises(ApprovalPermissionError):
        apply_approval_action(db, "po1", ORG_ID, "approve", "u2", user_role="manager")
    assert reload_po("po1").workflow_status == "pending_approval"


def test_missing_tier_defaults_to_tier_one(db, make_workflow, make_po, reload_po):
    make_workflow(tier_1_approver_user_id="u1")
    make_po(po_id="po1", approval_tier=None)

    apply_approval_action(db, "po1", ORG_ID, "approve", "u1")
    assert reload_po("po1").workflow_status == "approved"


def test_concurrent_decision_loses_with_state_conflict(db, make_workflow, make_po, reload_po, monkeypatch):
    make_workflow(tier_1_approver_user_id="u1")
    make_po(po_id="po1")
    real_loader = approvals.get_workflow_configuration

    def loader_racing_with_another_request(session, organization_id):
        # Another approver rejects the order between our read and our write
        session.query(UniversalTransaction).filter(UniversalTransaction.id == "po1").update(
            {"workflow_status": "rejected", "transaction_status": "rejected"},
            synchronize_session=False,
        )
        session.commit()
        return real_loader(session, organization_id)

    monkeypatch.setattr(approvals, "get_workflow_configuration", loader_racing_with_another_request)

    with pytest.raises(InvalidApprovalStateError) as excinfo:
        apply_approval_action(db, "po1", ORG_ID, "approve", "u1")

    assert excinfo.value.current_status == "rejected"
    stored = reload_po("po1")
    assert stored.workflow_status == "rejected"
    assert "approved_by" not in stored.procurement_metadata
    assert _approval_actions(db, "po1") == []


def test_audit_failure_does_not_undo_the_decision(db, make_workflow, make_po, reload_po, monkeypatch):
    make_workflow(tier_1_approver_user_id="u1")
    make_po(po_id="po1")

    def broken_recorder(*args, **kwargs):
        raise RuntimeError("relationship table unavailable")

    monkeypatch.setattr(approvals, "record_approval_action", broken_recorder)

    outcome = apply_approval_action(db, "po1", ORG_ID, "approve", "u1")

    assert outcome["status"] == "approved"
    assert reload_po("po1").workflow_status == "approved"
    assert _approval_actions(db, "po1") == []


def test_pending_approvals_require_workflow(db, make_po):
    make_po()
    with pytest.raises(WorkflowNotConfiguredError):
        get_pending_approvals(db, ORG_ID, "u1", "manager")


def test_pending_approvals_empty_when_user_has_no_tiers(db, make_workflow, make_po):
    make_workflow(tier_1_approver_user_id="u1")
    make_po()

    result = get_pending_approvals(db, ORG_ID, "u2", None)

    assert result["data"] == []
    assert result["message"]
    assert "summary" not in result


def test_pending_approvals_only_lists_authorized_pending_orders(db, make_workflow, make_po):
    make_workflow(tier_1_approver_user_id="u1", tier_2_approver_user_id="u5")
    make_po(po_id="t1", approval_tier=1)
    make_po(po_id="t1-string", approval_tier="1")
    make_po(po_id="t2", approval_tier=2)
    make_po(po_id="t3", approval_tier=3)
    make_po(po_id="approved", approval_tier=1, workflow_status="approved")
    make_po(po_id="no-approval-needed", approval_tier=1, requires_approval=False)
    make_po(po_id="other-org", approval_tier=1, organization_id=OTHER_ORG_ID)

    result = get_pending_approvals(db, ORG_ID, "u1", None)

    assert sorted(row["id"] for row in result["data"]) == ["t1", "t1-string"]
    assert result["summary"]["approvalTiers"] == [1]


def test_pending_approvals_sorted_by_urgency_then_amount(db, make_workflow, make_po):
    make_workflow(tier_1_approver_user_id="u1")
    make_po(po_id="fresh", total_amount="900", days_old=0)
    make_po(po_id="old", total_amount="100", days_old=5)
    make_po(po_id="aging", total_amount="500", days_old=2)

    result = get_pending_approvals(db, ORG_ID, "u1", None, now=utc_now() + timedelta(minutes=1))

    rows = result["data"]
    assert [row["id"] for row in rows] == ["old", "aging", "fresh"]
    assert [row["urgency"] for row in rows] == ["high", "medium", "low"]
    assert [row["daysPending"] for row in rows] == [5, 2, 0]
    assert rows[0]["requiredApprovalLevel"] == "Manager"
    assert result["summary"] == {
        "total": 3,
        "highUrgency": 1,
        "totalValue": 1500.0,
        "approvalTiers": [1],
    }


def test_pending_approvals_enrich_supplier_best_effort(db, make_workflow, make_supplier, make_po):
    make_workflow(tier_1_approver_user_id="u1")
    supplier = make_supplier(name="Fresh Farms", phone="555-0100", email="orders@freshfarms.test")
    make_po(po_id="known", supplier_id=supplier.id, total_amount="300")
    make_po(po_id="unknown", supplier_id="no-such-supplier", total_amount="200")

    rows = {row["id"]: row for row in get_pending_approvals(db, ORG_ID, "u1", None)["data"]}

    assert rows["known"]["supplier"]["name"] == "Fresh Farms"
    assert rows["known"]["supplier"]["details"]["phone"] == "555-0100"
    assert rows["unknown"]["supplier"] is None
    assert rows["unknown"]["supplierId"] == "no-such-supplier"


def test_approval_history_lists_decisions(db, make_workflow, make_po):
    make_workflow(tier_1_approver_user_id="u1")
    make_po(po_id="po1")
    apply_approval_action(db, "po1", ORG_ID, "reject", "u1", comments="wrong supplier")

    history = get_approval_history(db, "po1", ORG_ID)

    assert len(history) == 1
    assert history[0]["action"] == "reject"
    assert history[0]["comments"] == "wrong supplier"
    with pytest.raises(PurchaseOrderNotFoundError):
        get_approval_history(db, "po1", OTHER_ORG_ID)


def test_pending_approvals_fall_back_to_recorded_supplier_name(db, make_workflow, make_po):
    make_workflow(tier_1_approver_user_id="u1")
    make_po(po_id="deleted-supplier", supplier_id="sup-removed", supplier_name="Old Mill Bakery")
    make_po(po_id="name-only", supplier_name="Corner Dairy")

    rows = {row["id"]: row for row in get_pending_approvals(db, ORG_ID, "u1", None)["data"]}

    assert rows["deleted-supplier"]["supplier"]["name"] == "Old Mill Bakery"
    assert rows["deleted-supplier"]["supplier"]["id"] == "sup-removed"
    assert rows["name-only"]["supplier"]["name"] == "Corner Dairy"
    assert rows["name-only"]["supplierId"] is None
