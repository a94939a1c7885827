"""Integration tests for the approval chain

- Multi-level chains resolve level by level
- Only candidates of the actionable step may act
- Steps leave PENDING exactly once
- Terminal documents refuse further actions
"""

from uuid import uuid4

import pytest
from prometheus_client import REGISTRY

from docflow.approvals import engine
from docflow.domain.documents.document_status import StepStatus
from docflow.models import ApprovalStep, AuditLog, Document, Notification

pytestmark = pytest.mark.integration


@pytest.fixture
def two_level_document(make_workflow, create_document, finance_staff, finance_hod, super_admin, finance_dept):
    """Level 1: finance department approvers, level 2: the super admin."""
    make_workflow(
        category="Financial",
        department=finance_dept,
        steps=[
            {"level": 1, "department_id": str(finance_dept.id)},
            {"level": 2, "approver_id": str(super_admin.id)},
        ],
    )
    document, _ = create_document(finance_staff, department_id=finance_dept.id)
    return document


def _approve(client, auth_headers, user, document_id, comments=None):
    body = {"comments": comments} if comments else None
    return client.post(f"/api/v1/documents/{document_id}/approve", headers=auth_headers(user), json=body)


def _reject(client, auth_headers, user, document_id, comments=None):
    body = {"comments": comments} if comments else None
    return client.post(f"/api/v1/documents/{document_id}/reject", headers=auth_headers(user), json=body)


class TestMultiLevelApproval:

    def test_chain_is_created_pending(self, two_level_document, finance_hod):
        steps = two_level_document.current_steps()

        assert [(step.level, step.status) for step in steps] == [(1, "PENDING"), (2, "PENDING")]
        assert two_level_document.status == "pending_review"
        assert two_level_document.current_approver_id == finance_hod.id

    def test_full_approval(self, client, auth_headers, two_level_document, finance_hod, super_admin,
                           finance_staff, db_session):
        first = _approve(client, auth_headers, finance_hod, two_level_document.id, "Looks right")

        assert first.status_code == 200
        data = first.json()
        assert data["status"] == "pending_review"
        assert data["current_approver_id"] == str(super_admin.id)
        assert [step["status"] for step in data["approval_chain"]] == ["APPROVED", "PENDING"]
        assert data["approval_chain"][0]["comments"] == "Looks right"

        second = _approve(client, auth_headers, super_admin, two_level_document.id)

        assert second.status_code == 200
        data = second.json()
        assert data["status"] == "approved"
        assert data["approved_by_id"] == str(super_admin.id)
        assert data["approved_at"] is not None
        assert data["current_approver_id"] is None

        types = {
            n.type for n in db_session.query(Notification).filter(Notification.recipient_id == finance_staff.id)
        }
        assert "DOCUMENT_APPROVED" in types

    def test_second_level_waits_for_first(self, client, auth_headers, two_level_document, super_admin, db_session):
        response = _approve(client, auth_headers, super_admin, two_level_document.id)

        # The super admin is only a candidate for level 2
        assert response.status_code == 403
        db_session.expire_all()
        assert all(step.status == "PENDING" for step in db_session.get(Document, two_level_document.id).current_steps())

    def test_next_level_reviewers_are_notified(self, client, auth_headers, two_level_document, finance_hod,
                                               super_admin, db_session):
        _approve(client, auth_headers, finance_hod, two_level_document.id)

        notification = db_session.query(Notification).filter(
            Notification.recipient_id == super_admin.id,
            Notification.type == "DOCUMENT_APPROVAL_REQUIRED",
        ).one()
        assert notification.data["level"] == 2

    def test_rejection_is_immediate(self, client, auth_headers, two_level_document, finance_hod, db_session):
        response = _reject(client, auth_headers, finance_hod, two_level_document.id, "Wrong supplier")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "rejected"
        assert [step["status"] for step in data["approval_chain"]] == ["REJECTED", "PENDING"]

        audit = db_session.query(AuditLog).filter(
            AuditLog.entity_id == two_level_document.id,
            AuditLog.action == "DOCUMENT_REJECTED",
        ).one()
        assert audit.metadata_json["comments"] == "Wrong supplier"


class TestApprovalAuthorization:

    def test_non_candidate_is_refused_without_changes(self, client, auth_headers, two_level_document,
                                                      finance_manager, db_session):
        before = REGISTRY.get_sample_value(
            "docflow_approval_actions_total", {"action": "approve", "outcome": "not_authorized"}
        ) or 0

        response = _approve(client, auth_headers, finance_manager, two_level_document.id)

        assert response.status_code == 403
        assert response.json()["error"] == "not_authorized"
        db_session.expire_all()
        document = db_session.get(Document, two_level_document.id)
        assert document.status == "pending_review"
        assert document.audit_trail[-1]["action"] == "UPLOADED"
        after = REGISTRY.get_sample_value(
            "docflow_approval_actions_total", {"action": "approve", "outcome": "not_authorized"}
        )
        assert after == before + 1

    def test_other_department_hod_is_refused(self, client, auth_headers, two_level_document, hr_hod):
        response = _approve(client, auth_headers, hr_hod, two_level_document.id)

        assert response.status_code == 403

    def test_uploader_cannot_approve_own_document(self, client, auth_headers, two_level_document, finance_staff):
        response = _approve(client, auth_headers, finance_staff, two_level_document.id)

        assert response.status_code == 403

    def test_unknown_document(self, client, auth_headers, finance_hod):
        response = _approve(client, auth_headers, finance_hod, uuid4())

        assert response.status_code == 404

    def test_comments_length_is_limited(self, client, auth_headers, two_level_document, finance_hod):
        response = _approve(client, auth_headers, finance_hod, two_level_document.id, "x" * 2001)

        assert response.status_code == 422


class TestEscalation:

    def test_no_department_approver_escalates_to_super_admin(
        self, client, auth_headers, make_workflow, create_document, hr_staff, hr_dept, super_admin, db_session
    ):
        make_workflow(category="HR", department=hr_dept)
        document, _ = create_document(
            hr_staff, category="HR", document_type="Leave Form", department_id=hr_dept.id
        )

        assert document.current_approver_id == super_admin.id
        escalated = db_session.query(Notification).filter(
            Notification.recipient_id == super_admin.id,
            Notification.type == "APPROVAL_ESCALATED",
        ).one()
        assert escalated.data["document_id"] == str(document.id)

        response = _approve(client, auth_headers, super_admin, document.id)
        assert response.json()["status"] == "approved"


class TestConflicts:

    def test_terminal_document_conflict(self, client, auth_headers, make_workflow, create_document,
                                        finance_staff, finance_hod, finance_dept):
        make_workflow(category="Financial", department=finance_dept)
        document, _ = create_document(finance_staff, department_id=finance_dept.id)

        assert _approve(client, auth_headers, finance_hod, document.id).status_code == 200
        again = _approve(client, auth_headers, finance_hod, document.id)
        reject = _reject(client, auth_headers, finance_hod, document.id)

        assert again.status_code == 409
        assert reject.status_code == 409
        assert again.json()["details"]["status"] == "approved"

    def test_document_without_chain_conflicts(self, client, auth_headers, create_document, finance_staff, super_admin):
        document, _ = create_document(finance_staff)
        assert document.status == "approved"

        response = _approve(client, auth_headers, super_admin, document.id)

        assert response.status_code == 409

    def test_concurrent_resolution_loses_cleanly(self, client, auth_headers, two_level_document, finance_hod,
                                                 monkeypatch, db_session):
        monkeypatch.setattr(engine, "transition_step", lambda *args, **kwargs: False)

        response = _approve(client, auth_headers, finance_hod, two_level_document.id)

        assert response.status_code == 409
        assert response.json()["message"] == "Approval step already resolved"
        db_session.expire_all()
        assert db_session.get(Document, two_level_document.id).status == "pending_review"

    def test_refused_status_move_keeps_step_pending(self, client, auth_headers, two_level_document, finance_hod,
                                                    monkeypatch, db_session):
        monkeypatch.setattr(engine, "can_transition", lambda *args: False)

        response = _approve(client, auth_headers, finance_hod, two_level_document.id)

        assert response.status_code == 409
        db_session.rollback()
        steps = db_session.query(ApprovalStep).filter(ApprovalStep.document_id == two_level_document.id).all()
        assert {step.status for step in steps} == {"PENDING"}
        assert db_session.get(Document, two_level_document.id).status == "pending_review"

    def test_status_is_derived_from_stored_steps(self, client, auth_headers, two_level_document, finance_hod,
                                                 db_session):
        level_two = [step for step in two_level_document.current_steps() if step.level == 2][0]
        level_two.status = "APPROVED"
        db_session.commit()

        response = _approve(client, auth_headers, finance_hod, two_level_document.id)

        assert response.json()["status"] == "approved"
        assert response.json()["approved_by_id"] == str(finance_hod.id)
        assert response.json()["current_approver_id"] is None

    def test_step_leaves_pending_once(self, two_level_document, finance_hod, db_session):
        step = engine.current_step(db_session, two_level_document)

        assert engine.transition_step(db_session, step, StepStatus.APPROVED, finance_hod.id) is True
        assert engine.transition_step(db_session, step, StepStatus.REJECTED, finance_hod.id) is False

        db_session.expire_all()
        assert db_session.get(ApprovalStep, step.id).status == "APPROVED"

    def test_higher_level_refused_while_lower_pending(self, two_level_document, super_admin, db_session):
        level_two = [step for step in two_level_document.current_steps() if step.level == 2][0]

        assert engine.transition_step(db_session, level_two, StepStatus.APPROVED, super_admin.id) is False


class TestPendingApprovals:

    def test_queue_lists_only_actionable_documents(self, client, auth_headers, two_level_document,
                                                   finance_hod, super_admin):
        hod_queue = client.get("/api/v1/documents/approvals/pending", headers=auth_headers(finance_hod)).json()
        admin_queue = client.get("/api/v1/documents/approvals/pending", headers=auth_headers(super_admin)).json()

        assert hod_queue["total"] == 1
        assert hod_queue["documents"][0]["document_id"] == str(two_level_document.id)
        assert hod_queue["documents"][0]["level"] == 1
        assert admin_queue["total"] == 0

    def test_queue_moves_to_next_level(self, client, auth_headers, two_level_document, finance_hod, super_admin):
        _approve(client, auth_headers, finance_hod, two_level_document.id)

        hod_queue = client.get("/api/v1/documents/approvals/pending", headers=auth_headers(finance_hod)).json()
        admin_queue = client.get("/api/v1/documents/approvals/pending", headers=auth_headers(super_admin)).json()

        assert hod_queue["total"] == 0
        assert admin_queue["documents"][0]["level"] == 2
