"""Unit tests for approval chain templates and document status moves"""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from docflow.approvals.engine import chain_template, normalize_chain, set_status
from docflow.approvals.workflow import WorkflowDecision
from docflow.domain.documents.document_status import DocumentStatus
from docflow.errors import ConflictError, ValidationError


def pending(workflow_steps=None):
    workflow = SimpleNamespace(steps=workflow_steps) if workflow_steps is not None else None
    return WorkflowDecision(DocumentStatus.PENDING_REVIEW, workflow)


class TestNormalizeChain:

    def test_orders_by_level(self):
        steps = normalize_chain([{"level": 2, "approver_id": "b"}, {"level": 1, "approver_id": "a"}])

        assert [(step["level"], step["approver_id"]) for step in steps] == [(1, "a"), (2, "b")]

    def test_missing_level_uses_position(self):
        assert [step["level"] for step in normalize_chain([{}, {"level": "3"}])] == [1, 3]

    def test_first_entry_for_a_level_wins(self):
        steps = normalize_chain([{"level": 1, "approver_id": "a"}, {"level": 1, "approver_id": "b"}])

        assert steps == [{"level": 1, "approver_id": "a"}]

    def test_non_object_entries_are_ignored(self):
        assert normalize_chain(["level 1", 7, None, {"level": 1}]) == [{"level": 1}]

    @pytest.mark.parametrize("level", ["abc", 0, -1, True, 1.5j])
    def test_bad_level(self, level):
        with pytest.raises(ValidationError) as exc_info:
            normalize_chain([{"level": level}])

        assert exc_info.value.to_dict()["details"]["field"] == "approval_chain"

    def test_empty(self):
        assert normalize_chain(None) == []
        assert normalize_chain([]) == []


class TestChainTemplate:

    def test_project_chain_wins(self):
        project = SimpleNamespace(approval_chain=[{"level": 1, "approver_id": "p"}])

        assert chain_template(pending([{"level": 1, "approver_id": "w"}]), project)[0]["approver_id"] == "p"

    def test_empty_project_chain_falls_back_to_workflow(self):
        project = SimpleNamespace(approval_chain=[])

        assert chain_template(pending([{"level": 1, "approver_id": "w"}]), project)[0]["approver_id"] == "w"

    def test_default_single_level(self):
        assert chain_template(pending(), None) == [{"level": 1}]
        assert chain_template(pending(["junk"]), None) == [{"level": 1}]

    def test_bad_project_chain(self):
        project = SimpleNamespace(approval_chain=[{"level": "first"}])

        with pytest.raises(ValidationError):
            chain_template(pending(), project)


class TestSetStatus:

    @pytest.mark.parametrize("current, target", [
        ("draft", DocumentStatus.PENDING_REVIEW),
        ("draft", DocumentStatus.APPROVED),
        ("pending_review", DocumentStatus.REJECTED),
    ])
    def test_allowed(self, current, target):
        document = SimpleNamespace(id=uuid4(), status=current)

        set_status(document, target)

        assert document.status == target.value

    def test_same_status_is_a_no_op(self):
        document = SimpleNamespace(id=uuid4(), status="pending_review")

        set_status(document, DocumentStatus.PENDING_REVIEW)

        assert document.status == "pending_review"

    @pytest.mark.parametrize("current, target", [
        ("rejected", DocumentStatus.APPROVED),
        ("approved", DocumentStatus.PENDING_REVIEW),
        ("draft", DocumentStatus.REJECTED),
        ("pending_review", DocumentStatus.DRAFT),
    ])
    def test_refused(self, current, target):
        document = SimpleNamespace(id=uuid4(), status=current)

        with pytest.raises(ConflictError):
            set_status(document, target)

        assert document.status == current

    def test_new_document_starts_as_draft(self):
        document = SimpleNamespace(id=uuid4(), status=None)

        set_status(document, DocumentStatus.DRAFT)

        assert document.status == "draft"
