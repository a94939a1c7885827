"""Unit tests for the document status state machine"""

import pytest

from docflow.domain.documents import DocumentStatus, StepStatus, can_transition
from docflow.domain.documents.document_status import (
    ALLOWED_TRANSITIONS,
    derive_document_status,
    is_terminal,
)


class TestDocumentStatusStateMachine:
    """DocumentStatus enum and transition validation"""

    def test_document_status_enum_values(self):
        assert DocumentStatus.DRAFT.value == "draft"
        assert DocumentStatus.PENDING_REVIEW.value == "pending_review"
        assert DocumentStatus.APPROVED.value == "approved"
        assert DocumentStatus.REJECTED.value == "rejected"

    def test_initial_state_transition(self):
        assert can_transition(None, DocumentStatus.DRAFT) is True
        assert can_transition(None, DocumentStatus.APPROVED) is False

    def test_draft_transitions(self):
        """No workflow: draft goes straight to approved"""
        assert can_transition(DocumentStatus.DRAFT, DocumentStatus.PENDING_REVIEW) is True
        assert can_transition(DocumentStatus.DRAFT, DocumentStatus.APPROVED) is True
        assert can_transition(DocumentStatus.DRAFT, DocumentStatus.REJECTED) is False

    def test_pending_review_transitions(self):
        assert can_transition(DocumentStatus.PENDING_REVIEW, DocumentStatus.APPROVED) is True
        assert can_transition(DocumentStatus.PENDING_REVIEW, DocumentStatus.REJECTED) is True
        assert can_transition(DocumentStatus.PENDING_REVIEW, DocumentStatus.DRAFT) is False

    @pytest.mark.parametrize("terminal", [DocumentStatus.APPROVED, DocumentStatus.REJECTED])
    def test_terminal_states_have_no_transitions(self, terminal):
        assert ALLOWED_TRANSITIONS[terminal] == []
        assert is_terminal(terminal) is True
        for target in DocumentStatus:
            assert can_transition(terminal, target) is False

    def test_accepts_plain_strings(self):
        assert can_transition("pending_review", "approved") is True
        assert is_terminal("rejected") is True
        assert is_terminal("pending_review") is False


class TestDeriveDocumentStatus:
    """Aggregate status from the current version's steps"""

    def test_empty_chain_is_approved(self):
        assert derive_document_status([]) == DocumentStatus.APPROVED

    def test_all_approved(self):
        assert derive_document_status(["APPROVED", "APPROVED"]) == DocumentStatus.APPROVED

    def test_any_rejected_wins(self):
        assert derive_document_status(["APPROVED", "REJECTED", "PENDING"]) == DocumentStatus.REJECTED

    def test_pending_left(self):
        assert derive_document_status(["APPROVED", "PENDING"]) == DocumentStatus.PENDING_REVIEW

    def test_unknown_step_status_raises(self):
        with pytest.raises(ValueError):
            derive_document_status(["WAITING"])

    def test_delegated_is_a_known_step_status(self):
        assert StepStatus("DELEGATED") is StepStatus.DELEGATED
