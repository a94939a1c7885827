"""Unit tests for category / document type classification"""

import pytest

from docflow.domain.documents.classification import (
    CATEGORY_DOCUMENT_TYPES,
    DEFAULT_PRIORITY,
    all_document_types,
    allowed_types,
    validate_classification,
)
from docflow.errors import ValidationError


class TestAllowedTypes:

    def test_every_category_has_types(self):
        for category, types in CATEGORY_DOCUMENT_TYPES.items():
            assert types, category

    def test_unknown_category_has_no_types(self):
        assert allowed_types("Marketing") == ()

    def test_shared_types_listed_once(self):
        types = all_document_types()
        assert types.count("Financial Analysis") == 1
        assert types.count("Legal Review") == 1
        assert types == sorted(types)


class TestValidateClassification:

    @pytest.mark.parametrize("category,document_type", [
        ("Policy", "HR Policy"),
        ("Project", "Budget Breakdown"),
        ("Financial", "Invoice"),
        ("Legal", "Contract"),
        ("HR", "Leave Form"),
        ("Administrative", "Minutes"),
        ("Other", "Other"),
    ])
    def test_valid_pairs(self, category, document_type):
        assert validate_classification(category, document_type) == DEFAULT_PRIORITY

    def test_type_from_other_category_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_classification("Policy", "Invoice")
        assert exc_info.value.field == "document_type"
        assert "HR Policy" in exc_info.value.details["allowed"]

    def test_unknown_category_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_classification("Marketing", "Flyer")
        assert exc_info.value.field == "category"

    @pytest.mark.parametrize("category,document_type,field", [
        ("", "Invoice", "category"),
        ("Financial", "", "document_type"),
    ])
    def test_missing_values(self, category, document_type, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_classification(category, document_type)
        assert exc_info.value.field == field

    def test_explicit_priority_kept(self):
        assert validate_classification("Financial", "Invoice", "Critical") == "Critical"

    def test_unknown_priority_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_classification("Financial", "Invoice", "Urgent")
        assert exc_info.value.field == "priority"
        assert exc_info.value.status_code == 422
