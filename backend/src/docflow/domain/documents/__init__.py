"""Document classification, status rules and upload validation."""

from .classification import (
    CATEGORY_DOCUMENT_TYPES,
    PRIORITIES,
    allowed_types,
    validate_classification,
)
from .document_status import DocumentStatus, StepStatus, can_transition

__all__ = [
    "CATEGORY_DOCUMENT_TYPES",
    "PRIORITIES",
    "allowed_types",
    "validate_classification",
    "DocumentStatus",
    "StepStatus",
    "can_transition",
]
