"""Document categories, their allowed document types and priorities."""

from typing import Dict, List, Optional, Tuple

from ...errors import ValidationError


CATEGORY_DOCUMENT_TYPES: Dict[str, Tuple[str, ...]] = {
    "Policy": ("HR Policy", "IT Policy", "Finance Policy", "Security Policy", "General Policy"),
    "Project": (
        "Project Proposal",
        "Budget Breakdown",
        "Technical Specifications",
        "Risk Assessment",
        "Timeline",
        "Team Structure",
        "Vendor Quotes",
        "Legal Review",
        "Financial Analysis",
    ),
    "Financial": ("Invoice", "Receipt", "Financial Report", "Budget", "Financial Analysis"),
    "Legal": ("Contract", "Agreement", "Legal Review", "Compliance Certificate"),
    "HR": ("Employment Contract", "Performance Review", "Leave Form", "Training Record"),
    "Administrative": ("Memo", "Report", "Procedure", "Minutes"),
    "Other": ("Other",),
}

PRIORITIES = ("Low", "Medium", "High", "Critical")
DEFAULT_PRIORITY = "Medium"

# Workflow configurations use this for "any category"
ALL_CATEGORIES = "ALL"


def allowed_types(category: str) -> Tuple[str, ...]:
    """Document types allowed for a category (empty for unknown categories)."""
    return CATEGORY_DOCUMENT_TYPES.get(category, ())


def all_document_types() -> List[str]:
    """Every known document type, sorted and deduplicated."""
    return sorted({t for types in CATEGORY_DOCUMENT_TYPES.values() for t in types})


def validate_classification(category: str, document_type: str, priority: Optional[str] = None) -> str:
    """Validate a category/document type pairing and the priority.

    Returns:
        The effective priority (DEFAULT_PRIORITY when none was given)

    Raises:
        ValidationError: With the offending field in details

    Example:
        >>> validate_classification("Policy", "HR Policy")
        'Medium'
        >>> validate_classification("Policy", "Invoice")
        Traceback (most recent call last):
        ...
        docflow.errors.ValidationError: Document type 'Invoice' is not allowed for category 'Policy'
    """
    if not category:
        raise ValidationError("Category is required", field="category")
    if category not in CATEGORY_DOCUMENT_TYPES:
        raise ValidationError(
            f"Unknown category '{category}'",
            field="category",
            details={"allowed": sorted(CATEGORY_DOCUMENT_TYPES)},
        )
    if not document_type:
        raise ValidationError("Document type is required", field="document_type")
    if document_type not in allowed_types(category):
        raise ValidationError(
            f"Document type '{document_type}' is not allowed for category '{category}'",
            field="document_type",
            details={"allowed": list(allowed_types(category))},
        )

    if priority is None or priority == "":
        return DEFAULT_PRIORITY
    if priority not in PRIORITIES:
        raise ValidationError(
            f"Unknown priority '{priority}'",
            field="priority",
            details={"allowed": list(PRIORITIES)},
        )
    return priority
