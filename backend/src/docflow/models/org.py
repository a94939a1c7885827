"""Org model - Root entity for multi-tenant isolation"""

import re
import uuid

from sqlalchemy import Column, Text, DateTime, Uuid
from sqlalchemy.orm import validates, relationship

from .base import Base, utcnow


class Org(Base):
    """
    Organization model - Root entity for multi-tenant system.

    Each organization represents a distinct tenant with isolated data.
    All other tables reference org.id via foreign key. The short `code`
    is used as the reference prefix when documents are generated for the
    organization as a whole.
    """
    __tablename__ = "org"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    slug = Column(Text, nullable=False, unique=True)
    code = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    users = relationship("User", back_populates="org")
    departments = relationship("Department", back_populates="org")
    documents = relationship("Document", back_populates="org")

    @validates('slug')
    def validate_slug(self, key, value):
        """
        Ensure slug is URL-friendly and follows naming conventions.

        Pattern: ^[a-z0-9-]+$
        Valid: acme-ltd, test-org-123
        Invalid: Acme_Ltd, acme ltd, acme.ltd

        Raises:
            ValueError: If slug doesn't match pattern or length requirements
        """
        if not re.match(r'^[a-z0-9-]+$', value):
            raise ValueError(
                "Slug must contain only lowercase letters, numbers, and hyphens"
            )
        if len(value) < 2 or len(value) > 100:
            raise ValueError("Slug must be between 2 and 100 characters")
        return value

    @validates('code')
    def validate_code(self, key, value):
        """Tenant codes are 2-10 alphanumerics, stored uppercase."""
        if value is None:
            return value
        if not re.match(r'^[A-Za-z0-9]{2,10}$', value):
            raise ValueError("Org code must be 2-10 letters or digits")
        return value.upper()

    @validates('name')
    def validate_name(self, key, value):
        """
        Ensure organization name is not empty and within length limits.

        Raises:
            ValueError: If name is empty/whitespace or exceeds 200 characters
        """
        if not value or len(value.strip()) == 0:
            raise ValueError("Organization name cannot be empty")
        if len(value) > 200:
            raise ValueError("Organization name cannot exceed 200 characters")
        return value.strip()

    def __repr__(self):
        return f"<Org(id={self.id}, slug='{self.slug}', name='{self.name}')>"
