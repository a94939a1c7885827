"""User SQLAlchemy model"""

import re
import uuid

from sqlalchemy import (
    Column, Text, Integer, ForeignKey, CheckConstraint, UniqueConstraint, DateTime, Index, Uuid,
)
from sqlalchemy.orm import relationship, validates

from .base import Base, utcnow
from ..auth.roles import UserRole, ROLE_LEVELS


class User(Base):
    """User model representing authenticated users in the DocFlow system.

    Each user belongs to one organization and optionally one department.
    `role_level` is derived from `role` and is what approver resolution and
    search scoping compare against.
    """
    __tablename__ = "user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("org.id", ondelete="RESTRICT"), nullable=False)
    department_id = Column(Uuid, ForeignKey("department.id", ondelete="SET NULL"), nullable=True)
    email = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    role = Column(Text, nullable=False)
    role_level = Column(Integer, nullable=False, default=0)
    status = Column(Text, nullable=False, default="ACTIVE")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    org = relationship("Org", back_populates="users")
    department = relationship("Department", back_populates="users")

    # Constraints
    __table_args__ = (
        CheckConstraint(
            "role IN ('SUPER_ADMIN', 'HOD', 'MANAGER', 'STAFF', 'VIEWER')",
            name='ck_user_role'
        ),
        CheckConstraint(
            "status IN ('ACTIVE', 'DISABLED')",
            name='ck_user_status'
        ),
        UniqueConstraint('org_id', 'email', name='uq_user_org_email'),
        Index("ix_user_org_department_level", "org_id", "department_id", "role_level"),
    )

    @validates('email')
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', value):
            raise ValueError("Invalid email format")
        return value.lower()

    @validates('role')
    def validate_role(self, key, value):
        """Keep role_level in step with the role name."""
        role = UserRole(value)
        self.role_level = ROLE_LEVELS[role]
        return role.value

    def to_dict(self):
        """Convert user to dictionary representation"""
        return {
            "id": str(self.id),
            "org_id": str(self.org_id),
            "department_id": str(self.department_id) if self.department_id else None,
            "email": self.email,
            "name": self.name,
            "role": self.role,
            "role_level": self.role_level,
            "status": self.status,
        }
