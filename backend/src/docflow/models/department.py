"""Department SQLAlchemy model"""

import uuid

from sqlalchemy import Column, Text, ForeignKey, DateTime, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class Department(Base):
    """Organizational unit owning documents, projects and approvers."""
    __tablename__ = "department"
    __table_args__ = (
        UniqueConstraint("org_id", "name", name="uq_department_org_name"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    org_id = Column(Uuid, ForeignKey("org.id", ondelete="RESTRICT"), nullable=False)
    name = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    org = relationship("Org", back_populates="departments")
    users = relationship("User", back_populates="department")

    def __repr__(self):
        return f"<Department(id={self.id}, name='{self.name}')>"
