"""SQLAlchemy Models for DocFlow"""

from .base import Base
from .org import Org
from .department import Department
from .user import User
from .audit_log import AuditLog
from .document import Document
from .approval_step import ApprovalStep
from .approval_workflow import ApprovalWorkflow
from .project import Project, ProjectRequiredDocument
from .notification import Notification

__all__ = [
    "Base",
    "Org",
    "Department",
    "User",
    "AuditLog",
    "Document",
    "ApprovalStep",
    "ApprovalWorkflow",
    "Project",
    "ProjectRequiredDocument",
    "Notification",
]
