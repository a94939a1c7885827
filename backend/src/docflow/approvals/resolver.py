"""Approver resolution.

`select_approvers` is the single definition of who may act on a
department-bound step; `resolve_approvers` evaluates the same predicate in
SQL. Both return users ordered by (role_level desc, email).
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..config import settings
from ..models.user import User

logger = logging.getLogger(__name__)


def _order_key(user: User):
    return (-(user.role_level or 0), user.email)


def select_approvers(users: Iterable[User], department_id: UUID, min_role_level: int) -> List[User]:
    """Active users of the department at or above the role level."""
    selected = [
        user for user in users
        if user.department_id == department_id
        and (user.role_level or 0) >= min_role_level
        and user.status == "ACTIVE"
    ]
    return sorted(selected, key=_order_key)


def resolve_approvers(
    db: Session,
    org_id: UUID,
    department_id: Optional[UUID],
    min_role_level: Optional[int] = None,
) -> List[User]:
    """Department approvers for an org, evaluated as one query."""
    if department_id is None:
        return []
    if min_role_level is None:
        min_role_level = settings.APPROVER_MIN_ROLE_LEVEL

    return db.query(User).filter(
        User.org_id == org_id,
        User.department_id == department_id,
        User.role_level >= min_role_level,
        User.status == "ACTIVE",
    ).order_by(User.role_level.desc(), User.email).all()


def super_admins(db: Session, org_id: UUID) -> List[User]:
    """Active users at the super administrator level."""
    return db.query(User).filter(
        User.org_id == org_id,
        User.role_level >= settings.SUPER_ADMIN_ROLE_LEVEL,
        User.status == "ACTIVE",
    ).order_by(User.email).all()


@dataclass
class StepCandidates:
    """Who may act on a step and how they were found."""
    users: List[User] = field(default_factory=list)
    escalated: bool = False

    @property
    def user_ids(self) -> List[UUID]:
        return [user.id for user in self.users]

    def includes(self, user: User) -> bool:
        return user.id in self.user_ids


def candidates_for(
    db: Session,
    org_id: UUID,
    approver_id: Optional[UUID],
    department_id: Optional[UUID],
) -> StepCandidates:
    """Bound approver, else department approvers, else super administrators."""
    if approver_id is not None:
        approver = db.query(User).filter(
            User.id == approver_id,
            User.org_id == org_id,
            User.status == "ACTIVE",
        ).first()
        if approver is not None:
            return StepCandidates([approver])
        logger.warning(
            "Bound approver is missing or inactive, resolving by department",
            extra={"org_id": org_id, "user_id": approver_id},
        )

    users = resolve_approvers(db, org_id, department_id)
    if users:
        return StepCandidates(users)

    admins = super_admins(db, org_id)
    logger.info(
        f"No approver for department {department_id}, escalating to {len(admins)} super admin(s)",
        extra={"org_id": org_id},
    )
    return StepCandidates(admins, escalated=True)
