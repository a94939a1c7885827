"""FastAPI dependency resolving the bearer token to an active User.

Usage:
    @router.get("/documents/{document_id}")
    def get_document(current_user: CurrentUser):
        ...

Role checks live in the services (upload level, approver binding, search
access) because they depend on the document being acted on.
"""

from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from .jwt import decode_token

security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _token_identity(token: str) -> tuple:
    """Return (user_id, org_id) from a verified token."""
    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except jwt.InvalidTokenError as e:
        raise _unauthorized(f"Invalid token: {e}")

    if not payload.get("sub"):
        raise _unauthorized("Invalid token: missing user ID claim")

    try:
        return UUID(payload["sub"]), UUID(payload.get("org_id", ""))
    except (TypeError, ValueError) as e:
        raise _unauthorized(f"Invalid token claims: {e}")


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db),
) -> User:
    """Authenticated user for the request.

    A token whose org_id claim differs from the user's stored org is
    rejected like an unknown user.

    Raises:
        HTTPException 401: Missing, invalid or expired token, or unknown user
        HTTPException 403: User status is not ACTIVE
    """
    user_id, org_id = _token_identity(credentials.credentials)

    user = db.query(User).filter(User.id == user_id).first()
    if user is None or user.org_id != org_id:
        raise _unauthorized("User not found")

    if user.status != "ACTIVE":
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
