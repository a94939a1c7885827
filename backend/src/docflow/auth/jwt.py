"""JWT token generation and validation

Tokens are issued by the ERP's login service; this backend only verifies
them. create_access_token exists for service-to-service calls and tests.

Claims:
- sub: User ID as UUID string
- org_id: Organization (tenant) ID; every query is filtered by it
- role: SUPER_ADMIN | HOD | MANAGER | STAFF | VIEWER
- email: User's email address
- iat / exp: issue and expiry timestamps

Algorithm HS256, secret from the JWT_SECRET environment variable.
"""

import os
from datetime import datetime, timedelta, timezone
from typing import Dict, Any
from uuid import UUID

import jwt


def _get_jwt_secret() -> str:
    """Get JWT_SECRET from environment.

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    secret = os.getenv('JWT_SECRET')
    if not secret:
        raise ValueError("JWT_SECRET environment variable is not set")
    return secret


def _get_jwt_expiry_minutes() -> int:
    """Get JWT_EXPIRY_MINUTES from environment (default: 60)."""
    expiry = os.getenv('JWT_EXPIRY_MINUTES', '60')
    try:
        return int(expiry)
    except ValueError:
        return 60


def create_access_token(
    user_id: UUID,
    org_id: UUID,
    role: str,
    email: str
) -> str:
    """Create a signed JWT access token.

    Raises:
        ValueError: If JWT_SECRET is not set
    """
    secret = _get_jwt_secret()
    now = datetime.now(timezone.utc)
    expiration = now + timedelta(minutes=_get_jwt_expiry_minutes())

    payload = {
        'sub': str(user_id),
        'org_id': str(org_id),
        'role': role,
        'email': email,
        'iat': int(now.timestamp()),
        'exp': int(expiration.timestamp()),
    }

    return jwt.encode(payload, secret, algorithm='HS256')


def decode_token(token: str) -> Dict[str, Any]:
    """Decode and validate a JWT token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid or tampered
        ValueError: If JWT_SECRET is not set
    """
    secret = _get_jwt_secret()

    try:
        return jwt.decode(token, secret, algorithms=['HS256'])
    except jwt.ExpiredSignatureError:
        raise jwt.ExpiredSignatureError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise jwt.InvalidTokenError(f"Invalid token: {str(e)}")
