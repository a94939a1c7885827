"""Document reference generation.

References look like ``POL-1767225600123-9F3A``: a three letter prefix, the
generation time in milliseconds and four random hex digits. Timestamps are
strictly increasing within a process, so two references generated here can
only collide across processes, and then only if the random suffix matches
as well. The unique index on document.reference is the final arbiter;
`with_unique_reference` regenerates on a violation.
"""

import logging
import re
import secrets
import threading
import time
from typing import Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..config import settings
from ..errors import ConflictError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_clock_lock = threading.Lock()
_last_timestamp_ms = 0


def reference_prefix(seed: Optional[str]) -> str:
    """First three letters of the seed, uppercased and padded with X.

    Example:
        >>> reference_prefix("Policy")
        'POL'
        >>> reference_prefix("HR")
        'HRX'
    """
    letters = re.sub(r"[^A-Za-z]", "", seed or "").upper()
    return letters[:3].ljust(3, "X")


def _next_timestamp_ms() -> int:
    global _last_timestamp_ms
    with _clock_lock:
        now_ms = int(time.time() * 1000)
        if now_ms <= _last_timestamp_ms:
            now_ms = _last_timestamp_ms + 1
        _last_timestamp_ms = now_ms
        return now_ms


def generate_reference(prefix_seed: Optional[str], tenant_code: Optional[str] = None) -> str:
    """Generate a fresh reference.

    Args:
        prefix_seed: Document category the prefix is derived from
        tenant_code: Organization code used verbatim (uppercased) instead

    Not idempotent: every call returns a new value.
    """
    if tenant_code:
        prefix = re.sub(r"[^A-Za-z0-9]", "", tenant_code).upper() or reference_prefix(prefix_seed)
    else:
        prefix = reference_prefix(prefix_seed)
    return f"{prefix}-{_next_timestamp_ms()}-{secrets.token_hex(2).upper()}"


def _is_reference_violation(error: IntegrityError) -> bool:
    return "reference" in str(error.orig).lower()


def with_unique_reference(
    db: Session,
    prefix_seed: Optional[str],
    apply: Callable[[str], T],
    tenant_code: Optional[str] = None,
    max_attempts: Optional[int] = None,
) -> T:
    """Run `apply(reference)` and flush, regenerating on a reference collision.

    `apply` must build its changes from the current database state each time
    it is called: a collision rolls the transaction back before the next
    attempt.

    Raises:
        ConflictError: If every attempt collided
    """
    attempts = max_attempts or settings.REFERENCE_MAX_ATTEMPTS

    for attempt in range(1, attempts + 1):
        reference = generate_reference(prefix_seed, tenant_code)
        result = apply(reference)
        try:
            db.flush()
            return result
        except IntegrityError as e:
            db.rollback()
            if not _is_reference_violation(e):
                raise
            logger.warning(
                f"Reference collision on attempt {attempt}/{attempts}: {reference}"
            )

    raise ConflictError(
        "Could not generate a unique document reference",
        details={"attempts": attempts},
    )
