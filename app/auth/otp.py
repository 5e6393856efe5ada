"""One-time numeric codes used for email verification and password resets."""

from __future__ import annotations

import hmac
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple


def issue_code(ttl_minutes: int) -> Tuple[str, datetime]:
    """Return a fresh 6-digit code and its expiry."""

    code = str(100000 + secrets.randbelow(900000))
    return code, datetime.now(tz=timezone.utc) + timedelta(minutes=ttl_minutes)


def code_matches(stored: Optional[str], expires_at: Optional[datetime], candidate: str) -> bool:
    if not stored or expires_at is None:
        return False
    if datetime.now(tz=timezone.utc) >= expires_at:
        return False
    return hmac.compare_digest(stored.encode("utf-8"), candidate.strip().encode("utf-8"))
