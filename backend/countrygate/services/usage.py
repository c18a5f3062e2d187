"""
Usage accounting for API keys.

Every verified proxy call bumps the key's counter, stamps ``last_used_at`` and
appends an audit row. The work runs after the response is sent, on its own
session, so the caller never waits for it.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from countrygate.core.database import SessionLocal
from countrygate.models.user import APIKey
from countrygate.models.usage_log import APIKeyUsageLog

logger = logging.getLogger("countrygate.usage")


def apply_key_usage(db: Session, api_key_id: int, endpoint: str, method: str = "GET") -> bool:
    """Increment the counter and append a log row in one transaction.

    Returns False when the key vanished between verification and accounting.
    """
    key = db.query(APIKey).filter(APIKey.id == api_key_id).first()
    if key is None:
        return False

    now = datetime.now(timezone.utc)
    # Increment in SQL so concurrent uses never overwrite each other
    db.execute(
        update(APIKey)
        .where(APIKey.id == api_key_id)
        .values(request_count=APIKey.request_count + 1, last_used_at=now)
    )
    db.add(APIKeyUsageLog(
        api_key_id=key.id,
        user_id=key.user_id,
        key_name=key.name,
        key_value=key.masked_key,
        endpoint=endpoint[:300],
        method=method,
        requested_at=now,
    ))
    db.commit()
    return True


def record_key_usage(api_key_id: int, endpoint: str, method: str = "GET"):
    """Background-task entry point — owns its session and never raises."""
    db = SessionLocal()
    try:
        if not apply_key_usage(db, api_key_id, endpoint, method):
            logger.info("Key %s deleted before usage could be recorded", api_key_id)
    except Exception as exc:
        db.rollback()
        logger.error("Usage recording failed for key %s: %s", api_key_id, exc, exc_info=True)
    finally:
        db.close()


# ─── Queries ───


def logs_for_user(db: Session, user_id: int, limit: int = 500) -> List[APIKeyUsageLog]:
    """All usage rows of a user, including rows of keys deleted since."""
    return (
        db.query(APIKeyUsageLog)
        .filter(APIKeyUsageLog.user_id == user_id)
        .order_by(APIKeyUsageLog.requested_at.desc(), APIKeyUsageLog.id.desc())
        .limit(limit)
        .all()
    )


def logs_for_key(db: Session, api_key_id: int, limit: Optional[int] = None) -> List[APIKeyUsageLog]:
    query = (
        db.query(APIKeyUsageLog)
        .filter(APIKeyUsageLog.api_key_id == api_key_id)
        .order_by(APIKeyUsageLog.requested_at.desc(), APIKeyUsageLog.id.desc())
    )
    if limit:
        query = query.limit(limit)
    return query.all()
