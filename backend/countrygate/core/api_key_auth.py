"""API key verification for the country-data endpoints."""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import BackgroundTasks, Depends, Query, Request, Security
from fastapi.security import APIKeyHeader
from sqlalchemy.orm import Session

from countrygate.core.database import get_db
from countrygate.core.errors import AuthenticationFailure, AuthorizationFailure, NotFound
from countrygate.core.security import as_utc, hash_api_key
from countrygate.models.user import APIKey
from countrygate.services.usage import record_key_usage

logger = logging.getLogger("countrygate.keys")

api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def check_api_key(db: Session, raw_key: Optional[str]) -> APIKey:
    """Look up ``raw_key`` and make sure it may be used right now."""
    if not raw_key:
        raise AuthenticationFailure("API key is required")

    ak = db.query(APIKey).filter(APIKey.key_hash == hash_api_key(raw_key)).first()
    if ak is None:
        raise NotFound("Invalid API key")
    if not ak.is_active:
        raise AuthorizationFailure("API key is inactive")

    expires_at = as_utc(ak.expires_at)
    if expires_at is not None and expires_at < datetime.now(timezone.utc):
        raise AuthorizationFailure("API key has expired")
    return ak


async def verify_api_key(
    request: Request,
    background_tasks: BackgroundTasks,
    header_key: Optional[str] = Security(api_key_header),
    query_key: Optional[str] = Query(None, alias="api_key", include_in_schema=False),
    db: Session = Depends(get_db),
) -> APIKey:
    """Accept the key from ``X-API-Key`` or ``?api_key=`` and schedule usage accounting."""
    try:
        ak = check_api_key(db, header_key or query_key)
    except (NotFound, AuthorizationFailure) as exc:
        logger.info("API key rejected on %s: %s", request.url.path, exc.message)
        raise

    # Error responses raised later in the request pick this up in the exception handler
    request.state.key_usage = (ak.id, request.url.path, request.method)
    background_tasks.add_task(record_key_usage, *request.state.key_usage)
    return ak
