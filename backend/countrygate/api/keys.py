"""API key management endpoints — create, list, toggle, delete, usage."""

import logging
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from countrygate.core.database import get_db
from countrygate.core.errors import NotFound, ValidationFailure
from countrygate.core.security import as_utc, get_current_user, generate_api_key
from countrygate.models.user import User, APIKey
from countrygate.models.usage_log import APIKeyUsageLog
from countrygate.schemas.keys import (
    APIKeyCreate,
    APIKeyCreated,
    APIKeyEnvelope,
    APIKeyList,
    APIKeyResponse,
    ActivationResult,
    KeyUsage,
    KeyUsageResponse,
    UsageLogEntry,
    UsageLogList,
)
from countrygate.services.usage import logs_for_key, logs_for_user

router = APIRouter(prefix="/api/keys", tags=["api-keys"])

logger = logging.getLogger("countrygate.keys")


# ─── Helpers ───


def _log_entry(log: APIKeyUsageLog) -> UsageLogEntry:
    return UsageLogEntry(
        usage_id=log.id,
        api_key_id=log.api_key_id,
        key_name=log.key_name,
        key_value=log.key_value,
        endpoint=log.endpoint,
        method=log.method,
        request_timestamp=log.requested_at,
    )


def _key_view(ak: APIKey) -> APIKeyResponse:
    return APIKeyResponse(
        id=ak.id,
        name=ak.name,
        key=ak.masked_key,
        is_active=ak.is_active,
        created_at=ak.created_at,
        expires_at=ak.expires_at,
        last_used_at=ak.last_used_at,
        usage_count=ak.request_count or 0,
    )


def _owned_key(db: Session, key_id: int, user: User) -> APIKey:
    ak = (
        db.query(APIKey)
        .filter(APIKey.id == key_id, APIKey.user_id == user.id)
        .first()
    )
    if not ak:
        raise NotFound("API key not found")
    return ak


# ─── Create / list ───


@router.post("", response_model=APIKeyCreated, status_code=201)
def create_key(
    body: APIKeyCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Generate a new API key. The raw key is shown only once."""
    name = body.name.strip()
    if not name:
        raise ValidationFailure("API key name is required")

    raw, prefix, last4, key_hash = generate_api_key()

    expires_at = None
    if body.expiry_days > 0:
        expires_at = datetime.now(timezone.utc) + timedelta(days=body.expiry_days)

    ak = APIKey(
        user_id=user.id,
        name=name,
        key_hash=key_hash,
        key_prefix=prefix,
        key_last4=last4,
        is_active=True,
        expires_at=expires_at,
    )
    db.add(ak)
    db.commit()
    db.refresh(ak)

    logger.info("User %s created key %s (%s)", user.id, ak.id, prefix)
    return APIKeyCreated(
        message="API key created. Copy it now, it will not be shown again.",
        key=raw,
        data=_key_view(ak),
    )


@router.get("", response_model=APIKeyList)
def list_keys(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List all API keys for the current user (raw key is never re-shown)."""
    keys = (
        db.query(APIKey)
        .filter(APIKey.user_id == user.id)
        .order_by(APIKey.created_at.desc(), APIKey.id.desc())
        .all()
    )
    return APIKeyList(count=len(keys), keys=[_key_view(k) for k in keys])


@router.get("/logs", response_model=UsageLogList)
def list_logs(
    limit: int = Query(500, ge=1, le=1000),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Usage log of every key the user owns or has owned."""
    logs = logs_for_user(db, user.id, limit=limit)
    return UsageLogList(
        count=len(logs),
        logs=[_log_entry(log) for log in logs],
    )


@router.post("/fix-inactive-keys", response_model=ActivationResult)
def activate_inactive_keys(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """One-off repair: re-activate every inactive, unexpired key of the user."""
    now = datetime.now(timezone.utc)
    inactive = (
        db.query(APIKey)
        .filter(APIKey.user_id == user.id, APIKey.is_active == False)  # noqa: E712
        .all()
    )
    activated = 0
    for ak in inactive:
        expires_at = as_utc(ak.expires_at)
        if expires_at is not None and expires_at < now:
            continue
        ak.is_active = True
        activated += 1
    db.commit()

    logger.info("User %s re-activated %d keys", user.id, activated)
    return ActivationResult(message=f"Activated {activated} API key(s)", activated=activated)


# ─── Single key ───


@router.patch("/{key_id}/toggle", response_model=APIKeyEnvelope)
def toggle_key(
    key_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Flip an API key between active and inactive."""
    ak = _owned_key(db, key_id, user)
    ak.is_active = not ak.is_active
    db.commit()
    db.refresh(ak)

    state = "activated" if ak.is_active else "deactivated"
    logger.info("User %s %s key %s", user.id, state, ak.id)
    return APIKeyEnvelope(message=f"API key {state}", data=_key_view(ak))


@router.delete("/{key_id}")
def delete_key(
    key_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Delete an API key. Its usage log rows are kept."""
    ak = _owned_key(db, key_id, user)
    db.delete(ak)
    db.commit()

    logger.info("User %s deleted key %s", user.id, key_id)
    return {"success": True, "message": "API key deleted"}


@router.get("/{key_id}/usage", response_model=KeyUsageResponse)
def key_usage(
    key_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Usage counter and log rows of one key."""
    ak = _owned_key(db, key_id, user)
    logs = logs_for_key(db, ak.id)
    return KeyUsageResponse(
        usage=KeyUsage(
            key_id=ak.id,
            name=ak.name,
            usage_count=ak.request_count or 0,
            last_used_at=ak.last_used_at,
            logs=[_log_entry(log) for log in logs],
        )
    )
