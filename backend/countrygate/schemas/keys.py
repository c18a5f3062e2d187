"""Pydantic schemas for API keys and their usage logs."""

from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime

from countrygate.core.config import settings


# ─── API Key ───


class APIKeyCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    expiry_days: int = Field(
        default_factory=lambda: settings.default_key_expiry_days,
        ge=0,
        le=3650,
        alias="expiryDays",
        description="Days until the key expires; 0 means it never expires",
    )

    class Config:
        populate_by_name = True


class APIKeyResponse(BaseModel):
    """Listing view — ``key`` is always the masked form."""
    id: int
    name: str
    key: str
    is_active: bool
    created_at: datetime
    expires_at: Optional[datetime]
    last_used_at: Optional[datetime]
    usage_count: int


class APIKeyCreated(BaseModel):
    """Returned once when key is first created — contains the raw key."""
    success: bool = True
    message: str
    key: str  # raw key — only shown once
    data: APIKeyResponse


class APIKeyList(BaseModel):
    success: bool = True
    count: int
    keys: List[APIKeyResponse]


class APIKeyEnvelope(BaseModel):
    success: bool = True
    message: str
    data: APIKeyResponse


class ActivationResult(BaseModel):
    success: bool = True
    message: str
    activated: int


# ─── Usage ───


class UsageLogEntry(BaseModel):
    usage_id: int
    api_key_id: int
    key_name: str
    key_value: str
    endpoint: str
    method: str
    request_timestamp: datetime


class UsageLogList(BaseModel):
    success: bool = True
    count: int
    logs: List[UsageLogEntry]


class KeyUsage(BaseModel):
    key_id: int
    name: str
    usage_count: int
    last_used_at: Optional[datetime]
    logs: List[UsageLogEntry]


class KeyUsageResponse(BaseModel):
    success: bool = True
    usage: KeyUsage
