"""API key usage log — one immutable audit row per proxied call."""

from sqlalchemy import Column, Integer, String, DateTime

from countrygate.core.database import Base
from countrygate.models.user import utcnow


class APIKeyUsageLog(Base):
    """Snapshot of the key at the time of use.

    ``api_key_id`` is a plain copy rather than a foreign key, and the key name and
    masked value are copied too, so rows stay readable after the key is deleted.
    """
    __tablename__ = "api_key_usage_logs"

    id = Column(Integer, primary_key=True, index=True)
    api_key_id = Column(Integer, nullable=False, index=True)
    user_id = Column(Integer, nullable=False, index=True)
    key_name = Column(String(100), nullable=False)
    key_value = Column(String(32), nullable=False)
    endpoint = Column(String(300), nullable=False, index=True)
    method = Column(String(10), nullable=False, default="GET")
    requested_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
