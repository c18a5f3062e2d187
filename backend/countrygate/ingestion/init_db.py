"""
Database initialization and table creation script.
Run this once to set up the database schema.
"""
import logging

from countrygate.core.database import engine, Base
from countrygate.models.user import User, APIKey  # noqa: F401
from countrygate.models.usage_log import APIKeyUsageLog  # noqa: F401

logger = logging.getLogger("countrygate.init_db")


def init_db():
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)
    logger.info("All tables created successfully")


def drop_all():
    """Drop all tables (use with caution)."""
    Base.metadata.drop_all(bind=engine)
    logger.info("All tables dropped")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
    print("Database initialized successfully!")
