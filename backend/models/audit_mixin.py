from sqlalchemy import Column, DateTime, String
from datetime import datetime
from config import get_timezone


def now_local():
    return datetime.now(get_timezone())


class TimestampMixin:
    """Mixin that provides created/updated timestamps and user info.

    Timestamps are timezone-aware and generated in the configured APP_TIMEZONE.
    DateTime(timezone=True) ensures the timezone info is persisted in the database.
    """
    created_at = Column(DateTime(timezone=True), default=now_local)
    updated_at = Column(DateTime(timezone=True), onupdate=now_local)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
