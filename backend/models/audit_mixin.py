from sqlalchemy import Column, DateTime, String
from datetime import datetime
import uuid
import pytz


def utc_now():
    return datetime.now(pytz.utc)


def new_uuid() -> str:
    return str(uuid.uuid4())


class TimestampMixin:
    """Mixin that provides created/updated timestamps and user info.

    Every universal table carries these columns. Timestamps are timezone-aware
    UTC so the values read back from Supabase compare directly with
    ``utc_now()``.
    """
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
    created_by = Column(String, nullable=True)
    updated_by = Column(String, nullable=True)
