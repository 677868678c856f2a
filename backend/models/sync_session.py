"""SyncSession model - one sync cycle for a user."""

from sqlalchemy import Boolean, Column, DateTime, String, Text
from sqlalchemy.orm import relationship

from database import Base
from models.utils import DEFAULT_USER_ID, generate_uuid, utc_now


class SyncSession(Base):
    """A sync cycle across all configured providers.

    ``is_complete`` is True when at least one provider succeeded.
    """

    __tablename__ = "sync_sessions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, default=DEFAULT_USER_ID)
    timestamp = Column(DateTime, nullable=False, default=utc_now)
    is_complete = Column(Boolean, default=False)
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    sync_log_entries = relationship("SyncLogEntry", back_populates="sync_session")
