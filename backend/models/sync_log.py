"""SyncLogEntry model - records per-provider results for each sync."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from database import Base
from models.utils import generate_uuid, utc_now


class SyncLogEntry(Base):
    """A log entry recording the result of syncing a single provider.

    Each sync session has one entry per provider that was attempted.
    """

    __tablename__ = "sync_log_entries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    sync_session_id = Column(String(36), ForeignKey("sync_sessions.id"), nullable=False)
    provider_name = Column(String, nullable=False)
    status = Column(String, nullable=False)  # "success" | "failed"
    error_messages = Column(JSON, nullable=True)  # list[str]
    accounts_synced = Column(Integer, default=0)
    created_at = Column(DateTime, default=utc_now)

    # Relationships
    sync_session = relationship("SyncSession", back_populates="sync_log_entries")
