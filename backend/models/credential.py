"""Credential model - per-user provider access tokens."""

from sqlalchemy import Column, DateTime, String, Text, UniqueConstraint

from database import Base
from models.utils import DEFAULT_USER_ID, generate_uuid, utc_now


class Credential(Base):
    """Stored provider credential (e.g. a SimpleFIN access URL).

    One row per (user_id, provider); reconnecting overwrites the token.
    """

    __tablename__ = "credentials"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uix_credential_user_provider"),
    )

    id = Column(String(36), primary_key=True, default=generate_uuid)
    user_id = Column(String, nullable=False, default=DEFAULT_USER_ID)
    provider = Column(String, nullable=False)
    access_token = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)
