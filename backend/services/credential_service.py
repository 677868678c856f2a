"""Per-user provider credentials stored in the database."""

import logging

from sqlalchemy.orm import Session

from models import Credential

logger = logging.getLogger(__name__)


class CredentialService:
    """Read and write provider access tokens, one per (user, provider)."""

    @staticmethod
    def get_access_token(db: Session, user_id: str, provider: str) -> str | None:
        credential = db.query(Credential).filter_by(user_id=user_id, provider=provider).first()
        return credential.access_token if credential else None

    @staticmethod
    def store_access_token(db: Session, user_id: str, provider: str, access_token: str) -> Credential:
        """Insert or overwrite the token for (user_id, provider). Flushes only."""
        credential = db.query(Credential).filter_by(user_id=user_id, provider=provider).first()
        if credential is None:
            credential = Credential(user_id=user_id, provider=provider, access_token=access_token)
            db.add(credential)
        else:
            credential.access_token = access_token
        db.flush()
        logger.info("Stored %s credential for user %s", provider, user_id)
        return credential
