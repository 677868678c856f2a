"""Shared-secret checks for the single-password deployment."""

import hmac
import logging

from config import settings

logger = logging.getLogger(__name__)


class ServerNotConfiguredError(Exception):
    """No secret is configured, so nothing can be authorized."""


def constant_time_equals(provided: str, expected: str) -> bool:
    """Compare two secrets without leaking where they differ.

    A length mismatch returns early; only the secret's length is observable.
    """
    provided_bytes = provided.encode("utf-8")
    expected_bytes = expected.encode("utf-8")
    if len(provided_bytes) != len(expected_bytes):
        return False
    return hmac.compare_digest(provided_bytes, expected_bytes)


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


class AuthService:
    """Checks tokens against the configured secrets."""

    @staticmethod
    def verify_sync_token(authorization: str | None) -> bool:
        """Validate the sync endpoint's bearer token.

        Raises:
            ServerNotConfiguredError: If neither SYNC_API_TOKEN nor
                AUTH_PASSWORD is set.
        """
        expected = settings.sync_secret
        if not expected:
            logger.error("Sync requested but no SYNC_API_TOKEN or AUTH_PASSWORD is configured")
            raise ServerNotConfiguredError("sync secret not configured")
        token = extract_bearer_token(authorization)
        if token is None or not constant_time_equals(token, expected):
            logger.warning("Sync request rejected: invalid bearer token")
            return False
        return True

    @staticmethod
    def verify_password(password: str) -> bool:
        """Validate the single application password.

        Raises:
            ServerNotConfiguredError: If AUTH_PASSWORD is not set.
        """
        expected = settings.AUTH_PASSWORD
        if not expected:
            logger.error("Login attempted but AUTH_PASSWORD is not configured")
            raise ServerNotConfiguredError("AUTH_PASSWORD not configured")
        return constant_time_equals(password, expected)
