"""Keyring-backed storage for process-level secrets.

Thin wrapper around the ``keyring`` library used by the settings chain
(see :class:`config.KeychainSettingsSource`) and the setup scripts.
Per-user provider credentials live in the database instead
(see :mod:`services.credential_service`). The ``keyring`` import is lazy
so the app works even if no keyring backend is installed.
"""

import logging

logger = logging.getLogger(__name__)

SERVICE_NAME = "finance-hub"

CREDENTIAL_KEYS: frozenset[str] = frozenset(
    {
        "SIMPLEFIN_ACCESS_URL",
        "COINGECKO_API_KEY",
        "AUTH_PASSWORD",
        "SYNC_API_TOKEN",
    }
)


def get_credential(key: str) -> str | None:
    """Retrieve a secret from the keychain.

    Returns:
        The stored value, or ``None`` if missing or keyring is unavailable.
    """
    try:
        import keyring
    except ImportError:
        return None

    try:
        return keyring.get_password(SERVICE_NAME, key)
    except Exception:
        logger.debug("keyring lookup failed for %s", key, exc_info=True)
        return None


def set_credential(key: str, value: str) -> bool:
    """Store a secret in the keychain.

    Only keys listed in :data:`CREDENTIAL_KEYS` are accepted and the
    value must be non-blank.

    Returns:
        ``True`` if stored, ``False`` otherwise.
    """
    if key not in CREDENTIAL_KEYS:
        logger.warning("Refusing to store unknown credential key: %s", key)
        return False
    if not value or not value.strip():
        logger.warning("Refusing to store empty value for %s", key)
        return False

    try:
        import keyring
    except ImportError:
        logger.warning("keyring is not installed, cannot store %s", key)
        return False

    try:
        keyring.set_password(SERVICE_NAME, key, value)
        logger.info("Stored %s in keychain", key)
        return True
    except Exception:
        logger.warning("Failed to store %s in keychain", key, exc_info=True)
        return False
