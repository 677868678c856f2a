"""API route handlers."""
from . import accounts, auth, portfolio, sync, transactions

__all__ = ["accounts", "auth", "portfolio", "sync", "transactions"]
