"""Pydantic schemas for API request/response validation."""

from schemas.account import (
    AccountCategory,
    AccountResponse,
    AccountType,
    AccountUpdate,
    SimpleFINConnectRequest,
    SimpleFINConnectResponse,
    SolanaConnectRequest,
    SolanaConnectResponse,
)
from schemas.auth import HealthResponse, LoginRequest, LoginResponse
from schemas.portfolio import (
    PortfolioHistoryResponse,
    PortfolioPointResponse,
    PortfolioSummaryResponse,
)
from schemas.sync import ProviderSyncStatus, SyncResponse
from schemas.transaction import (
    ApplyRulesResponse,
    LabelCreate,
    LabelResponse,
    LabelRuleCreate,
    LabelRuleResponse,
    LabelWithRulesResponse,
    PayeeTotalResponse,
    PeriodTransactionsResponse,
    SpendingSummaryResponse,
    TransactionLabelUpdate,
    TransactionResponse,
)

__all__ = [
    "AccountCategory",
    "AccountResponse",
    "AccountType",
    "AccountUpdate",
    "ApplyRulesResponse",
    "HealthResponse",
    "LabelCreate",
    "LabelResponse",
    "LabelRuleCreate",
    "LabelRuleResponse",
    "LabelWithRulesResponse",
    "LoginRequest",
    "LoginResponse",
    "PayeeTotalResponse",
    "PeriodTransactionsResponse",
    "PortfolioHistoryResponse",
    "PortfolioPointResponse",
    "PortfolioSummaryResponse",
    "ProviderSyncStatus",
    "SimpleFINConnectRequest",
    "SimpleFINConnectResponse",
    "SolanaConnectRequest",
    "SolanaConnectResponse",
    "SpendingSummaryResponse",
    "SyncResponse",
    "TransactionLabelUpdate",
    "TransactionResponse",
]
