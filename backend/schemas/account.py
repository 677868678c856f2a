"""Pydantic schemas for accounts and account connections."""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class AccountType(str, Enum):
    """Valid canonical account types."""

    checking = "checking"
    savings = "savings"
    credit = "credit"
    investment = "investment"
    crypto = "crypto"
    other = "other"


class AccountCategory(str, Enum):
    """User-assigned grouping for the dashboard."""

    savings = "savings"
    retirement = "retirement"
    assets = "assets"
    credit_cards = "credit_cards"
    checking = "checking"
    crypto = "crypto"


class AccountBase(BaseModel):
    """Base schema for Account."""

    name: str
    provider: str
    type: AccountType = AccountType.other


class AccountUpdate(BaseModel):
    """Schema for updating the user-controlled fields of an Account."""

    name: Optional[str] = Field(default=None, min_length=1)
    is_hidden: Optional[bool] = None
    include_in_net_worth: Optional[bool] = None
    category: Optional[AccountCategory] = None


class AccountResponse(AccountBase):
    """Schema for Account API response."""

    id: str
    balance_usd: Optional[float] = None
    external_id: Optional[str] = None
    # ORM attribute is provider_metadata ("metadata" is reserved there)
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("provider_metadata", "metadata"),
    )
    last_synced_at: Optional[datetime] = None
    is_hidden: bool = False
    include_in_net_worth: bool = True
    category: Optional[AccountCategory] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SimpleFINConnectRequest(BaseModel):
    """A one-time SimpleFIN setup token (base64-encoded claim URL)."""

    setup_token: str = Field(min_length=1)


class SimpleFINConnectResponse(BaseModel):
    success: bool = True
    account_count: int


class SolanaConnectRequest(BaseModel):
    address: str = Field(min_length=1)


class SolanaConnectResponse(BaseModel):
    success: bool = True
    account: AccountResponse
    total_value_usd: float
    token_count: int
