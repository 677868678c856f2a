"""Pydantic schemas for transactions, labels and label rules."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

MatchField = Literal["description", "payee", "both"]


class LabelResponse(BaseModel):
    id: str
    name: str
    color: str

    model_config = ConfigDict(from_attributes=True)


class LabelRuleResponse(BaseModel):
    id: str
    label_id: str
    match_field: MatchField
    match_pattern: str

    model_config = ConfigDict(from_attributes=True)


class LabelWithRulesResponse(LabelResponse):
    rules: list[LabelRuleResponse] = []


class LabelCreate(BaseModel):
    name: str = Field(min_length=1)
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")


class LabelRuleCreate(BaseModel):
    match_pattern: str = Field(min_length=1)
    match_field: MatchField = "description"


class TransactionLabelUpdate(BaseModel):
    """Assign a label (or clear it with null), optionally creating a matching rule."""

    label_id: Optional[str] = None
    create_rule: bool = False


class ApplyRulesResponse(BaseModel):
    applied: int


class TransactionResponse(BaseModel):
    """A stored transaction with the name of its account."""

    id: str
    account_id: str
    account_name: str
    external_id: str
    posted_at: datetime
    amount: float
    description: str
    payee: Optional[str] = None
    memo: Optional[str] = None
    pending: bool = False
    label: Optional[LabelResponse] = None

    model_config = ConfigDict(from_attributes=True)


class PayeeTotalResponse(BaseModel):
    name: str
    amount: float
    count: int
    label: Optional[LabelResponse] = None


class PeriodTransactionsResponse(BaseModel):
    """Transactions in a trailing window with the biggest payees each way."""

    period_days: int
    transactions: list[TransactionResponse]
    top_spending: list[PayeeTotalResponse]
    top_income: list[PayeeTotalResponse]


class SpendingSummaryResponse(BaseModel):
    period: str  # "1d" | "1w" | "1m" | "1y"
    label: str
    spending: float
    income: float
    net: float
    transaction_count: int

    model_config = ConfigDict(from_attributes=True)
