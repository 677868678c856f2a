"""Transactions API endpoints: listings, spending summaries and labels."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from api.helpers import get_current_user_id
from database import get_db
from models import Transaction
from schemas import (
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
from services.label_service import LabelNotFoundError, LabelService
from services.transaction_service import PayeeTotal, TransactionService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


def transaction_response(txn: Transaction, account_name: str) -> TransactionResponse:
    return TransactionResponse(
        id=txn.id,
        account_id=txn.account_id,
        account_name=account_name,
        external_id=txn.external_id,
        posted_at=txn.posted_at,
        amount=float(txn.amount),
        description=txn.description,
        payee=txn.payee,
        memo=txn.memo,
        pending=txn.pending,
        label=LabelResponse.model_validate(txn.label) if txn.label else None,
    )


def _payee_response(total: PayeeTotal) -> PayeeTotalResponse:
    return PayeeTotalResponse(
        name=total.name,
        amount=float(total.amount),
        count=total.count,
        label=LabelResponse.model_validate(total.label) if total.label else None,
    )


@router.get("", response_model=list[TransactionResponse])
def list_recent_transactions(
    limit: int = Query(10, ge=1, le=500),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Most recent transactions across all accounts, newest first."""
    rows = TransactionService.get_recent_transactions(db, user_id, limit)
    return [transaction_response(txn, account_name) for txn, account_name in rows]


@router.get("/period", response_model=PeriodTransactionsResponse)
def list_transactions_for_period(
    days: int = Query(30, ge=1, le=3650),
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Transactions from the last ``days`` days with the top 10 payees by spending and income."""
    period = TransactionService.get_transactions_for_period(db, user_id, days)
    return PeriodTransactionsResponse(
        period_days=days,
        transactions=[transaction_response(txn, name) for txn, name in period.transactions],
        top_spending=[_payee_response(t) for t in period.top_spending],
        top_income=[_payee_response(t) for t in period.top_income],
    )


@router.get("/summary", response_model=list[SpendingSummaryResponse])
def get_spending_summary(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Spending, income and net over the last day, week, month and year."""
    return [
        SpendingSummaryResponse(
            period=s.period,
            label=s.label,
            spending=float(s.spending),
            income=float(s.income),
            net=float(s.net),
            transaction_count=s.transaction_count,
        )
        for s in TransactionService.get_spending_summaries(db, user_id)
    ]


@router.get("/labels", response_model=list[LabelWithRulesResponse])
def list_labels(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Every label with its auto-labeling rules."""
    return LabelService.list_labels(db, user_id)


@router.post("/labels", response_model=LabelResponse, status_code=201)
def create_label(
    body: LabelCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    return LabelService.create_label(db, user_id, body.name, body.color)


@router.delete("/labels/{label_id}", status_code=204)
def delete_label(
    label_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Delete a label and its rules; labeled transactions become unlabeled."""
    if not LabelService.delete_label(db, label_id, user_id):
        raise HTTPException(status_code=404, detail="Label not found")
    return Response(status_code=204)


@router.post("/labels/apply", response_model=ApplyRulesResponse)
def apply_label_rules(
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Run every rule over the unlabeled transactions."""
    return ApplyRulesResponse(applied=LabelService.apply_rules(db, user_id))


@router.post("/labels/{label_id}/rules", response_model=LabelRuleResponse, status_code=201)
def create_label_rule(
    label_id: str,
    body: LabelRuleCreate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    try:
        return LabelService.create_rule(db, user_id, label_id, body.match_pattern, body.match_field)
    except LabelNotFoundError:
        raise HTTPException(status_code=404, detail="Label not found")


@router.delete("/label-rules/{rule_id}", status_code=204)
def delete_label_rule(
    rule_id: str,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    if not LabelService.delete_rule(db, rule_id, user_id):
        raise HTTPException(status_code=404, detail="Rule not found")
    return Response(status_code=204)


@router.put("/{transaction_id}/label", response_model=TransactionResponse)
def label_transaction(
    transaction_id: str,
    body: TransactionLabelUpdate,
    db: Session = Depends(get_db),
    user_id: str = Depends(get_current_user_id),
):
    """Set or clear a transaction's label, optionally adding a matching rule."""
    try:
        txn = LabelService.label_transaction(
            db, transaction_id, user_id, body.label_id, create_rule=body.create_rule
        )
    except LabelNotFoundError:
        raise HTTPException(status_code=404, detail="Label not found")
    if txn is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return transaction_response(txn, txn.account.name)
