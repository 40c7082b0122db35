"""Payment transaction API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from orderflow.core.database import get_db
from orderflow.core.errors import NotFound
from orderflow.models.payment_transaction import PaymentTransaction
from orderflow.schemas.payment import PaymentTransactionResponse, ReversalRequest
from orderflow.services.payment_ledger import PaymentLedger
from orderflow.services.transaction_log import TransactionLog

router = APIRouter()


@router.get(
    "/{transaction_id}",
    response_model=PaymentTransactionResponse,
    summary="Get transaction",
    responses={404: {"description": "Transaction not found"}},
)
async def get_transaction(transaction_id: UUID, db: Session = Depends(get_db)) -> PaymentTransaction:
    txn = TransactionLog(db).get(transaction_id)
    if not txn:
        raise NotFound(f"Transaction {transaction_id} not found")
    return txn


@router.post(
    "/{transaction_id}/reverse",
    response_model=PaymentTransactionResponse,
    status_code=201,
    summary="Reverse payment",
    responses={
        400: {"description": "Transaction cannot be reversed"},
        404: {"description": "Transaction not found"},
    },
)
async def reverse_payment(
    transaction_id: UUID, data: ReversalRequest, db: Session = Depends(get_db)
) -> PaymentTransaction:
    """Undo a received payment with a compensating adjustment."""
    return PaymentLedger(db).reverse_payment(transaction_id, data.reason, recorded_by=data.recorded_by)
