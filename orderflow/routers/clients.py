"""Client API endpoints: profiles, balances and account history."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from orderflow.core.database import get_db
from orderflow.core.dependencies import get_notifier
from orderflow.models.client import Client
from orderflow.models.client_balance import ClientBalance
from orderflow.models.order_payment_record import OrderPaymentRecord
from orderflow.models.payment_transaction import PaymentTransaction
from orderflow.models.settlement_session import SettlementSession
from orderflow.schemas.client import (
    AdjustmentCreate,
    ClientBalanceResponse,
    ClientCreate,
    ClientResponse,
    ClientUpdate,
    ReturnPolicyResponse,
)
from orderflow.schemas.payment import OrderPaymentRecordResponse, PaymentTransactionResponse
from orderflow.schemas.payment_sheet import ClientPaymentSheet
from orderflow.schemas.settlement import SettlementSessionResponse
from orderflow.services.client_balance_service import ClientBalanceService
from orderflow.services.client_service import ClientService
from orderflow.services.notification_service import ChangeNotifier
from orderflow.services.payment_ledger import PaymentLedger
from orderflow.services.settlement_service import SettlementService

router = APIRouter()


@router.post(
    "/",
    response_model=ClientResponse,
    status_code=201,
    summary="Create client",
    responses={422: {"description": "Validation error"}},
)
async def create_client(data: ClientCreate, db: Session = Depends(get_db)) -> Client:
    """Create a client with an empty balance."""
    return ClientService(db).create_client(data)


@router.get("/", response_model=list[ClientResponse], summary="List clients")
async def list_clients(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[Client]:
    service = ClientService(db)
    response.headers["X-Total-Count"] = str(service.count_clients())
    return service.list_clients(skip=skip, limit=limit)


@router.get(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Get client",
    responses={404: {"description": "Client not found"}},
)
async def get_client(client_id: UUID, db: Session = Depends(get_db)) -> Client:
    return ClientService(db).get_client(client_id)


@router.put(
    "/{client_id}",
    response_model=ClientResponse,
    summary="Update client",
    responses={404: {"description": "Client not found"}},
)
async def update_client(client_id: UUID, data: ClientUpdate, db: Session = Depends(get_db)) -> Client:
    """Update a client's profile or return policy."""
    return ClientService(db).update_client(client_id, data)


@router.get(
    "/{client_id}/balance",
    response_model=ClientBalanceResponse,
    summary="Get client balance",
    responses={404: {"description": "Client not found"}},
)
async def get_balance(client_id: UUID, db: Session = Depends(get_db)) -> ClientBalance:
    return ClientBalanceService(db).get_balance(client_id)


@router.post(
    "/{client_id}/balance/recompute",
    response_model=ClientBalanceResponse,
    summary="Recompute client balance",
    responses={404: {"description": "Client not found"}},
)
async def recompute_balance(client_id: UUID, db: Session = Depends(get_db)) -> ClientBalance:
    """Rebuild the cached balance from the transaction log."""
    return ClientBalanceService(db).recompute(client_id)


@router.get(
    "/{client_id}/unpaid_orders",
    response_model=list[OrderPaymentRecordResponse],
    summary="List unpaid orders",
    responses={404: {"description": "Client not found"}},
)
async def unpaid_orders(client_id: UUID, db: Session = Depends(get_db)) -> list[OrderPaymentRecord]:
    """Unpaid and partially paid orders, oldest first."""
    return ClientBalanceService(db).unpaid_orders(client_id)


@router.get(
    "/{client_id}/transactions",
    response_model=list[PaymentTransactionResponse],
    summary="List client transactions",
    responses={404: {"description": "Client not found"}},
)
async def list_transactions(
    client_id: UUID,
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[PaymentTransaction]:
    service = ClientBalanceService(db)
    transactions = service.transactions(client_id, skip=skip, limit=limit)
    response.headers["X-Total-Count"] = str(service.txn_repo.count_by_client_id(client_id))
    return transactions


@router.get(
    "/{client_id}/payment_sheet",
    response_model=ClientPaymentSheet,
    summary="Get client payment sheet",
    responses={404: {"description": "Client not found"}},
)
async def payment_sheet(client_id: UUID, db: Session = Depends(get_db)) -> ClientPaymentSheet:
    sheet = ClientBalanceService(db).payment_sheet(client_id)
    return ClientPaymentSheet(
        client=ClientResponse.model_validate(sheet.client),
        balance=ClientBalanceResponse.model_validate(sheet.balance),
        unpaid_orders=[OrderPaymentRecordResponse.model_validate(r) for r in sheet.unpaid_orders],
        recent_transactions=[
            PaymentTransactionResponse.model_validate(t) for t in sheet.recent_transactions
        ],
        recent_settlements=[
            SettlementSessionResponse.model_validate(s) for s in sheet.recent_settlements
        ],
        return_policy=ReturnPolicyResponse.model_validate(sheet.return_policy),
    )


@router.post(
    "/{client_id}/adjustments",
    response_model=PaymentTransactionResponse,
    status_code=201,
    summary="Record manual adjustment",
    responses={
        400: {"description": "Zero or malformed amount"},
        404: {"description": "Client not found"},
    },
)
async def record_adjustment(
    client_id: UUID,
    data: AdjustmentCreate,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
) -> PaymentTransaction:
    """Append a signed correction to the client's ledger."""
    return PaymentLedger(db, notifier=notifier).record_adjustment(
        client_id, data.amount, data.description, recorded_by=data.recorded_by
    )


@router.get(
    "/{client_id}/settlements",
    response_model=list[SettlementSessionResponse],
    summary="List client settlements",
    responses={404: {"description": "Client not found"}},
)
async def list_settlements(
    client_id: UUID,
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
) -> list[SettlementSession]:
    service = SettlementService(db)
    sessions = service.history(client_id, skip=skip, limit=limit)
    response.headers["X-Total-Count"] = str(service.session_repo.count_by_client_id(client_id))
    return sessions
