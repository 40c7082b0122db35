"""Settlement API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from orderflow.core.database import get_db
from orderflow.core.dependencies import get_idempotency_key, get_notifier
from orderflow.models.settlement_session import SettlementSession
from orderflow.routers.orders import settlement_detail
from orderflow.schemas.settlement import (
    SettlementDetailResponse,
    SettlementRequest,
    SettlementSessionResponse,
    SettlementStatusCorrection,
)
from orderflow.services.notification_service import ChangeNotifier
from orderflow.services.settlement_service import SettlementService

router = APIRouter()


@router.post(
    "/",
    response_model=SettlementDetailResponse,
    status_code=201,
    summary="Settle collected money",
    responses={
        400: {"description": "Negative amount or no eligible orders"},
        404: {"description": "Client not found"},
        409: {"description": "Concurrent settlement or idempotency key reused"},
    },
)
async def settle(
    data: SettlementRequest,
    db: Session = Depends(get_db),
    notifier: ChangeNotifier = Depends(get_notifier),
    idempotency_key: str | None = Depends(get_idempotency_key),
) -> SettlementDetailResponse:
    """Allocate collected money to the client's outstanding orders, oldest first."""
    service = SettlementService(db, notifier=notifier)
    session = service.settle(
        data.client_id,
        data.amount_collected,
        data.payment_method,
        options=data.options,
        idempotency_key=idempotency_key,
    )
    return settlement_detail(service, session)


@router.get(
    "/{settlement_id}",
    response_model=SettlementDetailResponse,
    summary="Get settlement",
    responses={404: {"description": "Settlement not found"}},
)
async def get_settlement(settlement_id: UUID, db: Session = Depends(get_db)) -> SettlementDetailResponse:
    service = SettlementService(db)
    return settlement_detail(service, service.get_session(settlement_id))


@router.post(
    "/{settlement_id}/status",
    response_model=SettlementSessionResponse,
    summary="Correct settlement status",
    responses={404: {"description": "Settlement not found"}},
)
async def correct_status(
    settlement_id: UUID, data: SettlementStatusCorrection, db: Session = Depends(get_db)
) -> SettlementSession:
    return SettlementService(db).correct_settlement_status(
        settlement_id, data.settlement_status, note=data.note
    )
