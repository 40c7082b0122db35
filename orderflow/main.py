import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from orderflow.core.config import settings
from orderflow.core.database import init_db
from orderflow.core.errors import LedgerError
from orderflow.core.logging_config import configure_logging
from orderflow.routers import clients, orders, settlements, transactions, workflow_events
from orderflow.services.notification_service import ChangeNotifier

configure_logging()
logger = logging.getLogger(__name__)

OPENAPI_TAGS = [
    {"name": "Clients", "description": "Client profiles, balances, and account history."},
    {"name": "Orders", "description": "Place orders and move them through the workflow."},
    {"name": "Settlements", "description": "Allocate collected money to outstanding orders."},
    {"name": "Transactions", "description": "Query and reverse ledger transactions."},
    {"name": "Workflow Events", "description": "Change feed of order stage transitions."},
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    init_db()
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.version,
    description=(
        "Order workflow and settlement ledger. Move orders from placement "
        "through production and delivery, record returns, settle collected "
        "money against outstanding orders, and track client balances."
    ),
    openapi_tags=OPENAPI_TAGS,
    lifespan=lifespan,
)
app.state.notifier = ChangeNotifier()

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGINS.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Total-Count"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    if exc.status_code >= 409:
        logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


app.include_router(clients.router, prefix="/v1/clients", tags=["Clients"])
app.include_router(orders.router, prefix="/v1/orders", tags=["Orders"])
app.include_router(settlements.router, prefix="/v1/settlements", tags=["Settlements"])
app.include_router(transactions.router, prefix="/v1/transactions", tags=["Transactions"])
app.include_router(
    workflow_events.router,
    prefix="/v1/workflow_events",
    tags=["Workflow Events"],
)


@app.get("/")
async def root() -> dict[str, str]:
    return {
        "app": settings.APP_NAME,
        "version": settings.version,
        "status": "running",
    }
