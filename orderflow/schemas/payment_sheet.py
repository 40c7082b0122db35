from pydantic import BaseModel

from orderflow.schemas.client import ClientBalanceResponse, ClientResponse, ReturnPolicyResponse
from orderflow.schemas.payment import OrderPaymentRecordResponse, PaymentTransactionResponse
from orderflow.schemas.settlement import SettlementSessionResponse


class ClientPaymentSheet(BaseModel):
    client: ClientResponse
    balance: ClientBalanceResponse
    unpaid_orders: list[OrderPaymentRecordResponse]
    recent_transactions: list[PaymentTransactionResponse]
    recent_settlements: list[SettlementSessionResponse]
    return_policy: ReturnPolicyResponse
