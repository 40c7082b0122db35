"""Domain errors raised by the workflow and ledger services.

Every error derives from ``LedgerError`` (itself a ``ValueError``) and carries a
stable ``code`` and the HTTP status the API layer reports it with. Validation
errors are always raised before anything is written.
"""


class LedgerError(ValueError):
    """Base class for domain errors."""

    code = "ledger_error"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTransition(LedgerError):
    """Requested stage is not reachable from the order's current stage."""

    code = "invalid_transition"
    status_code = 409


class NotFound(LedgerError):
    """Referenced order, client, payment record or session does not exist."""

    code = "not_found"
    status_code = 404


class InvalidAmount(LedgerError):
    """Malformed monetary input."""

    code = "invalid_amount"
    status_code = 400


class NegativeAmount(InvalidAmount):
    code = "negative_amount"


class OverReturn(LedgerError):
    """Returned quantity exceeds what was delivered on the original order."""

    code = "over_return"
    status_code = 400


class NoEligibleOrders(LedgerError):
    """Settlement requested against orders that are not outstanding."""

    code = "no_eligible_orders"
    status_code = 400


class StorageConflict(LedgerError):
    """Lock or transaction contention. Always safe to retry."""

    code = "storage_conflict"
    status_code = 409


class IdempotencyKeyReused(LedgerError):
    """An idempotency key was replayed for a different operation."""

    code = "idempotency_key_reused"
    status_code = 409
