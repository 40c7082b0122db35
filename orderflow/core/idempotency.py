"""Idempotency support for retry-safe ledger operations.

A caller may attach an idempotency key to ``apply_payment``, ``settle`` and
``settle_delivery``. The first successful call stores the key together with
the id of the resource it produced, inside the same transaction. A retry with
the same key returns that resource instead of repeating the side effects.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.errors import IdempotencyKeyReused
from orderflow.repositories.idempotency_repository import IdempotencyRepository


def find_replay(db: Session, key: str | None, operation: str) -> UUID | None:
    """Return the resource id recorded for ``key``, or ``None`` for a new request.

    Raises ``IdempotencyKeyReused`` when the key belongs to another operation.
    """
    if not key:
        return None

    existing = IdempotencyRepository(db).get_by_key(key)
    if existing is None:
        return None
    if existing.operation != operation:
        raise IdempotencyKeyReused(
            f"Idempotency key '{key}' was already used for '{existing.operation}'"
        )
    return existing.resource_id  # type: ignore[return-value]


def remember(db: Session, key: str | None, operation: str, resource_id: UUID) -> None:
    """Record the result of an operation under its idempotency key."""
    if not key:
        return
    IdempotencyRepository(db).create(
        idempotency_key=key,
        operation=operation,
        resource_id=resource_id,
    )
