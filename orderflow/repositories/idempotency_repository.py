"""Repository for IdempotencyRecord operations."""

from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.config import settings
from orderflow.models.idempotency_record import IdempotencyRecord


class IdempotencyRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_key(self, idempotency_key: str) -> IdempotencyRecord | None:
        return (
            self.db.query(IdempotencyRecord)
            .filter(IdempotencyRecord.idempotency_key == idempotency_key)
            .first()
        )

    def create(self, *, idempotency_key: str, operation: str, resource_id: UUID) -> IdempotencyRecord:
        record = IdempotencyRecord(
            idempotency_key=idempotency_key,
            operation=operation,
            resource_id=resource_id,
        )
        self.db.add(record)
        self.db.flush()
        return record

    def delete_expired(self, max_age_hours: int | None = None) -> int:
        """Purge keys older than the retention window."""
        hours = settings.IDEMPOTENCY_TTL_HOURS if max_age_hours is None else max_age_hours
        cutoff = datetime.now(UTC) - timedelta(hours=hours)
        count = (
            self.db.query(IdempotencyRecord)
            .filter(IdempotencyRecord.created_at < cutoff)
            .delete()
        )
        self.db.flush()
        return int(count)
