"""Client profile management."""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from orderflow.core.database import unit_of_work
from orderflow.core.errors import NotFound
from orderflow.models.client import Client
from orderflow.repositories.client_balance_repository import ClientBalanceRepository
from orderflow.repositories.client_repository import ClientRepository
from orderflow.schemas.client import ClientCreate, ClientUpdate

logger = logging.getLogger(__name__)


class ClientService:
    def __init__(self, db: Session):
        self.db = db
        self.client_repo = ClientRepository(db)

    def create_client(self, data: ClientCreate) -> Client:
        """Create a client with an empty balance."""
        with unit_of_work(self.db):
            client = self.client_repo.create(data)
            ClientBalanceRepository(self.db).get_or_create(client.id)  # type: ignore[arg-type]
        logger.info("Created client %s (%s)", client.id, data.name)
        return client

    def update_client(self, client_id: UUID, data: ClientUpdate) -> Client:
        with unit_of_work(self.db):
            client = self.client_repo.get_for_update(client_id)
            if not client:
                raise NotFound(f"Client {client_id} not found")
            self.client_repo.update(client, data)
        return client

    def get_client(self, client_id: UUID) -> Client:
        client = self.client_repo.get_by_id(client_id)
        if not client:
            raise NotFound(f"Client {client_id} not found")
        return client

    def list_clients(self, skip: int = 0, limit: int = 100) -> list[Client]:
        return self.client_repo.get_all(skip=skip, limit=limit)

    def count_clients(self) -> int:
        return self.client_repo.count()
