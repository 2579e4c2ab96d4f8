"""Client registry: resolves caller ids to persistent client records."""

from typing import Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from app.db.models.client import Client
from app.db.unit_of_work import UnitOfWork
from app.vending.errors import InvalidInput, StorageUnavailable

logger = structlog.get_logger()


class ClientRegistry:
    """Looks up clients by id, creating them on first contact."""

    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def resolve_or_create(self, client_id: Optional[str]) -> Client:
        """
        Return the client for ``client_id``, creating and committing it if new.

        Raises:
            InvalidInput: If ``client_id`` is empty
            StorageUnavailable: If the database cannot be reached
        """
        if not client_id or not client_id.strip():
            raise InvalidInput("Client ID is required.")

        try:
            client, created = await self.uow.clients.get_or_create(client_id)
            if created:
                await self.uow.commit()
        except SQLAlchemyError as e:
            await self.uow.rollback()
            raise StorageUnavailable(cause=e) from e

        if created:
            logger.info("client.created", client_id=client_id)
        return client

    async def get_existing(self, client_id: Optional[str]) -> Optional[Client]:
        """
        Return the client for ``client_id`` without creating it.

        Raises:
            InvalidInput: If ``client_id`` is empty
            StorageUnavailable: If the database cannot be reached
        """
        if not client_id or not client_id.strip():
            raise InvalidInput("Client ID is required.")

        try:
            return await self.uow.clients.get_by_client_id(client_id)
        except SQLAlchemyError as e:
            raise StorageUnavailable(cause=e) from e
