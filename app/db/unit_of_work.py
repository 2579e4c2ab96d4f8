"""Unit of Work pattern for managing database transactions."""

from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession

from app.db import base as db_base
from app.db.models import Client, Transaction
from app.db.repositories import ClientRepository, TransactionRepository


class UnitOfWork:
    """
    Unit of Work pattern implementation for managing database transactions.

    Provides a single entry point for repository operations so that every
    repository used within a context shares the same session.

    Usage:
        async with UnitOfWork() as uow:
            client, _ = await uow.clients.get_or_create("abc-123")
            await uow.commit()
            latest = await uow.transactions.get_latest_for_client(client.id)
    """

    def __init__(self, session: Optional[AsyncSession] = None):
        """
        Initialize Unit of Work.

        Args:
            session: Optional existing session (useful for testing)
        """
        self._session = session
        self._owned_session = session is None

        # Repositories (initialized in __aenter__)
        self.clients: ClientRepository = None  # type: ignore
        self.transactions: TransactionRepository = None  # type: ignore

    @property
    def session(self) -> AsyncSession:
        assert self._session is not None, "UnitOfWork used outside its context"
        return self._session

    async def __aenter__(self):
        """Enter async context manager."""
        if self._owned_session:
            # Resolved at call time so tests can swap the session factory.
            self._session = db_base.AsyncSessionLocal()

        assert self._session is not None, "Session must be initialized"
        self.clients = ClientRepository(Client, self._session)
        self.transactions = TransactionRepository(Transaction, self._session)

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager."""
        if exc_type is not None:
            await self.rollback()
        elif self._owned_session:
            await self.commit()

        if self._owned_session and self._session:
            await self._session.close()

    async def commit(self):
        """Commit the current transaction."""
        if self._session:
            await self._session.commit()

    async def rollback(self):
        """Rollback the current transaction."""
        if self._session:
            await self._session.rollback()

    async def refresh(self, instance):
        """Refresh an instance from the database."""
        if self._session:
            await self._session.refresh(instance)
