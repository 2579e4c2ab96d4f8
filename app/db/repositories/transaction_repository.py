"""Transaction repository with specialized queries."""

from typing import Optional, List
from sqlalchemy import select

from app.db.models.transaction import Transaction
from app.db.repository import BaseRepository


class TransactionRepository(BaseRepository[Transaction]):
    """Repository for Transaction model with specialized queries."""

    async def get_latest_for_client(self, client_pk: int) -> Optional[Transaction]:
        """Get the most recently created transaction owned by a client."""
        query = (
            select(self.model)
            .where(self.model.client_pk == client_pk)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_for_client(
        self, client_pk: int, limit: Optional[int] = None
    ) -> List[Transaction]:
        """
        Get a client's transactions, newest first.

        Args:
            client_pk: Primary key of the owning client
            limit: Maximum number of transactions to return

        Returns:
            List of transactions
        """
        query = (
            select(self.model)
            .where(self.model.client_pk == client_pk)
            .order_by(self.model.created_at.desc(), self.model.id.desc())
        )
        if limit:
            query = query.limit(limit)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_by_transaction_id(self, transaction_id: str) -> List[Transaction]:
        """
        Get transactions carrying a caller-supplied transaction id.

        Caller ids are not guaranteed unique, so this returns every match.
        """
        query = (
            select(self.model)
            .where(self.model.transaction_id == transaction_id)
            .order_by(self.model.created_at.desc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())
