"""Client repository: lookups, lazy creation and vend-date bookkeeping."""

from datetime import date
from typing import Optional, Tuple
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from app.db.models.client import Client
from app.db.repository import BaseRepository


class ClientRepository(BaseRepository[Client]):
    """Repository for Client model with specialized queries."""

    async def get_by_client_id(self, client_id: str) -> Optional[Client]:
        """Get a client by its caller-supplied identifier."""
        return await self.get_by_field("client_id", client_id)

    async def get_or_create(self, client_id: str) -> Tuple[Client, bool]:
        """
        Return the client for ``client_id``, inserting it if it does not exist.

        Two first-contact requests for the same id can race on the insert;
        the loser hits the unique constraint, rolls back and re-reads the
        row the winner created. The rollback discards anything else pending
        on the session, so this must run before other writes.

        Returns:
            Tuple of (client, created)
        """
        existing = await self.get_by_client_id(client_id)
        if existing is not None:
            return existing, False

        client = self.model(client_id=client_id)
        self.session.add(client)
        try:
            await self.session.flush()
        except IntegrityError:
            await self.session.rollback()
            existing = await self.get_by_client_id(client_id)
            if existing is None:
                raise
            return existing, False

        await self.session.refresh(client)
        return client, True

    async def set_tanesco_number_if_unset(
        self, client: Client, tanesco_number: str
    ) -> bool:
        """
        Store the utility account reference unless one is already recorded.

        Returns:
            True if the reference was written
        """
        result = await self.session.execute(
            update(self.model)
            .where(self.model.id == client.id, self.model.tanesco_number.is_(None))
            .values(tanesco_number=tanesco_number)
        )
        await self.session.flush()
        return (result.rowcount or 0) > 0  # type: ignore

    async def advance_last_vend_date(
        self, client: Client, previous: Optional[date], vend_date: date
    ) -> bool:
        """
        Move ``last_vend_date`` to ``vend_date`` if it still equals ``previous``.

        This is a compare-and-swap on the value read before the vend, so two
        overlapping vends for one client cannot both advance the date.

        Returns:
            True if this call advanced the date, False if another write won
        """
        condition = (
            self.model.last_vend_date.is_(None)
            if previous is None
            else self.model.last_vend_date == previous
        )
        result = await self.session.execute(
            update(self.model)
            .where(self.model.id == client.id, condition)
            .values(last_vend_date=vend_date)
        )
        await self.session.flush()
        return (result.rowcount or 0) > 0  # type: ignore
