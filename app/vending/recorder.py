"""
Vend recorder.

Persists the outcome of a successful STS issuance: the client's sticky
account reference and last vend date, then the transaction itself. Each
step is committed on its own. By the time this runs the token already
exists, so failures are reported as post-issuance storage errors and never
retried here.
"""

from datetime import date
from typing import Callable, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import mask_token
from app.db.models.client import Client
from app.db.models.transaction import Transaction
from app.db.unit_of_work import UnitOfWork
from app.vending.errors import StorageUnavailable
from app.vending.models import UNKNOWN_ACCOUNT_REFERENCE, VendRequest
from app.vending.policy import utc_today

logger = structlog.get_logger()


class VendRecorder:
    """Writes the client update and the transaction for an issued token."""

    def __init__(self, uow: UnitOfWork, today: Optional[Callable[[], date]] = None):
        self.uow = uow
        self.today = today or utc_today

    async def record(
        self, client: Client, request: VendRequest, token: str
    ) -> Transaction:
        """
        Record a successful vend.

        Args:
            client: Client snapshot the vend was authorised against
            request: Validated vend request
            token: Token returned by STS

        Returns:
            The newly created transaction

        Raises:
            StorageUnavailable: With ``after_issuance=True`` on any database error
        """
        try:
            await self._update_client(client, request)
            transaction = await self.uow.transactions.create(
                client_pk=client.id,
                submeter_number=request.submeter_number,
                tanesco_number=request.vend_data.tanesco_number,
                token_number=token,
                transaction_id=request.vend_data.transaction_id,
                amount=request.vend_data.amount,
                units=request.vend_data.units,
                vend_type=request.vend_type.value,
            )
            await self.uow.commit()
        except SQLAlchemyError as e:
            await self.uow.rollback()
            raise StorageUnavailable(
                "Token was issued but the vend could not be recorded.",
                after_issuance=True,
                cause=e,
            ) from e

        logger.info(
            "vend.recorded",
            client_id=client.client_id,
            transaction_id=transaction.transaction_id,
            token=mask_token(token),
        )
        return transaction

    async def _update_client(self, client: Client, request: VendRequest) -> None:
        tanesco_number = request.vend_data.tanesco_number
        if (
            not client.tanesco_number
            and tanesco_number
            and tanesco_number != UNKNOWN_ACCOUNT_REFERENCE
        ):
            await self.uow.clients.set_tanesco_number_if_unset(client, tanesco_number)

        advanced = await self.uow.clients.advance_last_vend_date(
            client, previous=client.last_vend_date, vend_date=self.today()
        )
        if not advanced:
            # Another vend for this client landed between our check and now.
            logger.warning(
                "vend.concurrent_vend_detected",
                client_id=client.client_id,
                observed_last_vend_date=str(client.last_vend_date),
            )
        await self.uow.commit()
        await self.uow.refresh(client)
