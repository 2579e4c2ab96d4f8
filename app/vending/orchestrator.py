"""
Vend orchestrator.

Runs one vend request end to end: validate the payload, resolve the client,
apply the vend policy, get a token from STS and record the result. Also
serves the two read queries (client status and latest receipt).
"""

from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Optional

import structlog
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from app.core.logging import mask_token
from app.db.models.transaction import Transaction
from app.db.unit_of_work import UnitOfWork
from app.vending.errors import InvalidInput, NotFound, StorageUnavailable
from app.vending.issuer import TokenIssuerGateway
from app.vending.models import ClientStatus, Receipt, VendKind, VendRequest
from app.vending.policy import VendPolicy, utc_today
from app.vending.recorder import VendRecorder
from app.vending.registry import ClientRegistry

logger = structlog.get_logger()

_MISSING_ERROR_TYPES = {"missing", "string_too_short"}


def _describe_validation_error(error: ValidationError) -> str:
    missing, invalid = [], []
    for item in error.errors():
        field = ".".join(str(part) for part in item["loc"]) or "body"
        (missing if item["type"] in _MISSING_ERROR_TYPES else invalid).append(field)

    if missing and not invalid:
        return f"Missing required fields: {', '.join(missing)}."
    return f"Invalid request fields: {', '.join(missing + invalid)}."


def _receipt_date(created_at: datetime) -> date:
    if created_at.tzinfo is not None:
        created_at = created_at.astimezone(timezone.utc)
    return created_at.date()


class VendOrchestrator:
    """Composes registry, policy, issuer and recorder into one request cycle."""

    def __init__(
        self,
        issuer: TokenIssuerGateway,
        uow_factory: Callable[[], UnitOfWork] = UnitOfWork,
        today: Optional[Callable[[], date]] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            issuer: STS token issuer gateway
            uow_factory: Builds a fresh UnitOfWork per request
            today: Clock returning the current date (defaults to UTC today)
        """
        self.issuer = issuer
        self.uow_factory = uow_factory
        self.today = today or utc_today
        self.policy = VendPolicy(today=self.today)

    @staticmethod
    def parse_request(payload: Any) -> VendRequest:
        """
        Validate a raw request body.

        Raises:
            InvalidInput: If required fields are missing or malformed
        """
        if not isinstance(payload, dict):
            raise InvalidInput("Missing required fields.")
        try:
            return VendRequest.model_validate(payload)
        except ValidationError as e:
            raise InvalidInput(_describe_validation_error(e)) from e

    async def vend(self, payload: Any) -> Dict[str, Any]:
        """
        Process a vend request.

        Returns:
            The caller's ``vendData`` with ``tokenNumber`` added; ``units`` is
            zeroed for amount vends since STS does not report units for them

        Raises:
            VendError: Any error of the vend taxonomy
        """
        request = self.parse_request(payload)
        vend_data = request.vend_data
        log = logger.bind(
            client_id=request.client_id,
            transaction_id=vend_data.transaction_id,
            submeter_number=request.submeter_number,
            vend_type=request.vend_type.value,
        )
        log.info("vend.started", amount=vend_data.amount, units=vend_data.units)

        async with self.uow_factory() as uow:
            try:
                client = await ClientRegistry(uow).resolve_or_create(request.client_id)
            except StorageUnavailable as e:
                log.error("vend.storage_failed_before_issuance", error=str(e.cause))
                raise

            resolved = self.policy.check_and_resolve(
                client, vend_data.amount, vend_data.units
            )

        log = log.bind(vend_kind=resolved.kind.name.lower(), quantity=resolved.quantity)

        # No session is held while STS is called; the failover loop can be slow.
        token = await self.issuer.issue_token(
            request.submeter_number, resolved.quantity, resolved.kind
        )

        async with self.uow_factory() as uow:
            recorder = VendRecorder(uow, today=self.today)
            try:
                client = await uow.session.merge(client, load=False)
                await recorder.record(client, request, token)
            except StorageUnavailable as e:
                # Token exists at STS but not in our records: needs manual reconciliation.
                log.error(
                    "vend.storage_failed_after_issuance",
                    token=mask_token(token),
                    error=str(e.cause),
                )
                raise

        result = dict(payload["vendData"])
        result["tokenNumber"] = token
        if resolved.kind == VendKind.AMOUNT:
            result["units"] = 0

        log.info("vend.completed", token=mask_token(token))
        return result

    async def get_status(self, client_id: str) -> Dict[str, Any]:
        """Return the client's account reference and last vend date, creating the client if new."""
        async with self.uow_factory() as uow:
            client = await ClientRegistry(uow).resolve_or_create(client_id)

        status = ClientStatus(
            tanesco_number=client.tanesco_number,
            last_vend_date=client.last_vend_date,
        )
        return status.model_dump(by_alias=True, mode="json")

    async def get_latest_transaction(self, client_id: str) -> Optional[Dict[str, Any]]:
        """
        Return the client's most recent transaction as a receipt.

        Returns:
            Receipt dict, or None when the client has no transactions yet

        Raises:
            NotFound: If the client has never been seen
        """
        async with self.uow_factory() as uow:
            client = await ClientRegistry(uow).get_existing(client_id)
            if client is None:
                raise NotFound()

            try:
                transaction = await uow.transactions.get_latest_for_client(client.id)
            except SQLAlchemyError as e:
                raise StorageUnavailable(cause=e) from e

        if transaction is None:
            return None
        return self.to_receipt(transaction)

    @staticmethod
    def to_receipt(transaction: Transaction) -> Dict[str, Any]:
        receipt = Receipt(
            tanesco_number=transaction.tanesco_number,
            token_number=transaction.token_number,
            transaction_id=transaction.transaction_id,
            amount=transaction.amount,
            units=transaction.units,
            vend_date=_receipt_date(transaction.created_at),
        )
        return receipt.model_dump(by_alias=True, mode="json")
