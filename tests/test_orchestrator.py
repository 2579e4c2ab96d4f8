"""
End-to-end tests for the vend orchestrator.

Runs against the in-memory database and a scripted STS transport.
"""

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from app.db.repositories.transaction_repository import TransactionRepository
from app.db.unit_of_work import UnitOfWork
from app.vending.errors import (
    DailyLimitExceeded,
    InvalidAmount,
    InvalidInput,
    IssuerExhausted,
    NotFound,
    StorageUnavailable,
)
from app.vending.orchestrator import VendOrchestrator

TODAY = date(2026, 10, 17)


@pytest.fixture
def orchestrator(session_factory, fake_sts, sts_config, today):
    return VendOrchestrator(issuer=fake_sts.gateway(sts_config), today=today)


async def transaction_count() -> int:
    async with UnitOfWork() as uow:
        return await uow.transactions.count()


@pytest.mark.asyncio
class TestVend:
    async def test_amount_vend_returns_token_and_zero_units(
        self, orchestrator, make_payload, fake_sts
    ):
        result = await orchestrator.vend(make_payload(vend_data={"units": 12}))

        assert result["tokenNumber"] == "TOKEN-acct-1"
        assert result["units"] == 0
        assert result["amount"] == 5000
        assert result["transactionId"] == "TXN-001"
        # Unknown keys in vendData are echoed back untouched.
        assert result["customerName"] == "Asha"
        assert fake_sts.requests[0].url.params["VendingType"] == "0"

    async def test_unit_vend_keeps_units(self, orchestrator, make_payload, fake_sts):
        result = await orchestrator.vend(
            make_payload(vend_data={"amount": 0, "units": 50})
        )

        assert result["units"] == 50
        params = fake_sts.requests[0].url.params
        assert params["VendingType"] == "1"
        assert params["AmountOrQuantity"] == "50"

    async def test_second_vend_same_day_rejected(
        self, orchestrator, make_payload, fake_sts
    ):
        await orchestrator.vend(make_payload())

        with pytest.raises(DailyLimitExceeded):
            await orchestrator.vend(
                make_payload(vend_data={"transactionId": "TXN-002", "amount": 10})
            )

        assert len(fake_sts.requests) == 1
        assert await transaction_count() == 1

    async def test_vend_allowed_again_next_day(
        self, session_factory, make_payload, fake_sts, sts_config
    ):
        current = {"day": TODAY}
        orchestrator = VendOrchestrator(
            issuer=fake_sts.gateway(sts_config), today=lambda: current["day"]
        )

        await orchestrator.vend(make_payload())
        current["day"] = TODAY + timedelta(days=1)
        await orchestrator.vend(make_payload(vend_data={"transactionId": "TXN-002"}))

        assert await transaction_count() == 2

    async def test_zero_quantity_rejected_before_issuing(
        self, orchestrator, make_payload, fake_sts
    ):
        with pytest.raises(InvalidAmount):
            await orchestrator.vend(make_payload(vend_data={"amount": 0, "units": 0}))

        assert fake_sts.requests == []

    async def test_issuer_exhaustion_leaves_client_free_to_retry(
        self, orchestrator, make_payload, fake_sts
    ):
        fake_sts.default = {"Code": 5, "Message": "Insufficient balance"}

        with pytest.raises(IssuerExhausted) as exc_info:
            await orchestrator.vend(make_payload())

        assert exc_info.value.message == "Insufficient balance"
        assert await transaction_count() == 0

        # Failed attempts never advance the last vend date.
        fake_sts.default = None
        result = await orchestrator.vend(make_payload())
        assert result["tokenNumber"] == "TOKEN-acct-1"

    async def test_storage_failure_after_issuance(
        self, orchestrator, make_payload, fake_sts, monkeypatch
    ):
        async def broken(self, **kwargs):
            raise OperationalError("INSERT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(TransactionRepository, "create", broken)

        with pytest.raises(StorageUnavailable) as exc_info:
            await orchestrator.vend(make_payload())

        assert exc_info.value.after_issuance is True
        assert len(fake_sts.requests) == 1

    @pytest.mark.parametrize("field", ["amount", "units"])
    @pytest.mark.parametrize("value", [float("inf"), float("-inf"), float("nan")])
    async def test_non_finite_quantity_rejected_before_issuing(
        self, orchestrator, make_payload, fake_sts, field, value
    ):
        payload = make_payload(vend_data={"amount": 0, "units": 10})
        payload["vendData"][field] = value

        with pytest.raises(InvalidInput) as exc_info:
            await orchestrator.vend(payload)

        assert f"vendData.{field}" in exc_info.value.message
        assert fake_sts.requests == []
        assert await transaction_count() == 0

    async def test_no_session_held_while_issuing(
        self, session_factory, make_payload, fake_sts, sts_config, today
    ):
        open_units = []

        class TrackedUnitOfWork(UnitOfWork):
            async def __aenter__(self):
                open_units.append(self)
                return await super().__aenter__()

            async def __aexit__(self, *exc_info):
                open_units.remove(self)
                return await super().__aexit__(*exc_info)

        gateway = fake_sts.gateway(sts_config)
        issue_token = gateway.issue_token
        open_while_issuing = []

        async def observed_issue_token(*args, **kwargs):
            open_while_issuing.append(len(open_units))
            return await issue_token(*args, **kwargs)

        gateway.issue_token = observed_issue_token
        orchestrator = VendOrchestrator(
            issuer=gateway, uow_factory=TrackedUnitOfWork, today=today
        )

        result = await orchestrator.vend(make_payload())

        assert result["tokenNumber"] == "TOKEN-acct-1"
        assert open_while_issuing == [0]
        assert open_units == []
        assert await transaction_count() == 1

    @pytest.mark.parametrize(
        "payload",
        [
            None,
            [],
            {},
            {"clientId": "c", "submeterNumber": "1", "vendType": "upload"},
            {"clientId": "", "submeterNumber": "1", "vendData": {}, "vendType": "upload"},
        ],
    )
    async def test_missing_fields_rejected(self, orchestrator, payload, fake_sts):
        with pytest.raises(InvalidInput):
            await orchestrator.vend(payload)

        assert fake_sts.requests == []

    async def test_unknown_vend_type_rejected(self, orchestrator, make_payload):
        with pytest.raises(InvalidInput) as exc_info:
            await orchestrator.vend(make_payload(vendType="sms"))

        assert "vendType" in exc_info.value.message

    async def test_missing_vend_data_field_named(self, orchestrator, make_payload):
        payload = make_payload()
        del payload["vendData"]["transactionId"]

        with pytest.raises(InvalidInput) as exc_info:
            await orchestrator.vend(payload)

        assert exc_info.value.message == (
            "Missing required fields: vendData.transactionId."
        )


@pytest.mark.asyncio
class TestQueries:
    async def test_status_creates_client_once(self, orchestrator):
        first = await orchestrator.get_status("new-client")
        second = await orchestrator.get_status("new-client")

        assert first == {"tanescoNumber": None, "lastVendDate": None}
        assert second == first
        async with UnitOfWork() as uow:
            assert await uow.clients.count(client_id="new-client") == 1

    async def test_status_after_vend(self, orchestrator, make_payload):
        await orchestrator.vend(make_payload())

        status = await orchestrator.get_status("client-abc")

        assert status == {"tanescoNumber": "54100012345", "lastVendDate": "2026-10-17"}

    async def test_latest_transaction_after_vend(self, orchestrator, make_payload):
        await orchestrator.vend(make_payload(vend_data={"amount": 0, "units": 50}))

        receipt = await orchestrator.get_latest_transaction("client-abc")

        assert receipt["tokenNumber"] == "TOKEN-acct-1"
        assert receipt["transactionId"] == "TXN-001"
        assert receipt["tanescoNumber"] == "54100012345"
        assert receipt["amount"] == 0
        assert receipt["units"] == 50
        assert receipt["date"] == datetime.now(timezone.utc).date().isoformat()

    async def test_latest_transaction_none_yet(self, orchestrator):
        await orchestrator.get_status("quiet-client")

        assert await orchestrator.get_latest_transaction("quiet-client") is None

    async def test_latest_transaction_unknown_client(self, orchestrator):
        with pytest.raises(NotFound):
            await orchestrator.get_latest_transaction("ghost")
