"""Tests for the client registry and client repository."""

from datetime import date

import pytest
from sqlalchemy.exc import OperationalError

from app.db.repositories.client_repository import ClientRepository
from app.db.unit_of_work import UnitOfWork
from app.vending.errors import InvalidInput, StorageUnavailable
from app.vending.registry import ClientRegistry


@pytest.mark.asyncio
class TestClientRegistry:
    async def test_creates_client_on_first_sight(self, session_factory):
        async with UnitOfWork() as uow:
            client = await ClientRegistry(uow).resolve_or_create("client-1")

            assert client.id is not None
            assert client.client_id == "client-1"
            assert client.tanesco_number is None
            assert client.last_vend_date is None

        async with UnitOfWork() as uow:
            assert await uow.clients.count(client_id="client-1") == 1

    async def test_resolving_twice_creates_once(self, session_factory):
        async with UnitOfWork() as uow:
            first = await ClientRegistry(uow).resolve_or_create("client-2")

        async with UnitOfWork() as uow:
            second = await ClientRegistry(uow).resolve_or_create("client-2")
            assert await uow.clients.count(client_id="client-2") == 1

        assert first.id == second.id

    async def test_returns_existing_state(self, session_factory):
        async with UnitOfWork() as uow:
            await uow.clients.create(
                client_id="client-3",
                tanesco_number="54100099999",
                last_vend_date=date(2026, 10, 1),
            )

        async with UnitOfWork() as uow:
            client = await ClientRegistry(uow).resolve_or_create("client-3")

        assert client.tanesco_number == "54100099999"
        assert client.last_vend_date == date(2026, 10, 1)

    @pytest.mark.parametrize("client_id", ["", "   ", None])
    async def test_empty_client_id_rejected(self, session_factory, client_id):
        async with UnitOfWork() as uow:
            with pytest.raises(InvalidInput):
                await ClientRegistry(uow).resolve_or_create(client_id)

    async def test_get_existing_does_not_create(self, session_factory):
        async with UnitOfWork() as uow:
            assert await ClientRegistry(uow).get_existing("ghost") is None
            assert await uow.clients.exists(client_id="ghost") is False

    async def test_storage_failure_is_wrapped(self, session_factory, monkeypatch):
        async def broken(*args, **kwargs):
            raise OperationalError("SELECT", {}, Exception("database is locked"))

        async with UnitOfWork() as uow:
            monkeypatch.setattr(uow.clients, "get_or_create", broken)
            with pytest.raises(StorageUnavailable) as exc_info:
                await ClientRegistry(uow).resolve_or_create("client-4")

        assert exc_info.value.after_issuance is False
        assert exc_info.value.http_status == 500


@pytest.mark.asyncio
class TestClientRepository:
    async def test_get_or_create_reports_creation(self, db_session):
        async with UnitOfWork(db_session) as uow:
            client, created = await uow.clients.get_or_create("repo-1")
            again, created_again = await uow.clients.get_or_create("repo-1")

        assert created is True
        assert created_again is False
        assert again.id == client.id

    async def test_tanesco_number_is_sticky(self, db_session):
        async with UnitOfWork(db_session) as uow:
            client, _ = await uow.clients.get_or_create("repo-2")

            assert await uow.clients.set_tanesco_number_if_unset(client, "111") is True
            assert await uow.clients.set_tanesco_number_if_unset(client, "222") is False

            await uow.refresh(client)
            assert client.tanesco_number == "111"

    async def test_advance_last_vend_date_is_conditional(self, db_session):
        async with UnitOfWork(db_session) as uow:
            client, _ = await uow.clients.get_or_create("repo-3")
            today = date(2026, 10, 17)

            assert await uow.clients.advance_last_vend_date(client, None, today) is True
            # A second writer that also observed "never vended" loses.
            assert await uow.clients.advance_last_vend_date(client, None, today) is False

            await uow.refresh(client)
            assert client.last_vend_date == today

    async def test_get_or_create_recovers_from_concurrent_insert(
        self, session_factory, monkeypatch
    ):
        """Another request inserts the same client between our lookup and insert."""
        original_lookup = ClientRepository.get_by_client_id
        lookups = []

        async def lookup_then_lose_race(self, client_id):
            lookups.append(client_id)
            if len(lookups) == 1:
                async with UnitOfWork() as other:
                    await other.clients.create(client_id=client_id)
                return None
            return await original_lookup(self, client_id)

        monkeypatch.setattr(ClientRepository, "get_by_client_id", lookup_then_lose_race)

        async with UnitOfWork() as uow:
            client, created = await uow.clients.get_or_create("repo-race")

        assert created is False
        assert client.client_id == "repo-race"
        assert len(lookups) == 2

        monkeypatch.setattr(ClientRepository, "get_by_client_id", original_lookup)
        async with UnitOfWork() as uow:
            assert await uow.clients.count(client_id="repo-race") == 1
            stored = await uow.clients.get_by_client_id("repo-race")
            assert stored.id == client.id
