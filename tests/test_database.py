from unittest.mock import AsyncMock, MagicMock

import pytest

from contesto.database import Database


@pytest.fixture
def client(monkeypatch):
    client = MagicMock()
    monkeypatch.setattr(Database, "client", client)
    return client


async def test_replica_set_supports_transactions(client):
    client.admin.command = AsyncMock(return_value={"isWritablePrimary": True, "setName": "rs0"})

    assert await Database.supports_transactions() is True
    client.admin.command.assert_awaited_once_with("hello")


async def test_mongos_supports_transactions(client):
    client.admin.command = AsyncMock(return_value={"isWritablePrimary": True, "msg": "isdbgrid"})

    assert await Database.supports_transactions() is True


async def test_standalone_server_does_not_support_transactions(client):
    client.admin.command = AsyncMock(return_value={"isWritablePrimary": True})

    assert await Database.supports_transactions() is False


async def test_unreachable_server_is_reported_as_unsupported(client):
    client.admin.command = AsyncMock(side_effect=RuntimeError("server selection timeout"))

    assert await Database.supports_transactions() is False
