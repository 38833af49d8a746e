import asyncio

import pytest
import secretstorage
from secretstorage.exceptions import LockedException, SecretServiceNotAvailableException

from rauthp.backends import MemoryBackend, SecretServiceBackend, make_backend
from rauthp.exceptions import BackendError, RetrievalError, ValidationError
from rauthp.secret_store import Secret, SecretStore


class FakeItem:
    def __init__(self, collection, label, attributes, secret):
        self.collection = collection
        self.label = label
        self.attributes = dict(attributes)
        self.secret = secret
        self.locked = False

    def get_secret(self):
        if self.locked:
            raise LockedException("Item is locked!")
        return self.secret

    def get_attributes(self):
        return dict(self.attributes)

    def delete(self):
        self.collection.items.remove(self)


class FakeCollection:
    def __init__(self, locked=False, dismiss_unlock=False):
        self.items = []
        self.locked = locked
        self.dismiss_unlock = dismiss_unlock

    def is_locked(self):
        return self.locked

    def unlock(self):
        if self.dismiss_unlock:
            return True
        self.locked = False
        return False

    def search_items(self, attributes):
        for item in self.items:
            if all(item.attributes.get(k) == v for k, v in attributes.items()):
                yield item

    def create_item(self, label, attributes, secret, replace=False):
        item = FakeItem(self, label, attributes, secret)
        self.items.append(item)
        return item


class FakeConnection:
    closed = False

    def close(self):
        self.closed = True


@pytest.fixture
def fake_dbus(monkeypatch):
    connection = FakeConnection()
    collection = FakeCollection()
    monkeypatch.setattr(secretstorage, "dbus_init", lambda: connection)
    monkeypatch.setattr(secretstorage, "get_default_collection", lambda conn: collection)
    return connection, collection


def test_make_backend():
    assert isinstance(make_backend("memory"), MemoryBackend)
    assert isinstance(make_backend("secretservice"), SecretServiceBackend)
    with pytest.raises(ValidationError):
        make_backend("kwallet")


def test_secret_service_round_trip(fake_dbus):
    connection, collection = fake_dbus
    with SecretStore(SecretServiceBackend()) as store:
        store.store("alice", "ABCD2345")
        store.store("bob", "MZXW6YTB")
        assert store.get("alice") == Secret("alice", "ABCD2345")
        assert sorted(s.name for s in store.list_all()) == ["alice", "bob"]
        store.delete("alice")
        assert store.get("alice") is None

    assert [item.label for item in collection.items] == ["bob"]
    assert collection.items[0].secret == b"MZXW6YTB"
    assert connection.closed


def test_secret_service_unavailable(monkeypatch):
    def no_service():
        raise SecretServiceNotAvailableException("Environment variable DBUS_SESSION_BUS_ADDRESS is unset")

    monkeypatch.setattr(secretstorage, "dbus_init", no_service)
    with pytest.raises(BackendError, match="DBUS_SESSION_BUS_ADDRESS") as exc:
        SecretStore(SecretServiceBackend())
    assert isinstance(exc.value.__cause__, SecretServiceNotAvailableException)


def test_secret_service_unlocks_collection(fake_dbus):
    _, collection = fake_dbus
    collection.locked = True
    with SecretStore(SecretServiceBackend()) as store:
        assert store.list_all() == []
    assert not collection.locked


def test_secret_service_unlock_dismissed(fake_dbus):
    connection, collection = fake_dbus
    collection.locked = True
    collection.dismiss_unlock = True
    with pytest.raises(BackendError, match="dismissed"):
        SecretStore(SecretServiceBackend())
    assert connection.closed


def test_secret_service_locked_item(fake_dbus):
    _, collection = fake_dbus
    with SecretStore(SecretServiceBackend()) as store:
        store.store("alice", "ABCD2345")
        collection.items[0].locked = True
        with pytest.raises(RetrievalError):
            store.list_all()


def test_memory_backend_replace():
    backend = MemoryBackend()
    attributes = {"application_id": "x", "rauthp_secret_id": "alice"}

    async def scenario():
        await backend.create_item("alice", attributes, b"ONE")
        await backend.create_item("alice", attributes, b"TWO", replace=True)
        return await backend.search_items({"application_id": "x"})

    items = asyncio.run(scenario())
    assert len(items) == 1
    assert asyncio.run(items[0].secret()) == b"TWO"
