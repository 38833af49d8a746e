"""
backends.py — asynchronous clients for the protected store holding the secrets.

A backend exposes coroutines only:

    await backend.open()
    await backend.search_items(attributes)  -> list of items
    await backend.create_item(label, attributes, secret, replace=False)
    await backend.delete(attributes)
    await backend.close()

and every item returned by search_items() exposes:

    await item.secret()      -> bytes
    await item.attributes()  -> dict

SecretServiceBackend talks to the desktop keyring (GNOME Keyring, KWallet,
KeePassXC...) over D-Bus through `secretstorage`. MemoryBackend keeps
everything in the process and is used by the tests and RAUTHP_BACKEND=memory.
"""

import asyncio
import functools
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List

import secretstorage
from jeepney.wrappers import DBusErrorResponse
from secretstorage.exceptions import SecretStorageException

from .exceptions import BackendError, ValidationError

logger = logging.getLogger(__name__)


def _matches(item_attributes: Dict[str, str], attributes: Dict[str, str]) -> bool:
    return all(item_attributes.get(k) == v for k, v in attributes.items())


# --- In-memory backend -----------------------------------------------------
class MemoryItem:
    def __init__(self, label: str, attributes: Dict[str, str], secret: bytes):
        self.label = label
        self._attributes = dict(attributes)
        self._secret = secret

    async def secret(self) -> bytes:
        return self._secret

    async def attributes(self) -> Dict[str, str]:
        return dict(self._attributes)


class MemoryBackend:
    """Process-local store, lost when the process exits."""

    def __init__(self):
        self.items: List[MemoryItem] = []
        self.is_open = False

    async def open(self) -> None:
        self.is_open = True

    async def close(self) -> None:
        self.is_open = False

    async def search_items(self, attributes: Dict[str, str]) -> List[MemoryItem]:
        return [item for item in self.items if _matches(item._attributes, attributes)]

    async def create_item(
        self, label: str, attributes: Dict[str, str], secret: bytes, replace: bool = False
    ) -> None:
        if replace:
            await self.delete(attributes)
        self.items.append(MemoryItem(label, attributes, secret))

    async def delete(self, attributes: Dict[str, str]) -> None:
        self.items = [item for item in self.items if not _matches(item._attributes, attributes)]


# --- Secret Service backend ------------------------------------------------
class SecretServiceItem:
    def __init__(self, backend: "SecretServiceBackend", item: secretstorage.Item):
        self._backend = backend
        self._item = item

    async def secret(self) -> bytes:
        return await self._backend._call(self._item.get_secret)

    async def attributes(self) -> Dict[str, str]:
        return await self._backend._call(self._item.get_attributes)

    async def delete(self) -> None:
        await self._backend._call(self._item.delete)


class SecretServiceBackend:
    """
    Secret Service (org.freedesktop.secrets) client.

    secretstorage is blocking, so every call runs on a private single-thread
    executor: the D-Bus connection is only ever touched from that thread, and
    callers just await coroutines.
    """

    def __init__(self):
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="rauthp-dbus")
        self._connection = None
        self._collection = None

    async def _call(self, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(self._executor, functools.partial(fn, *args, **kwargs))
        except (SecretStorageException, DBusErrorResponse) as e:
            raise BackendError(str(e) or type(e).__name__) from e

    async def open(self) -> None:
        self._connection = await self._call(secretstorage.dbus_init)
        self._collection = await self._call(secretstorage.get_default_collection, self._connection)
        if await self._call(self._collection.is_locked):
            logger.debug("Default collection is locked, requesting unlock")
            dismissed = await self._call(self._collection.unlock)
            if dismissed:
                raise BackendError("Unlocking the keyring was dismissed")

    async def close(self) -> None:
        try:
            if self._connection is not None:
                await self._call(self._connection.close)
        finally:
            self._connection = None
            self._collection = None
            self._executor.shutdown(wait=True)

    async def search_items(self, attributes: Dict[str, str]) -> List[SecretServiceItem]:
        items = await self._call(lambda: list(self._collection.search_items(attributes)))
        return [SecretServiceItem(self, item) for item in items]

    async def create_item(
        self, label: str, attributes: Dict[str, str], secret: bytes, replace: bool = False
    ) -> None:
        await self._call(self._collection.create_item, label, attributes, secret, replace)

    async def delete(self, attributes: Dict[str, str]) -> None:
        for item in await self.search_items(attributes):
            await item.delete()


def make_backend(name: str):
    """Instantiate the backend registered under `name`."""
    if name == "secretservice":
        return SecretServiceBackend()
    if name == "memory":
        return MemoryBackend()
    raise ValidationError(f"Unknown backend {name!r}")
