"""
secret_store.py — named OTP secrets kept in the keyring.

Each secret is one keyring entry tagged with two attributes:

    application_id   = APPLICATION_ID  (same for every rauthp entry)
    rauthp_secret_id = <account name>

The payload is the Base32 secret as UTF-8 text.

The backend is asynchronous (see rauthp.backends). SecretStore owns a private
single-threaded event loop for its whole lifetime and drives each backend call
to completion, so callers only see plain blocking methods:

    with SecretStore(backend) as store:
        store.store("github", "JBSWY3DPEHPK3PXP")
        for secret in store.list_all():
            ...

Known limitation: store() checks for an existing name and then inserts. The
two round trips are not atomic, two processes adding the same name at the
same time can both succeed.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from .backends import make_backend
from .config import APPLICATION_ID, APPLICATION_ID_KEY, SECRET_ID_KEY
from .exceptions import (
    AmbiguousResult,
    DuplicateName,
    RetrievalError,
    StoreError,
    ValidationError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Secret:
    name: str
    value: str


def common_attributes() -> Dict[str, str]:
    return {APPLICATION_ID_KEY: APPLICATION_ID}


def secret_attributes(name: str) -> Dict[str, str]:
    attributes = common_attributes()
    attributes[SECRET_ID_KEY] = name
    return attributes


def _decode_payload(payload: bytes) -> str:
    return bytes(payload).decode("utf-8")


class SecretStore:
    def __init__(self, backend):
        self._backend = backend
        self._loop = asyncio.new_event_loop()
        try:
            self._run(backend.open())
        except BaseException:
            try:
                self._shutdown()
            except StoreError:
                logger.debug("Closing the keyring after a failed open failed too", exc_info=True)
            raise
        logger.debug("Connected to the keyring via %s", type(backend).__name__)

    # --- plumbing ----------------------------------------------------------
    def _run(self, coro):
        return self._loop.run_until_complete(coro)

    def _shutdown(self) -> None:
        try:
            self._loop.run_until_complete(self._backend.close())
        finally:
            self._loop.close()

    def close(self) -> None:
        if not self._loop.is_closed():
            self._shutdown()

    def __enter__(self) -> "SecretStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @staticmethod
    def _check_name(name: str) -> None:
        if not name:
            raise ValidationError("Secret name must not be empty")

    # --- operations --------------------------------------------------------
    def store(self, name: str, secret: str) -> None:
        """
        Add a new secret.

        Raises:
            DuplicateName: a secret with this name already exists
            BackendError: the keyring call failed
        """
        self._check_name(name)
        if self.get(name) is not None:
            raise DuplicateName(name)

        logger.debug("Creating keyring entry for %r", name)
        self._run(
            self._backend.create_item(name, secret_attributes(name), secret.encode("utf-8"), False)
        )

    def delete(self, name: str) -> None:
        """Remove every entry tagged with `name`. Missing names are a no-op."""
        self._check_name(name)
        logger.debug("Deleting keyring entries for %r", name)
        self._run(self._backend.delete(secret_attributes(name)))

    def get(self, name: str) -> Optional[Secret]:
        """
        Look one secret up by name.

        Returns None when nothing matches.

        Raises:
            AmbiguousResult: more than one entry carries this name
            RetrievalError: the entry's secret could not be read
            BackendError: the search itself failed
        """
        self._check_name(name)
        items = self._run(self._backend.search_items(secret_attributes(name)))
        if not items:
            return None
        if len(items) > 1:
            raise AmbiguousResult(name, len(items))

        try:
            payload = self._run(items[0].secret())
            return Secret(name, _decode_payload(payload))
        except (StoreError, UnicodeDecodeError) as e:
            raise RetrievalError(f"Failed to read the value of the secret '{name}'") from e

    def list_all(self) -> List[Secret]:
        """
        Every rauthp secret in the keyring, in backend order.

        All or nothing: if any entry cannot be read, or has no name attribute,
        RetrievalError is raised and no secret is returned.
        """
        items = self._run(self._backend.search_items(common_attributes()))
        logger.debug("Keyring returned %d entries", len(items))

        secrets = []
        for item in items:
            try:
                payload = self._run(item.secret())
                value = _decode_payload(payload)
            except (StoreError, UnicodeDecodeError) as e:
                raise RetrievalError("Failed to retrieve the value of a secret") from e
            try:
                attributes = self._run(item.attributes())
            except StoreError as e:
                raise RetrievalError("Failed to retrieve the name of a secret") from e

            name = attributes.get(SECRET_ID_KEY)
            if not name:
                raise RetrievalError("Unexpected data retrieved from the keyring")
            secrets.append(Secret(name, value))
        return secrets


def open_store(backend_name: str) -> SecretStore:
    """Connect to the backend registered under `backend_name`."""
    return SecretStore(make_backend(backend_name))
