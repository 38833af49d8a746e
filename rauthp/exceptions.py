"""
exceptions.py — error taxonomy shared by the OTP core, the secret store and the CLI.

- ValidationError : bad user input (Base32 secret, empty name, bad setting)
- CryptoError     : the HMAC key could not be used for one code
- StoreError      : anything coming out of the secret store
"""


class RauthpError(Exception):
    """Base class for every error raised by rauthp."""


class ValidationError(RauthpError):
    pass


class CryptoError(RauthpError):
    pass


class StoreError(RauthpError):
    pass


class DuplicateName(StoreError):
    def __init__(self, name: str):
        super().__init__(f"Secret '{name}' already exists")
        self.name = name


class AmbiguousResult(StoreError):
    def __init__(self, name: str, count: int):
        super().__init__(f"Too many results for '{name}' ({count} entries)")
        self.name = name
        self.count = count


class RetrievalError(StoreError):
    pass


class BackendError(StoreError):
    """Communication or storage failure inside the keyring service."""
