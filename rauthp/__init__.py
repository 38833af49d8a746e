"""
rauthp
======

Command line TOTP generator keeping its shared secrets in the desktop
keyring (Secret Service).

──────────────────────────────────────────────
Core algorithm
──────────────────────────────────────────────
- HOTP (RFC 4226):
  code = Truncate(HMAC-SHA1(key=secret, msg=counter)) mod 10^digits
- TOTP (RFC 6238):
  HOTP with counter = floor(timestamp / interval), 30s and 6 digits by default.

──────────────────────────────────────────────
Quick example
──────────────────────────────────────────────
>>> from rauthp import MemoryBackend, SecretStore, decode_secret, generate
>>> with SecretStore(MemoryBackend()) as store:
...     store.store("github", "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ")
...     secret = store.get("github")
>>> print(generate(decode_secret(secret.value), 30, 8, timestamp=59))
94287082 (Validity: 1s)
"""
from .backends import MemoryBackend, SecretServiceBackend
from .exceptions import (
    AmbiguousResult,
    BackendError,
    CryptoError,
    DuplicateName,
    RauthpError,
    RetrievalError,
    StoreError,
    ValidationError,
)
from .otp_core import (
    OtpCode,
    decode_secret,
    format_otpauth_uri,
    generate,
    hotp,
    is_valid_base32,
    totp,
)
from .secret_store import Secret, SecretStore, open_store

__version__ = "0.1.0"
