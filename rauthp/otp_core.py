"""
otp_core.py — Base32 helpers and the TOTP / HOTP derivation used by rauthp.

Everything here is pure: nothing is read from or written to the keyring.
The CLI fetches secrets from rauthp.secret_store and hands the decoded bytes
to generate().

HMAC-SHA1 per RFC 4226 / RFC 6238 (what Google Authenticator and friends use).
"""

import base64
import binascii
import hashlib
import hmac
import logging
import re
import struct
import time
from typing import NamedTuple, Optional, Tuple

import pyotp

from .config import DEFAULT_DIGITS, DEFAULT_TIME_STEP, MAX_DIGITS
from .exceptions import CryptoError, ValidationError

logger = logging.getLogger(__name__)

BASE32_RE = re.compile(r"[A-Z2-7]+=*")
# rfc4648: the last quantum is completed with 0, 1, 3, 4 or 6 padding
# characters, so it holds 2, 4, 5 or 7 data characters.
LAST_QUANTUM_DATA_CHARS = (2, 4, 5, 7)


# --- Base32 ----------------------------------------------------------------
def is_valid_base32(text: str) -> bool:
    """
    Check that `text` is a complete, correctly padded RFC 4648 Base32 string.

    - Case-insensitive: the input is upper-cased first.
    - Length must be a multiple of 8 (complete quanta only).
    - When padded, the final quantum must hold 2, 4, 5 or 7 data characters.

    Examples:
        is_valid_base32("MY======")  -> True
        is_valid_base32("MZXW6Y==")  -> False (6 data characters)
        is_valid_base32("AAAA")      -> False (incomplete quantum)
    """
    text = text.upper()
    if not BASE32_RE.fullmatch(text):
        return False

    if len(text) % 8 != 0:
        return False

    pad_index = text.find("=")
    if pad_index == -1:
        return True
    return pad_index % 8 in LAST_QUANTUM_DATA_CHARS


def decode_secret(secret_b32: str) -> bytes:
    """
    Decode a Base32 secret into the raw HMAC key.

    Raises:
        ValidationError: if the secret is not valid Base32
    """
    if not is_valid_base32(secret_b32):
        raise ValidationError("Invalid secret format, should be a valid base32 string")
    try:
        return base64.b32decode(secret_b32, casefold=True)
    except binascii.Error as e:
        raise ValidationError("Invalid Base32 secret") from e


# --- RFC helpers -----------------------------------------------------------
def int_to_bytes(i: int) -> bytes:
    """8-byte big-endian counter, e.g. int_to_bytes(1) -> b'\\x00' * 7 + b'\\x01'."""
    return struct.pack(">Q", i)


def dynamic_truncate(hmac_digest: bytes) -> int:
    """
    RFC 4226 section 5.4 dynamic truncation.

    offset = low nibble of byte 19; 4 bytes from offset with the top bit
    cleared, read big-endian as a 31-bit integer.
    """
    offset = hmac_digest[19] & 0x0F
    return (
        ((hmac_digest[offset] & 0x7F) << 24)
        | ((hmac_digest[offset + 1] & 0xFF) << 16)
        | ((hmac_digest[offset + 2] & 0xFF) << 8)
        | (hmac_digest[offset + 3] & 0xFF)
    )


def _check_params(interval: int, digits: int) -> None:
    if interval <= 0:
        raise ValueError("interval must be a positive number of seconds")
    if not 1 <= digits <= MAX_DIGITS:
        raise ValueError(f"digits must be between 1 and {MAX_DIGITS}")


def hotp_value(key: bytes, counter: int, digits: int = DEFAULT_DIGITS) -> int:
    """
    HOTP(key, counter) as an integer in [0, 10**digits).

    Raises:
        CryptoError: if the key cannot be used as an HMAC-SHA1 key
    """
    if not key:
        raise CryptoError("Empty secret cannot be used as an HMAC key")
    try:
        digest = hmac.new(key, int_to_bytes(counter), hashlib.sha1).digest()
    except (TypeError, ValueError) as e:
        raise CryptoError(f"HMAC-SHA1 rejected the secret: {e}") from e

    dbc = dynamic_truncate(digest)
    logger.debug("HOTP: counter=%d offset=%d", counter, digest[19] & 0x0F)
    return dbc % (10 ** digits)


def hotp(key: bytes, counter: int, digits: int = DEFAULT_DIGITS) -> str:
    """HOTP code zero-padded to exactly `digits` characters."""
    return str(hotp_value(key, counter, digits)).zfill(digits)


class OtpCode(NamedTuple):
    """A generated code and how long it stays valid."""

    value: int
    digits: int
    seconds_remaining: int

    @property
    def code(self) -> str:
        return f"{self.value:0{self.digits}d}"

    def __str__(self) -> str:
        return f"{self.code} (Validity: {self.seconds_remaining}s)"


def generate(
    secret_bytes: bytes,
    interval: int = DEFAULT_TIME_STEP,
    digits: int = DEFAULT_DIGITS,
    timestamp: Optional[int] = None,
) -> OtpCode:
    """
    Generate the TOTP code valid at `timestamp` (now when None).

    Steps:
    1. counter = floor(timestamp / interval)
    2. HOTP(secret, counter) with `digits` digits
    3. remaining = interval - timestamp % interval, always in [1, interval]

    Arguments:
        secret_bytes: raw shared secret (already Base32-decoded)
        interval: time step in seconds
        digits: number of digits in the code
        timestamp: epoch seconds, defaults to time.time()

    Raises:
        CryptoError: the secret is unusable as an HMAC key
        ValueError: interval or digits out of range
    """
    _check_params(interval, digits)
    if timestamp is None:
        timestamp = int(time.time())

    counter = timestamp // interval
    value = hotp_value(secret_bytes, counter, digits)
    remaining = interval - (timestamp % interval)
    logger.debug("TOTP: time=%d counter=%d remaining=%ds", timestamp, counter, remaining)
    return OtpCode(value, digits, remaining)


def totp(
    secret_b32: str,
    timestamp: Optional[int] = None,
    timestep: int = DEFAULT_TIME_STEP,
    digits: int = DEFAULT_DIGITS,
) -> Tuple[str, int]:
    """
    Convenience wrapper taking a Base32 secret.

    Returns (code, remaining_seconds), code being the zero-padded string.
    """
    otp = generate(decode_secret(secret_b32), timestep, digits, timestamp)
    return otp.code, otp.seconds_remaining


def format_otpauth_uri(
    secret_b32: str,
    account: str,
    issuer: Optional[str] = None,
    digits: int = DEFAULT_DIGITS,
    period: int = DEFAULT_TIME_STEP,
) -> str:
    """
    Build an otpauth://totp/ URI so a stored secret can be imported into
    another authenticator app.

    - The secret is checked and upper-cased; padding is dropped since most
      authenticator apps reject it inside URIs.
    - account / issuer are percent-encoded by pyotp.
    """
    _check_params(period, digits)
    if not is_valid_base32(secret_b32):
        raise ValidationError("Invalid secret format, should be a valid base32 string")
    secret = secret_b32.upper().rstrip("=")
    return pyotp.TOTP(secret, digits=digits, interval=period).provisioning_uri(
        name=account, issuer_name=issuer
    )
