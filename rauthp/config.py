"""
config.py — constants and environment settings for rauthp.

The constants describe how entries are tagged inside the keyring and the
default TOTP parameters (RFC 6238 recommends SHA-1, 30s, 6 digits).

Settings can be overridden through the environment:
  RAUTHP_DIGITS     number of digits printed by `gen` (1..9)
  RAUTHP_INTERVAL   TOTP time step in seconds (> 0)
  RAUTHP_LOG_LEVEL  logging level name (WARNING by default)
  RAUTHP_BACKEND    "secretservice" (default) or "memory"
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ValidationError

# --- Keyring layout --------------------------------------------------------
APPLICATION_ID_KEY = "application_id"
APPLICATION_ID = "25fa6cf5-ba20-481d-b382-f3acab4da54e"
SECRET_ID_KEY = "rauthp_secret_id"

# --- TOTP defaults ---------------------------------------------------------
DEFAULT_DIGITS = 6
DEFAULT_TIME_STEP = 30      # seconds
MAX_DIGITS = 9

# --- Output ----------------------------------------------------------------
NAME_WIDTH = 35

BACKENDS = ("secretservice", "memory")
DEFAULT_BACKEND = "secretservice"
DEFAULT_LOG_LEVEL = "WARNING"


@dataclass(frozen=True)
class Settings:
    digits: int = DEFAULT_DIGITS
    interval: int = DEFAULT_TIME_STEP
    log_level: str = DEFAULT_LOG_LEVEL
    backend: str = DEFAULT_BACKEND


def _int_setting(environ: Mapping[str, str], key: str, default: int) -> int:
    raw = environ.get(key)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValidationError(f"{key} must be an integer, got {raw!r}") from e


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build a Settings object from the environment.

    Arguments:
        environ: mapping to read from (os.environ when None)

    Raises:
        ValidationError: if a value is out of range or not understood
    """
    if environ is None:
        environ = os.environ

    digits = _int_setting(environ, "RAUTHP_DIGITS", DEFAULT_DIGITS)
    if not 1 <= digits <= MAX_DIGITS:
        raise ValidationError(f"RAUTHP_DIGITS must be between 1 and {MAX_DIGITS}")

    interval = _int_setting(environ, "RAUTHP_INTERVAL", DEFAULT_TIME_STEP)
    if interval <= 0:
        raise ValidationError("RAUTHP_INTERVAL must be a positive number of seconds")

    log_level = environ.get("RAUTHP_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ValidationError(f"Unknown log level {log_level!r}")

    backend = environ.get("RAUTHP_BACKEND", DEFAULT_BACKEND).lower()
    if backend not in BACKENDS:
        raise ValidationError(f"RAUTHP_BACKEND must be one of {', '.join(BACKENDS)}")

    return Settings(digits=digits, interval=interval, log_level=log_level, backend=backend)
