from types import SimpleNamespace

import pytest

from rauthp import otp_core
from rauthp.backends import MemoryBackend
from rauthp.secret_store import SecretStore

RFC_SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"  # b"12345678901234567890"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ("RAUTHP_DIGITS", "RAUTHP_INTERVAL", "RAUTHP_LOG_LEVEL", "RAUTHP_BACKEND"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def store(backend):
    with SecretStore(backend) as s:
        yield s


@pytest.fixture
def frozen_time(monkeypatch):
    """Pin the clock seen by the OTP generator to the given epoch second."""

    def freeze(ts):
        monkeypatch.setattr(otp_core, "time", SimpleNamespace(time=lambda: float(ts)))

    return freeze
