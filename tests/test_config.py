import pytest

from rauthp.config import DEFAULT_DIGITS, DEFAULT_TIME_STEP, Settings, load_settings
from rauthp.exceptions import ValidationError


def test_defaults():
    settings = load_settings({})
    assert settings == Settings()
    assert settings.digits == DEFAULT_DIGITS == 6
    assert settings.interval == DEFAULT_TIME_STEP == 30
    assert settings.log_level == "WARNING"
    assert settings.backend == "secretservice"


def test_overrides():
    settings = load_settings(
        {
            "RAUTHP_DIGITS": "8",
            "RAUTHP_INTERVAL": "60",
            "RAUTHP_LOG_LEVEL": "debug",
            "RAUTHP_BACKEND": "Memory",
        }
    )
    assert settings == Settings(digits=8, interval=60, log_level="DEBUG", backend="memory")


def test_blank_values_fall_back_to_defaults():
    assert load_settings({"RAUTHP_DIGITS": " ", "RAUTHP_INTERVAL": ""}) == Settings()


def test_reads_os_environ(monkeypatch):
    monkeypatch.setenv("RAUTHP_DIGITS", "7")
    assert load_settings().digits == 7


@pytest.mark.parametrize(
    "environ",
    [
        {"RAUTHP_DIGITS": "0"},
        {"RAUTHP_DIGITS": "10"},
        {"RAUTHP_DIGITS": "six"},
        {"RAUTHP_INTERVAL": "0"},
        {"RAUTHP_INTERVAL": "-30"},
        {"RAUTHP_LOG_LEVEL": "LOUD"},
        {"RAUTHP_BACKEND": "kwallet"},
    ],
)
def test_invalid_values(environ):
    with pytest.raises(ValidationError):
        load_settings(environ)


def test_settings_are_frozen():
    settings = Settings()
    with pytest.raises(AttributeError):
        settings.digits = 8
