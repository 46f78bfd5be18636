# tests/test_config.py
from decimal import Decimal

import pytest

from station_payables.config import ConfigError, EngineConfig, load_config


def test_g1_defaults():
    cfg = load_config({})
    assert cfg == EngineConfig()
    assert cfg.api_base_url == "http://localhost:3001/api"
    assert cfg.currency_step == Decimal("0.01")
    assert cfg.refetch_before_submit is True
    assert cfg.api_token is None


def test_g2_env_overrides():
    cfg = load_config({
        "SUPPLIER_PAYMENTS_API_BASE_URL": "https://ledger.example/api/",
        "SUPPLIER_PAYMENTS_API_TOKEN": "tok",
        "SUPPLIER_PAYMENTS_TIMEOUT": "5",
        "SUPPLIER_PAYMENTS_READ_RETRIES": "1",
        "SUPPLIER_PAYMENTS_CURRENCY_STEP": "1",
        "SUPPLIER_PAYMENTS_REFETCH_BEFORE_SUBMIT": "no",
        "SUPPLIER_PAYMENTS_LOG_LEVEL": "debug",
        "UNRELATED": "ignored",
    })
    assert cfg.api_base_url == "https://ledger.example/api"
    assert cfg.api_token == "tok"
    assert cfg.timeout_seconds == 5.0
    assert cfg.read_retry_attempts == 1
    assert cfg.currency_step == Decimal("1")
    assert cfg.refetch_before_submit is False
    assert cfg.log_level == "DEBUG"


def test_g3_blank_values_fall_back_to_defaults():
    assert load_config({"SUPPLIER_PAYMENTS_TIMEOUT": "  "}).timeout_seconds == 30.0


@pytest.mark.parametrize("key,value", [
    ("TIMEOUT", "soon"),
    ("TIMEOUT", "0"),
    ("READ_RETRIES", "two"),
    ("READ_RETRIES", "0"),
    ("CURRENCY_STEP", "cents"),
    ("CURRENCY_STEP", "-0.01"),
    ("REFETCH_BEFORE_SUBMIT", "maybe"),
    ("LOG_LEVEL", "LOUD"),
])
def test_g4_invalid_values_raise(key, value):
    with pytest.raises(ConfigError):
        load_config({"SUPPLIER_PAYMENTS_" + key: value})


def test_g5_config_error_is_value_error():
    with pytest.raises(ValueError):
        EngineConfig(api_base_url="")
