from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from .constants import (
    API_BASE_URL,
    API_TIMEOUT_SECONDS,
    CURRENCY_STEP,
    LOG_LEVEL,
    READ_RETRY_ATTEMPTS,
    REFETCH_BEFORE_SUBMIT,
)

_ENV_PREFIX = "SUPPLIER_PAYMENTS_"
_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


class ConfigError(ValueError):
    """Raised when a setting or environment override is invalid."""


@dataclass(frozen=True)
class EngineConfig:
    api_base_url: str = API_BASE_URL
    api_token: Optional[str] = None
    timeout_seconds: float = API_TIMEOUT_SECONDS
    read_retry_attempts: int = READ_RETRY_ATTEMPTS
    currency_step: Decimal = Decimal(CURRENCY_STEP)
    refetch_before_submit: bool = REFETCH_BEFORE_SUBMIT
    log_level: str = LOG_LEVEL

    def __post_init__(self) -> None:
        if not self.api_base_url:
            raise ConfigError("api_base_url must not be empty")
        if self.timeout_seconds <= 0:
            raise ConfigError("timeout_seconds must be positive")
        if self.read_retry_attempts < 1:
            raise ConfigError("read_retry_attempts must be at least 1")
        if self.currency_step <= 0:
            raise ConfigError("currency_step must be positive")
        if self.log_level.upper() not in _VALID_LOG_LEVELS:
            raise ConfigError(f"log_level must be one of {sorted(_VALID_LOG_LEVELS)}")


def _parse_bool(name: str, raw: str) -> bool:
    v = raw.strip().lower()
    if v in _TRUTHY:
        return True
    if v in _FALSY:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def load_config(env: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """
    Build an EngineConfig from defaults overridden by SUPPLIER_PAYMENTS_* variables.

    Recognised keys: API_BASE_URL, API_TOKEN, TIMEOUT, READ_RETRIES,
    CURRENCY_STEP, REFETCH_BEFORE_SUBMIT, LOG_LEVEL.
    """
    env = os.environ if env is None else env

    def get(key: str) -> Optional[str]:
        v = env.get(_ENV_PREFIX + key)
        if v is None or not str(v).strip():
            return None
        return str(v).strip()

    kwargs: dict = {}
    v = get("API_BASE_URL")
    if v is not None:
        kwargs["api_base_url"] = v.rstrip("/")
    v = get("API_TOKEN")
    if v is not None:
        kwargs["api_token"] = v
    v = get("TIMEOUT")
    if v is not None:
        try:
            kwargs["timeout_seconds"] = float(v)
        except ValueError as e:
            raise ConfigError(f"{_ENV_PREFIX}TIMEOUT must be a number, got {v!r}") from e
    v = get("READ_RETRIES")
    if v is not None:
        try:
            kwargs["read_retry_attempts"] = int(v)
        except ValueError as e:
            raise ConfigError(f"{_ENV_PREFIX}READ_RETRIES must be an integer, got {v!r}") from e
    v = get("CURRENCY_STEP")
    if v is not None:
        try:
            kwargs["currency_step"] = Decimal(v)
        except InvalidOperation as e:
            raise ConfigError(f"{_ENV_PREFIX}CURRENCY_STEP must be a decimal, got {v!r}") from e
    v = get("REFETCH_BEFORE_SUBMIT")
    if v is not None:
        kwargs["refetch_before_submit"] = _parse_bool(_ENV_PREFIX + "REFETCH_BEFORE_SUBMIT", v)
    v = get("LOG_LEVEL")
    if v is not None:
        kwargs["log_level"] = v.upper()

    return EngineConfig(**kwargs)
