from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Dict, Optional

from ..constants import LOG_LEVEL, LOGGER_NAME

_AUDIT_LOGGER_NAME = LOGGER_NAME + ".audit"


def get_logger(name: str = LOGGER_NAME, level: str | int = LOG_LEVEL) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(level)
        ch = logging.StreamHandler()
        ch.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
        logger.addHandler(ch)
    return logger


def get_audit_logger(file_path: Optional[str] = None, level: int = logging.INFO) -> logging.Logger:
    """
    Return the allocation audit logger. Writes JSON lines to `file_path` when
    given, otherwise to stderr. Handlers are attached once.
    """
    logger = logging.getLogger(_AUDIT_LOGGER_NAME)
    logger.setLevel(level)
    logger.propagate = False

    if logger.handlers:
        return logger

    if file_path:
        log_file = Path(file_path)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(str(log_file), mode="a", encoding="utf-8", delay=True)
    else:
        handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(_JsonLineFormatter())
    logger.addHandler(handler)
    return logger


def _json_default(value: object) -> object:
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, "isoformat"):
        return value.isoformat()  # type: ignore[union-attr]
    return str(value)


class _JsonLineFormatter(logging.Formatter):
    """
    Minimal JSON-lines formatter:
      {"ts":"2025-09-16T12:00:01.123Z","level":"INFO","name":"...","msg":"...","extra":{...}}
    """
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f")[:-3] + "Z",
            "level": record.levelname,
            "name": record.name,
            "msg": record.getMessage(),
        }
        if hasattr(record, "extra_payload") and isinstance(record.extra_payload, dict):
            payload["extra"] = record.extra_payload
        return json.dumps(payload, ensure_ascii=False, default=_json_default)


def log_event(
    logger: logging.Logger,
    op: str,
    phase: str,
    message: str,
    extra: Dict[str, object] | None = None,
    level: int = logging.INFO,
) -> None:
    """
    Log a structured event line.

    Args:
        logger: Usually from get_audit_logger().
        op: Operation name, e.g. "supplier_payment".
        phase: Phase within the operation, e.g. "validated", "submitting", "complete".
        message: Short human-readable message.
        extra: Additional key/values (ids, amounts, allocation rows).
        level: Logging level (default INFO).
    """
    extra_payload: Dict[str, object] = {"op": op, "phase": phase}
    if extra:
        for k, v in extra.items():
            if k not in extra_payload:
                extra_payload[k] = v
    logger.log(level, message, extra={"extra_payload": extra_payload})
