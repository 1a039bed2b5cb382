"""Structured JSON logging for the loyalty service."""

from __future__ import annotations

import dataclasses
import logging
import os
from decimal import Decimal
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter

from .config import Settings

SERVICE_NAME = "loyalty-ledger"


class LedgerJsonFormatter(JsonFormatter):
    """JSON formatter that tags records with the service and flattens values."""

    def process_log_record(self, log_data: Dict[str, Any]) -> Dict[str, Any]:
        data = super().process_log_record(log_data)
        data.setdefault("service", SERVICE_NAME)
        for key, value in list(data.items()):
            data[key] = self._plain_value(value)
        return data

    def _plain_value(self, value: Any) -> Any:
        if isinstance(value, Decimal):
            return str(value)
        if dataclasses.is_dataclass(value) and not isinstance(value, type):
            return self._plain_value(dataclasses.asdict(value))
        if isinstance(value, dict):
            return {k: self._plain_value(v) for k, v in value.items()}
        if isinstance(value, (list, tuple)):
            return [self._plain_value(v) for v in value]
        return value


def configure_logging(settings: Settings) -> None:
    """Configure root logger with JSON output."""

    log_level = getattr(logging, settings.log_level.upper(), logging.INFO)

    logging.captureWarnings(True)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(log_level)

    handler = logging.StreamHandler()
    fmt = LedgerJsonFormatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    handler.setFormatter(fmt)
    root_logger.addHandler(handler)

    os.environ.setdefault("TZ", settings.timezone)
