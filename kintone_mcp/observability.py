"""Structured logging utilities for the gateway."""

from __future__ import annotations

import json
import logging
import time
from typing import Any

LOGGER_NAME = "kintone_mcp.events"

logger = logging.getLogger(LOGGER_NAME)


def log_event(*, event: str, status: str, **extra: Any) -> None:
    """Emit a JSON log line describing a request, tool call or backend call."""

    payload: dict[str, Any] = {"event": event, "status": status}
    for key, value in extra.items():
        if value is not None:
            payload[key] = value
    logger.info(json.dumps(payload, sort_keys=True, default=str))


def elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000.0, 3)
