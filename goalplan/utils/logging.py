from __future__ import annotations

import logging
import sys
from contextvars import ContextVar, Token
from datetime import datetime, UTC
from typing import Optional

# Context variables for structured logging
request_id_var: ContextVar[str] = ContextVar("request_id", default="-")
scenario_id_var: ContextVar[str] = ContextVar("scenario_id", default="-")


class ContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get()
        record.scenario_id = scenario_id_var.get()
        return True


class SimpleStructuredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.now(UTC).isoformat(timespec="seconds").replace("+00:00", "Z")
        msg = record.getMessage()
        return (
            f"{ts} level={record.levelname} logger={record.name} "
            f"request_id={getattr(record, 'request_id', '-')} "
            f"scenario_id={getattr(record, 'scenario_id', '-')} "
            f"msg={msg}"
        )


def setup_logging(level: str = "INFO") -> None:
    lvl = getattr(logging, level.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(lvl)

    # Replace handlers (avoid duplicate logs when called twice)
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(lvl)
    handler.addFilter(ContextFilter())
    handler.setFormatter(SimpleStructuredFormatter())

    root.addHandler(handler)


def set_log_context(*, request_id: str, scenario_id: Optional[str] = None) -> None:
    request_id_var.set(request_id)
    if scenario_id is not None:
        scenario_id_var.set(scenario_id)


def set_scenario(scenario_id: str) -> Token:
    return scenario_id_var.set(scenario_id)


def reset_scenario(token: Token) -> None:
    scenario_id_var.reset(token)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
