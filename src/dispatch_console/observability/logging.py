"""
dispatch_console.observability.logging

structlog setup for the console server.

Responsibilities:
- Route structlog events through stdlib logging (so uvicorn and socketio share one stream).
- Render JSON lines, or a readable console format for local work.
- Keep engine.io/socket.io chatter out of the log at normal levels.
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Literal

import structlog

# Per-packet debug output; only useful when chasing transport problems.
_NOISY_LOGGERS = ("engineio.server", "socketio.server")


def configure_logging(
    *,
    service_name: str,
    level: str,
    fmt: Literal["json", "console"] = "json",
) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    renderer: Any = (
        structlog.dev.ConsoleRenderer() if fmt == "console" else structlog.processors.JSONRenderer()
    )
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _with_service(service_name),
    ]
    if fmt == "json":
        processors.append(structlog.processors.dict_tracebacks)
    processors.append(renderer)

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _with_service(service_name: str):
    def processor(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)
