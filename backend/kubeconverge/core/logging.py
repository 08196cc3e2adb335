"""
Logging configuration for kubeconverge.

structlog on top of the standard library root logger, rendering colored
console lines on a TTY and JSON lines when ``LOG_JSON`` is set.
"""
import logging
import sys
from typing import Any, MutableMapping, Optional

import structlog

from kubeconverge.config import get_settings

_CONFIGURED = False

COLORS = {
    "DEBUG": "\033[36m",  # cyan
    "INFO": "\033[32m",  # green
    "WARNING": "\033[33m",  # yellow
    "ERROR": "\033[31m",  # red
    "CRITICAL": "\033[35m",  # magenta
}
RESET = "\033[0m"

REDACT_KEYS = {"password", "passwd", "secret", "token", "bearer_token", "authorization"}
REDACTED = "***REDACTED***"


def colorize(text: str, level: str) -> str:
    """Wrap ``text`` in the ANSI color used for ``level`` log lines."""
    color = COLORS.get(level.upper())
    if not color:
        return text
    return f"{color}{text}{RESET}"


def redact_sensitive(_logger: Any, _method: str, event_dict: MutableMapping[str, Any]) -> MutableMapping[str, Any]:
    """structlog processor masking credential-like keys."""
    for key in list(event_dict.keys()):
        if str(key).lower() in REDACT_KEYS and event_dict[key]:
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    """Configure structlog and the root logger once per process."""
    global _CONFIGURED
    if _CONFIGURED:
        return

    settings = get_settings()
    level = (level or settings.log_level).upper()
    if json_output is None:
        json_output = settings.log_json

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        redact_sensitive,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
    )

    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            renderer,
        ],
        foreign_pre_chain=shared_processors,
    )

    root = logging.getLogger()
    root.setLevel(level)
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root.addHandler(handler)

    # route server loggers through the root handler
    for log_name in ("uvicorn", "uvicorn.error", "uvicorn.access", "fastapi"):
        l = logging.getLogger(log_name)
        l.handlers = []
        l.propagate = True

    _CONFIGURED = True


def get_logger(name: Optional[str] = None) -> Any:
    return structlog.get_logger(name)
