"""Centralized logging configuration.

This module provides:
- JSONFormatter for structured logging (one object per line on stderr)
- PlainFormatter for local debugging
- setup_logging() to wire either of them onto the root logger

Log messages follow the "[TAG] message" convention; the JSON formatter lifts
the tag into its own field so log collectors can filter on it.
"""

import json
import logging
import re
import sys

SERVICE_NAME = "readwise-mcp-server"

_TAG_PATTERN = re.compile(r'\[([A-Z_]+)\]\s*(.*)', re.DOTALL)


def split_tag(message: str) -> tuple[str | None, str]:
    """Split "[TAG] text" into ("TAG", "text"); untagged messages get None."""
    tag_match = _TAG_PATTERN.match(message)
    if tag_match:
        return tag_match.group(1), tag_match.group(2)
    return None, message


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, service: str = None):
        super().__init__()
        self.service = service or SERVICE_NAME

    def format(self, record: logging.LogRecord) -> str:
        tag, message = split_tag(record.getMessage())

        log_entry = {
            "timestamp": self.formatTime(record),
            "service": self.service,
            "level": record.levelname,
            "tag": tag,
            "message": message,
            "module": record.module,
            "extra": {
                "function": record.funcName,
                "line": record.lineno,
            }
        }

        if record.exc_info:
            log_entry["extra"]["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class PlainFormatter(logging.Formatter):
    """Plain text formatter for stderr output (local debugging)."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def setup_logging(
    level: str = "INFO",
    json_output: bool = False,
    service: str = None,
) -> logging.Logger:
    """Configure the root logger.

    Args:
        level: Root log level name (DEBUG, INFO, ...).
        json_output: Emit JSON lines instead of plain text.
        service: Service name stamped on JSON entries.

    Returns:
        Configured root logger.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    if json_output:
        stderr_handler.setFormatter(JSONFormatter(service))
    else:
        stderr_handler.setFormatter(PlainFormatter())
    root_logger.addHandler(stderr_handler)

    # Suppress noisy HTTP client logs (every upstream call would show up)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"[STARTUP] Logging configured (level={level.upper()}, json={json_output})")

    return root_logger
