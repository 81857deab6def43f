"""
Logging setup for the KisanSense CLI.

``configure_logging(config, debug=False)`` is called once by each CLI command
(a web server embedding the engine calls it once at startup). Library modules
only ever do ``logging.getLogger(__name__)``.

Levels
------
The configured level applies to the ``kisansense`` logger tree. The root
logger stays at WARNING or above, so chatter from httpx, httpcore and asyncio
is dropped without naming each library. ``debug=True`` (``KISANSENSE_DEBUG``)
forces DEBUG on ``kisansense`` only.

Output goes to stderr; stdout is reserved for command output such as
``kisansense analyze`` JSON.

JSON format (``json_format = true`` under ``[logging]``) emits one object per
line, with any ``extra=`` fields (e.g. ``commodity``, ``market``) at the top
level::

    {"ts": "2026-02-24T15:00:00Z", "level": "WARNING", "logger": "kisansense.recommendations.engine", "msg": "..."}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from kisansense.config import LoggingConfig

PACKAGE_LOGGER = "kisansense"

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Attributes every LogRecord carries; anything else came in through extra=.
_STANDARD_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    """One JSON object per record: ``ts``, ``level``, ``logger``, ``msg``, extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                LOG_DATE_FORMAT
            ),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            (key, val)
            for key, val in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, ensure_ascii=False)


def _make_formatter(json_format: bool) -> logging.Formatter:
    if json_format:
        return _JsonFormatter()
    return logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)


def _file_handler(log_file: str) -> Optional[logging.Handler]:
    if not log_file:
        return None
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, encoding="utf-8")


def configure_logging(config: "LoggingConfig", debug: bool = False) -> logging.Logger:
    """Route ``kisansense`` logs to stderr (and optionally a file).

    Args:
        config: ``LoggingConfig`` section of ``AppConfig``.
        debug: Force DEBUG for the ``kisansense`` tree regardless of
            ``config.level``.

    Returns:
        The configured ``kisansense`` package logger.
    """
    level = logging.DEBUG if debug else getattr(logging, config.level, logging.INFO)
    formatter = _make_formatter(config.json_format)

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_handler = _file_handler(config.log_file)
    if file_handler is not None:
        handlers.append(file_handler)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)

    logging.basicConfig(level=max(level, logging.WARNING), handlers=handlers, force=True)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    return package_logger
