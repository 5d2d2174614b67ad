import json
import logging
import sys
from functools import lru_cache
from typing import Any, Dict, Optional

from luckycoins.infra.config.settings import settings

# Attributes present on every LogRecord; anything else came in through `extra`
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}

# Extra keys whose values never reach the log stream
REDACTED_KEYS = frozenset({"password", "token", "session_token", "admin_session_token", "seed"})
REDACTED = "[redacted]"


def _scrub(value: Any) -> Any:
    if isinstance(value, dict):
        return {k: REDACTED if k in REDACTED_KEYS else _scrub(v) for k, v in value.items()}
    return value


class JsonFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message and extras"""

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
        }

        message = record.getMessage()
        if message.startswith("{"):
            try:
                entry.update(json.loads(message))
            except json.JSONDecodeError:
                entry["message"] = message
        else:
            entry["message"] = message

        for key, value in record.__dict__.items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            entry[key] = REDACTED if key in REDACTED_KEYS else _scrub(value)

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


class Logger:
    """Thin wrapper that takes structured context as an `extra` dict"""

    def __init__(self, name: str = "luckycoins"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG if settings.DEBUG else logging.INFO)
        self.logger.propagate = True

        if not self.logger.handlers:
            handler = logging.StreamHandler(sys.stdout)
            handler.setFormatter(JsonFormatter())
            self.logger.addHandler(handler)

    def _log(
        self,
        level: int,
        message: Any,
        extra: Optional[Dict[str, Any]] = None,
        exc_info: bool = False
    ) -> None:
        if isinstance(message, dict):
            message = json.dumps(message, default=str)
        self.logger.log(level, message, extra=extra or {}, exc_info=exc_info)

    def info(self, message: Any, extra: Dict[str, Any] = None) -> None:
        self._log(logging.INFO, message, extra)

    def error(self, message: Any, extra: Dict[str, Any] = None, exc_info: bool = False) -> None:
        self._log(logging.ERROR, message, extra, exc_info)

    def warning(self, message: Any, extra: Dict[str, Any] = None) -> None:
        self._log(logging.WARNING, message, extra)

    def debug(self, message: Any, extra: Dict[str, Any] = None) -> None:
        self._log(logging.DEBUG, message, extra)


logger = Logger()


@lru_cache()
def get_logger(name: str = None) -> Logger:
    """Named logger, or the package logger when no name is given"""
    return Logger(name) if name else logger
