"""
ReviewDesk Logging Configuration
Structured logging with context for the API, the publishing worker and outbound calls
"""
import logging
import sys
import json
import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from functools import wraps
import time
import os

# ============================================================
# LOG LEVELS
# ============================================================

LOG_LEVEL = os.environ.get("REVIEWDESK_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = os.environ.get("REVIEWDESK_LOG_FORMAT", "json")  # json or text
ROOT_NAME = "reviewdesk"

# ============================================================
# FORMATTERS
# ============================================================

class StructuredFormatter(logging.Formatter):
    """One JSON object per line"""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_data.update(getattr(record, "context", {}))
        return json.dumps(log_data, default=str)


class TextFormatter(logging.Formatter):
    """Readable coloured lines for local development"""

    COLORS = {
        "DEBUG": "\033[36m",     # Cyan
        "INFO": "\033[32m",      # Green
        "WARNING": "\033[33m",   # Yellow
        "ERROR": "\033[31m",     # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        timestamp = datetime.now(timezone.utc).strftime("%H:%M:%S")
        line = f"{color}[{timestamp}] [{record.levelname}]{self.RESET} {record.getMessage()}"

        context = getattr(record, "context", {})
        pairs = " ".join(f"{k}={v}" for k, v in context.items() if k != "traceback")
        if pairs:
            line += f" \033[90m({pairs}){self.RESET}"
        if context.get("traceback") and record.levelno >= logging.ERROR:
            line += "\n" + context["traceback"]
        return line


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> None:
    """(Re)attach the single stdout handler on the ``reviewdesk`` root logger."""
    root = logging.getLogger(ROOT_NAME)
    root.setLevel(getattr(logging, (level or LOG_LEVEL).upper(), logging.INFO))
    root.propagate = False

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(StructuredFormatter() if (fmt or LOG_FORMAT) == "json" else TextFormatter())
    root.handlers = [handler]


# ============================================================
# STRUCTURED LOGGING
# ============================================================

class StructuredLogger:
    """Logger taking context as keyword arguments.

    ``bind()`` returns a child carrying fixed context (tenant, item id) that is
    merged into every record it emits.
    """

    def __init__(self, name: str, context: Optional[Dict[str, Any]] = None):
        self.name = name
        self.logger = logging.getLogger(name)
        self.context = dict(context or {})

    def bind(self, **context) -> "StructuredLogger":
        return StructuredLogger(self.name, {**self.context, **context})

    def _log(self, level: int, message: str, **context):
        if self.logger.isEnabledFor(level):
            self.logger.log(level, message, extra={"context": {**self.context, **context}})

    @staticmethod
    def _with_error(error: Optional[Exception], context: Dict[str, Any]) -> Dict[str, Any]:
        if error is not None:
            context["error_type"] = type(error).__name__
            context["error_message"] = str(error)
            context["traceback"] = "".join(
                traceback.format_exception(type(error), error, error.__traceback__)
            )
        return context

    def debug(self, message: str, **context):
        self._log(logging.DEBUG, message, **context)

    def info(self, message: str, **context):
        self._log(logging.INFO, message, **context)

    def warning(self, message: str, **context):
        self._log(logging.WARNING, message, **context)

    def error(self, message: str, error: Optional[Exception] = None, **context):
        self._log(logging.ERROR, message, **self._with_error(error, context))

    def critical(self, message: str, error: Optional[Exception] = None, **context):
        self._log(logging.CRITICAL, message, **self._with_error(error, context))


# ============================================================
# OUTBOUND CALL TIMING
# ============================================================

def timed(logger: StructuredLogger):
    """Log the duration of an outbound call; failures are logged and re-raised"""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.warning(
                    f"{func.__qualname__} failed",
                    function=func.__qualname__,
                    error_type=type(e).__name__,
                    error_message=str(e),
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                )
                raise
            logger.debug(
                f"{func.__qualname__} completed",
                function=func.__qualname__,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return result

        return wrapper

    return decorator


# ============================================================
# LOGGER INSTANCES
# ============================================================

configure_logging()

api_logger = StructuredLogger("reviewdesk.api")
worker_logger = StructuredLogger("reviewdesk.worker")
publisher_logger = StructuredLogger("reviewdesk.publisher")
db_logger = StructuredLogger("reviewdesk.db")


def get_logger(name: str) -> StructuredLogger:
    """Get a logger under the reviewdesk namespace"""
    return StructuredLogger(f"{ROOT_NAME}.{name}")
