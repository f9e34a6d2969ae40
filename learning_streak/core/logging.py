import logging
import logging.handlers
import sys
import json
import time
from datetime import datetime, timezone
from pathlib import Path
from contextlib import contextmanager

from learning_streak.core.config import settings

# Remote store calls slower than these are worth a look
SLOW_CALL_MS = 1000
VERY_SLOW_CALL_MS = 5000


class JSONLogFormatter(logging.Formatter):
    """One JSON object per line, for production consoles and log files"""

    timing_fields = ("operation", "store", "elapsed_ms")

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }

        for field in self.timing_fields:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info).splitlines()

        return json.dumps(entry, default=str)


class PerformanceLogger:
    """Times calls against the streak stores"""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    @contextmanager
    def measure_time(self, operation: str, store: str = "firestore"):
        started = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = round((time.perf_counter() - started) * 1000, 2)
            extra = {"operation": operation, "store": store, "elapsed_ms": elapsed_ms}

            if elapsed_ms > VERY_SLOW_CALL_MS:
                level = logging.ERROR
            elif elapsed_ms > SLOW_CALL_MS:
                level = logging.WARNING
            else:
                level = logging.DEBUG
            self.logger.log(level, f"{store} {operation} took {elapsed_ms}ms", extra=extra)


def _rotating_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=10 * 1024 * 1024, backupCount=5)
    handler.setLevel(level)
    handler.setFormatter(JSONLogFormatter())
    return handler


def setup_logging():
    """Configure the root logger: console always, rotating files when LOG_TO_FILE is set"""
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.LOG_LEVEL, logging.INFO))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console = logging.StreamHandler(sys.stdout)
    if settings.ENVIRONMENT == "development":
        console.setFormatter(logging.Formatter(settings.LOG_FORMAT))
    else:
        console.setFormatter(JSONLogFormatter())
    root_logger.addHandler(console)

    if settings.LOG_TO_FILE:
        log_dir = Path(settings.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        root_logger.addHandler(_rotating_handler(log_dir / "streak.log", logging.DEBUG))
        root_logger.addHandler(_rotating_handler(log_dir / "errors.log", logging.ERROR))

    # firebase-admin and its transport are chatty at INFO
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def get_performance_logger(name: str) -> PerformanceLogger:
    return PerformanceLogger(get_logger(name))
