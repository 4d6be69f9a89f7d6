"""
Structured logging for the file exchange pipeline (python-json-logger).

Every module logs through a child of the ``file_exchange`` logger, which
owns the only handler. Pipeline log lines carry file_id, vendor_id and
correlation_id in ``extra`` so one file can be traced through every stage.
"""
import logging
import os
import sys
import time

from pythonjsonlogger.json import JsonFormatter

ROOT_LOGGER_NAME = "file_exchange"

JSON_FORMAT = "%(timestamp)s %(level)s %(logger)s %(module)s %(function)s %(message)s"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(funcName)s - %(message)s"


class CustomJsonFormatter(JsonFormatter):
    """
    JSON formatter with stable top-level keys.

    Adds: timestamp, level, logger, module, function, process_id
    """

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record.setdefault("timestamp", None)
        if not log_record["timestamp"]:
            log_record["timestamp"] = self.formatTime(record, self.datefmt)

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["module"] = record.module
        log_record["function"] = record.funcName
        log_record["process_id"] = record.process


def _level(name: str | None) -> int:
    level = logging.getLevelName((name or "INFO").upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logger(
    name: str = ROOT_LOGGER_NAME,
    level: str | None = None,
    format_type: str | None = None,
) -> logging.Logger:
    """
    (Re)configure a logger with a single stdout handler.

    Args:
        name: Logger name
        level: Log level name (defaults to env var LOG_LEVEL or INFO)
        format_type: "json" or "text" (defaults to env var LOG_FORMAT or json)

    Returns:
        Configured logger instance
    """
    log_level = _level(level or os.getenv("LOG_LEVEL"))
    format_type = (format_type or os.getenv("LOG_FORMAT", "json")).lower()

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if format_type == "json":
        handler.setFormatter(CustomJsonFormatter(fmt=JSON_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S"))
    else:
        handler.setFormatter(logging.Formatter(fmt=TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))

    logger = logging.getLogger(name)
    logger.setLevel(log_level)
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(name: str = ROOT_LOGGER_NAME) -> logging.Logger:
    """
    Logger for a module.

    Names below ``file_exchange`` propagate to the package logger, which is
    configured from the environment on first use. Other names get their own
    handler.
    """
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if not root.handlers:
        setup_logger(ROOT_LOGGER_NAME)

    logger = logging.getLogger(name)
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logger
    return logger if logger.handlers else setup_logger(name)


def file_context(event) -> dict:
    """Logging ``extra`` fields identifying a file event."""
    return {
        "file_id": event.file_id,
        "vendor_id": event.vendor_id,
        "correlation_id": event.correlation_id,
    }


class log_operation:
    """
    Logs start, completion and failure of a block with its duration.

    Usage:
        with log_operation("Ensuring file_audit schema", logger=logger):
            ...
    """

    def __init__(self, operation_name: str, logger: logging.Logger | None = None, **extra_fields):
        self.operation_name = operation_name
        self.logger = logger or get_logger()
        self.extra_fields = extra_fields
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.monotonic()
        self.logger.debug(f"Starting: {self.operation_name}", extra={"operation": self.operation_name, **self.extra_fields})
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        extra = {
            "operation": self.operation_name,
            "duration_seconds": round(time.monotonic() - self.start_time, 3),
            **self.extra_fields,
        }
        if exc_type is None:
            self.logger.info(f"Completed: {self.operation_name}", extra={**extra, "status": "success"})
        else:
            self.logger.error(
                f"Failed: {self.operation_name}",
                extra={**extra, "status": "error", "error_type": exc_type.__name__, "error_message": str(exc_val)},
            )
        return False
