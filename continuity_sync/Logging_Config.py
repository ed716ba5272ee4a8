# Logging_Config.py
# Description: Loguru sinks for the sync engine, plus forwarding of stdlib logging into loguru
#
# Imports
import json
import logging
import os
import sys
from datetime import datetime
from typing import Any, Optional
#
# 3rd-Party Imports
from loguru import logger
#
# Local Imports
from continuity_sync.config import get_sync_setting
# Registers the METRIC level used by the metrics sink below
from continuity_sync.Metrics import metrics_logger  # noqa: F401
#
############################################################################################################
#
# Functions:

DEFAULT_APP_LOG_PATH = '~/.local/share/continuity_sync/Logs/continuity_sync.log'
DEFAULT_METRICS_LOG_PATH = '~/.local/share/continuity_sync/Logs/continuity_sync_metrics.json'
# Default for the path arguments of setup_logger: read the path from the [logging] section
_FROM_CONFIG = object()


def _ensure_log_dir_exists(file_path: str) -> str:
    """Ensure the directory for the log file exists and return the expanded path."""
    expanded_path = os.path.expanduser(file_path)
    log_dir = os.path.dirname(expanded_path)
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
    return expanded_path


def json_formatter(record) -> str:
    """Flattens a METRIC record (see Metrics/metrics_logger.py) into one JSON line."""
    try:
        extra = record["extra"]

        def serialize(value):
            if isinstance(value, datetime):
                return value.isoformat()
            return value

        log_record = {
            "time": record["time"].strftime("%Y-%m-%d %H:%M:%S.%f"),
            "levelname": record["level"].name,
            "name": record["name"],
            "message": record["message"],
            "event": extra.get("event"),
            "type": extra.get("type"),
            "value": extra.get("value"),
            "labels": extra.get("labels"),
            "timestamp": serialize(extra.get("timestamp")),
        }
        return json.dumps(log_record)
    except (TypeError, ValueError) as e:
        return json.dumps({
            "error": f"Log formatting failed: {str(e)}",
            "original_message": record.get("message", "")
        })


class InterceptHandler(logging.Handler):
    """Routes records from the standard logging module (httpx, sqlite helpers) into loguru."""

    def emit(self, record: logging.LogRecord):
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def intercept_standard_logging(level: int = logging.INFO):
    logging.basicConfig(handlers=[InterceptHandler()], level=level, force=True)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def setup_logger(
    log_level: Optional[str] = None,
    console_format: str = "{time:YYYY-MM-DD HH:mm:ss} - {level} - {message}",
    app_log_path: Any = _FROM_CONFIG,
    metrics_log_path: Any = _FROM_CONFIG,
):
    """
    Sets up Loguru sinks for console, a standard application log, and a JSON metrics log.

    Args:
        log_level (str): The minimum log level to output. Defaults to [logging].log_level from the config.
        console_format (str): The format string for console output.
        app_log_path (Optional[str]): Path for the standard text log file. Defaults to [logging].app_log_path.
            If None, this sink is disabled.
        metrics_log_path (Optional[str]): Path for the structured JSON metrics log. Defaults to
            [logging].metrics_log_path. If None, this sink is disabled.

    Returns:
        The configured logger instance.
    """
    level = (log_level or get_sync_setting("logging", "log_level", "INFO")).upper()
    if app_log_path is _FROM_CONFIG:
        app_log_path = get_sync_setting("logging", "app_log_path", DEFAULT_APP_LOG_PATH)
    if metrics_log_path is _FROM_CONFIG:
        metrics_log_path = get_sync_setting("logging", "metrics_log_path", DEFAULT_METRICS_LOG_PATH)
    logger.remove()

    logger.add(sys.stderr, level=level, format=console_format)

    if app_log_path:
        path = _ensure_log_dir_exists(app_log_path)
        logger.add(
            path,
            level=level,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
            rotation="10 MB",
            retention="7 days",
            enqueue=True,
            backtrace=True,
            diagnose=False,
        )
        logger.info(f"Application logs will be written to: {path}")

    if metrics_log_path:
        path = _ensure_log_dir_exists(metrics_log_path)
        logger.add(
            path,
            level="METRIC",
            # One JSON object per line; braces escaped because loguru treats the result as a template
            format=lambda record: json_formatter(record).replace("{", "{{").replace("}", "}}") + "\n",
            filter=lambda record: record["level"].name == "METRIC",
            rotation="10 MB",
            retention=5,
            enqueue=True,
        )
        logger.info(f"JSON metrics logs will be written to: {path}")

    intercept_standard_logging()
    return logger

#
# End of Logging_Config.py
############################################################################################################
