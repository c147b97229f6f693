# date_slicer/core/logging_setup.py
from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any

from loguru import logger

LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "[<level>{level:<8}</level>] | "
    "<cyan>{extra[component]:<12}</cyan> | "
    "<white>{name}.{function}:{line}</white> | "
    "<level>{message}</level>"
)

DEFAULT_FILE_LEVEL = "DEBUG"

# Records logged through the bare `logger` still need a component for the format.
logger.configure(extra={"component": "-"})


def _parse_level(level_value: Any) -> str:
    """Accept logging.INFO style ints or level names; fall back to INFO."""
    if isinstance(level_value, int):
        mapping = {
            logging.CRITICAL: "CRITICAL",
            logging.ERROR: "ERROR",
            logging.WARNING: "WARNING",
            logging.INFO: "INFO",
            logging.DEBUG: "DEBUG",
        }
        return mapping.get(level_value, "INFO")

    if isinstance(level_value, str):
        val = level_value.strip().upper()
        if val in ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"):
            return val

    return "INFO"


def setup_logging(
    app_name: str = "date_slicer",
    log_dir: str | Path = "logs",
    log_level: str | int | None = None,
    file_level: str | int | None = None,
) -> Path:
    """
    Colored console sink plus a rotating file sink (10 MB, zip, 20 files kept).
    Levels default to the LOG_LEVEL / LOG_FILE_LEVEL environment variables.
    """
    console_level = _parse_level(log_level if log_level is not None else os.getenv("LOG_LEVEL", "INFO"))
    resolved_file_level = _parse_level(
        file_level if file_level is not None else os.getenv("LOG_FILE_LEVEL", DEFAULT_FILE_LEVEL)
    )

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / f"{app_name}.log"

    logger.remove()
    logger.configure(
        extra={"component": "-"},
        handlers=[
            {
                "sink": sys.stdout,
                "format": LOG_FORMAT,
                "colorize": True,
                "level": console_level,
            },
            {
                "sink": str(log_path),
                "format": LOG_FORMAT,
                "rotation": "10 MB",
                "compression": "zip",
                "retention": 20,
                "colorize": False,
                "level": resolved_file_level,
            },
        ],
    )

    logger.bind(component="logging").info(
        f"[setup_logging] - logger_initialized - app_name={app_name} "
        f"console_level={console_level} file_level={resolved_file_level} log_path={log_path}"
    )
    return log_path


def get_logger(component: str):
    return logger.bind(component=component)


def summarize_for_log(payload: Any, *, max_items: int = 6, max_text: int = 120) -> Any:
    if payload is None:
        return None
    if isinstance(payload, dict):
        items = list(payload.items())[:max_items]
        return {str(k): summarize_for_log(v, max_items=max_items, max_text=max_text) for k, v in items}
    if isinstance(payload, (list, tuple, set)):
        return [summarize_for_log(v, max_items=max_items, max_text=max_text) for v in list(payload)[:max_items]]
    text = str(payload)
    if len(text) > max_text:
        return f"{text[:max_text]}...({len(text)} chars)"
    return text
