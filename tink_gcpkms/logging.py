"""Loguru logging configuration for the Tink GCP KMS integration.

The package logs through loguru but stays silent until the application opts
in, either with :func:`configure_logging` or ``logger.enable("tink_gcpkms")``.
Payload bytes (plaintext, ciphertext, data, signatures) are never logged.
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

from loguru import logger

from tink_gcpkms.config import get_settings

PACKAGE_NAME = "tink_gcpkms"

_CONTEXT_FIELDS = ("key_name", "operation")


def serialize_log(record: dict[str, Any]) -> str:
    """Serialize log record to JSON for structured logging.

    Args:
        record: Log record from loguru

    Returns:
        JSON string
    """
    subset = {
        "timestamp": record["time"].isoformat(),
        "level": record["level"].name,
        "logger": record["name"],
        "function": record["function"],
        "line": record["line"],
        "message": record["message"],
    }

    for field in _CONTEXT_FIELDS:
        if field in record["extra"]:
            subset[field] = record["extra"][field]

    if record["exception"]:
        subset["exception"] = {
            "type": record["exception"].type.__name__,
            "value": str(record["exception"].value),
        }

    subset["extra"] = {
        k: v
        for k, v in record["extra"].items()
        if k not in _CONTEXT_FIELDS and k != "serialized"
    }

    return json.dumps(subset, default=str)


def _format_structured(record: dict[str, Any]) -> str:
    # loguru treats the returned string as a format template.
    record["extra"]["serialized"] = serialize_log(record)
    return "{extra[serialized]}\n"


def configure_logging(
    level: str | None = None,
    structured: bool | None = None,
    log_file: Path | None = None,
) -> None:
    """Configure loguru sinks and enable logging for this package.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR); defaults to
            ``TINK_GCPKMS_LOG_LEVEL``
        structured: Use JSON structured logging; defaults to
            ``TINK_GCPKMS_STRUCTURED_LOGGING``
        log_file: Optional file path for logs
    """
    settings = get_settings()
    if level is None:
        level = settings.log_level
    if structured is None:
        structured = settings.structured_logging

    logger.remove()

    if structured:
        logger.add(sys.stderr, format=_format_structured, level=level, backtrace=False)
    else:
        logger.add(
            sys.stderr,
            format=(
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
                "<level>{level: <8}</level> | "
                "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
                "<level>{message}</level> | "
                "{extra}"
            ),
            level=level,
            colorize=True,
        )

    if log_file:
        logger.add(
            log_file,
            format=_format_structured if structured else "{time} | {level} | {message} | {extra}",
            level=level,
            rotation="100 MB",
            retention="30 days",
        )

    logger.enable(PACKAGE_NAME)


def get_key_logger(key_name: str, operation: str | None = None) -> Any:
    """Get a logger with the KMS key name bound.

    Args:
        key_name: KMS key or key version name
        operation: Optional operation name (encrypt, decrypt, sign, ...)

    Returns:
        Logger with key context bound
    """
    bound_logger = logger.bind(key_name=key_name)
    if operation:
        bound_logger = bound_logger.bind(operation=operation)
    return bound_logger


def log_integrity_failure(key_name: str, operation: str, check: str, message: str) -> None:
    """Log a rejected KMS response with standardized fields.

    Args:
        key_name: KMS key name of the request
        operation: RPC whose response was rejected
        check: Name of the failed integrity check
        message: Error message
    """
    logger.bind(
        key_name=key_name,
        operation=operation,
        check=check,
        integrity_failure=True,
    ).warning(f"Integrity check {check} failed: {message}")
