"""
Loguru logging configuration with Sentry integration.

Features:
- Structured JSON logging for production
- Console logging for development
- Correlation ID in all log messages
- Separate moderation log capturing ledger changes and punishments
"""

import sys
from pathlib import Path
from typing import TYPE_CHECKING

from loguru import logger

from core.correlation import get_correlation_id

if TYPE_CHECKING:
    from loguru import Record


def correlation_filter(record: "Record") -> bool:
    """
    Add correlation ID to log record.

    Args:
        record: Loguru log record.

    Returns:
        Always True (filter never drops messages).
    """
    record["extra"]["correlation_id"] = get_correlation_id() or "-"
    return True


def moderation_filter(record: "Record") -> bool:
    """Keep only records bound with ``audit=True`` (ledger and punishment events)."""
    correlation_filter(record)
    return bool(record["extra"].get("audit"))


def configure_logging(environment: str = "development", logs_dir: str = "logs") -> None:
    """
    Configure Loguru for the application.

    Args:
        environment: "development" for console, "production" for JSON.
        logs_dir: Directory for rotating log files.
    """
    # Remove default handler
    logger.remove()

    log_format = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{extra[correlation_id]}</cyan> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    if environment == "development":
        logger.add(
            sys.stderr,
            format=log_format,
            level="DEBUG",
            filter=correlation_filter,
            colorize=True,
        )
    else:
        logger.add(
            sys.stderr,
            format="{message}",
            level="INFO",
            filter=correlation_filter,
            serialize=True,
        )

    Path(logs_dir).mkdir(parents=True, exist_ok=True)

    logger.add(
        f"{logs_dir}/app.log",
        format=log_format if environment == "development" else "{message}",
        level="INFO",
        filter=correlation_filter,
        rotation="10 MB",
        retention="7 days",
        serialize=(environment != "development"),
    )

    # Moderation audit trail: always JSON so it can be replayed/grepped
    logger.add(
        f"{logs_dir}/moderation.log",
        format="{message}",
        level="INFO",
        filter=moderation_filter,
        rotation="10 MB",
        retention="30 days",
        serialize=True,
    )
