"""
Logging setup.

Module: logging_setup.py
Configures loguru sinks for the API and the job processes.
"""

import sys

from loguru import logger

from app.config.settings import settings


def setup_logging(component: str = "api", log_file: str = "logs/assignx.log") -> None:
    """
    Configure logger with stderr output and a rotating file sink.

    Args:
        component: Process name bound into every record
        log_file: File sink path
    """
    logger.remove()
    logger.configure(extra={"component": component})

    logger.add(
        sys.stderr,
        level=settings.log_level,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
            "<level>{level: <8}</level> | {extra[component]} | "
            "<cyan>{name}</cyan>:<cyan>{line}</cyan> - {message}"
        ),
    )
    logger.add(
        log_file,
        rotation="1 day",
        retention="7 days",
        level=settings.log_level,
        encoding="utf-8",
        enqueue=True,
    )

    logger.info(f"Starting AssignX {component} ({settings.environment})...")
