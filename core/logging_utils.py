"""
Core Module - Logging Setup.

Structured logging for the sync worker. Output goes to stdout in
either JSON or pipe-separated text form.
"""

import json
import logging
import sys
from typing import Optional

from core.constants import SYSTEM_NAME


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    worker_id: Optional[str] = None,
) -> logging.Logger:
    """
    Set up structured logging.

    Args:
        level: Log level
        log_format: Output format (json or text)
        worker_id: Identifier stamped on every line

    Returns:
        Configured logger
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if log_format == "json":
        formatter = logging.Formatter(
            json.dumps({
                "timestamp": "%(asctime)s",
                "level": "%(levelname)s",
                "logger": "%(name)s",
                "message": "%(message)s",
                "worker_id": worker_id or "",
            })
        )
    else:
        formatter = logging.Formatter(
            f"%(asctime)s | %(levelname)-8s | %(name)s | {worker_id or ''} | %(message)s"
        )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers = [handler]

    return logging.getLogger(SYSTEM_NAME)
