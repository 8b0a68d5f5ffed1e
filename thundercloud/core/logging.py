"""
Logging configuration for Thunder Cloud Service
"""

import logging
import sys
from typing import Optional

TOKEN_DISPLAY_LENGTH = 10


def get_logger(name: str) -> logging.Logger:
    """Get a configured logger instance."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        # Create console handler
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(logging.INFO)

        # Create formatter
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)

        # Add handler to logger
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)

    return logger


def format_token(token: Optional[str]) -> str:
    """Shorten a push token for log output."""
    if not token:
        return "N/A"
    return f"{token[:TOKEN_DISPLAY_LENGTH]}..."
