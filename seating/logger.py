"""Logging setup for the seating service."""

import logging
import os

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

_configured = False


def configure_logging(level: str = LOG_LEVEL) -> None:
    """
    Configure console logging for the service.

    Safe to call more than once; the handler is only attached the first time.
    """
    global _configured
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    if _configured:
        return

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)
    _configured = True
