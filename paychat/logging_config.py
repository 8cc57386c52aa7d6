"""
Structured logging setup for paychat
"""

import logging

import structlog


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """
    Configure structlog once at process start.

    Args:
        level: Minimum level name (DEBUG, INFO, WARNING, ERROR)
        fmt: "text" for the console renderer, "json" for one JSON object per line
    """
    renderer = (
        structlog.processors.JSONRenderer()
        if fmt == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )
