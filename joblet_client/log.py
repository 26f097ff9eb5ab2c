"""Structured logging for the Joblet client.

The library only emits events; applications opt in to rendering with
``configure_logging``.
"""

import structlog


def configure_logging(min_level: int = 0) -> None:
    """Configure structlog with JSON rendering and ISO timestamps."""
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(min_level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )


def get_logger(name: str):
    """Return a logger bound to the emitting module."""
    return structlog.get_logger(logger_name=name)
