"""
Logging Configuration for automaton-core
Routes the package's structlog events to a JSON trace file and the console.

Nothing here runs on import; applications that embed the library call
`setup_logging()` once. Only the `automaton_core` logger is touched, so the
host application's own handlers stay as they are.
"""

import logging
import logging.handlers
from pathlib import Path
from typing import Any, Optional
import structlog

PACKAGE_LOGGER = "automaton_core"


def setup_logging(
    log_dir: Optional[str] = None,
    log_level: str = "INFO",
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
    console_output: bool = True,
) -> logging.Logger:
    """
    Configure structured logging for conversion and simulation traces.

    Args:
        log_dir: Directory for automaton.log. No file is written when None
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        max_bytes: Max size of the trace file before rotation
        backup_count: Number of rotated files to keep
        console_output: Whether to also output to console

    Returns:
        The configured package logger.
    """
    level = getattr(logging, log_level.upper())
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    package_logger.setLevel(level)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()
    package_logger.propagate = False

    shared_chain = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path / "automaton.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
            processor=structlog.processors.JSONRenderer(),
            foreign_pre_chain=shared_chain,
        ))
        package_logger.addHandler(file_handler)

    if console_output:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(structlog.stdlib.ProcessorFormatter(
            processor=structlog.dev.ConsoleRenderer(colors=False),
            foreign_pre_chain=shared_chain,
        ))
        package_logger.addHandler(console_handler)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            *shared_chain,
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return package_logger


def get_logger(name: Optional[str] = None, **context: Any) -> structlog.stdlib.BoundLogger:
    """Get a logger under the package logger, with `context` bound to every event."""
    if name is None:
        name = PACKAGE_LOGGER
    elif not name.startswith(PACKAGE_LOGGER):
        name = f"{PACKAGE_LOGGER}.{name}"
    return structlog.get_logger(name).bind(**context)
