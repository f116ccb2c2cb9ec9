"""
Structured logging for the circular poller using structlog.
Provides JSON or console output and a cycle-scoped logger for sync runs.
"""

import logging
import sys
from pathlib import Path
from typing import Optional, Union

import structlog
from structlog.stdlib import LoggerFactory


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "json",
    log_file: Optional[Union[str, Path]] = None,
    debug: bool = False
) -> None:
    """
    Set up structured logging with configurable output formats.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Output format (json or console)
        log_file: Optional log file path
        debug: Add call-site information to every event
    """
    level = getattr(logging, log_level.upper())

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=level,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if debug:
        processors.append(structlog.processors.CallsiteParameterAdder())

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    # File logs always receive the rendered event line
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter('%(message)s'))
        logging.getLogger().addHandler(file_handler)

    logger = structlog.get_logger(__name__)
    logger.info(
        "Logging system initialized",
        level=log_level,
        format=log_format,
        file=str(log_file) if log_file else None,
        debug=debug
    )


class SyncLogger:
    """
    Logger for sync cycles with context management.
    """

    def __init__(self, name: str = "sync"):
        self.logger = structlog.get_logger(name)
        self.context = {}

    def bind_context(self, **kwargs) -> 'SyncLogger':
        """
        Bind context variables to the logger.

        Args:
            **kwargs: Context variables to bind

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    def log_cycle_start(self, snapshot_size: int) -> None:
        """Log sync cycle start."""
        self.logger.info(
            "Sync cycle started",
            snapshot_size=snapshot_size,
            **self.context
        )

    def log_diff(self, old_size: int, new_size: int, new_items: int, must_replace: bool) -> None:
        """Log the outcome of the comparison step."""
        self.logger.info(
            "Circular list compared",
            old_size=old_size,
            new_size=new_size,
            new_items=new_items,
            must_replace=must_replace,
            **self.context
        )

    def log_cycle_complete(self, outcome: str, duration_seconds: float, new_items: int = 0) -> None:
        """Log sync cycle completion."""
        self.logger.info(
            "Sync cycle completed",
            outcome=outcome,
            new_items=new_items,
            duration_seconds=duration_seconds,
            **self.context
        )

    def log_fetch_failed(self, error: str) -> None:
        """Log a transient fetch failure; the scheduler will retry."""
        self.logger.warning(
            "Fetching circulars failed, cycle will be retried",
            error=error,
            **self.context
        )

    def log_emission_failed(self, error: str) -> None:
        """Log a notification delivery failure."""
        self.logger.error(
            "Notification emission failed",
            error=error,
            **self.context
        )

    def log_store_operation(self, operation: str, success: bool, count: Optional[int] = None) -> None:
        """Log snapshot store operation."""
        level = "debug" if success else "error"
        getattr(self.logger, level)(
            "Snapshot operation",
            operation=operation,
            success=success,
            count=count,
            **self.context
        )
