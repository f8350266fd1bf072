"""
Logging system using structlog.
Provides structured logging with different output formats and levels,
plus an audit logger for authentication and authorization events.
"""

import logging
import sys
from pathlib import Path
from typing import Iterable, Optional, Union
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
        debug: Enable debug mode for more verbose logging
    """

    # Configure standard library logging
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
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
        processors.append(
            structlog.processors.CallsiteParameterAdder(
                {
                    structlog.processors.CallsiteParameter.MODULE,
                    structlog.processors.CallsiteParameter.LINENO,
                }
            )
        )

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

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(getattr(logging, log_level.upper()))
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


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Configured structlog logger
    """
    return structlog.get_logger(name)


class AuditLogger:
    """
    Logger for security-relevant events.
    """

    def __init__(self, name: str = "audit"):
        self.logger = structlog.get_logger(name)

    def log_member_registered(self, username: str, roles: Iterable[str]) -> None:
        """Log a new member registration."""
        self.logger.info(
            "Member registered",
            username=username,
            roles=sorted(roles)
        )

    def log_login(self, username: str, success: bool, reason: Optional[str] = None) -> None:
        """Log a login attempt."""
        level = "info" if success else "warning"
        getattr(self.logger, level)(
            "Login attempt",
            username=username,
            success=success,
            reason=reason
        )

    def log_book_mutation(self, operation: str, book_id: str, identity: str) -> None:
        """Log a committed book registration, update or delete."""
        self.logger.info(
            "Book mutated",
            operation=operation,
            book_id=book_id,
            identity=identity
        )

    def log_access_denied(self, operation: str, book_id: str, identity: str, owner: str) -> None:
        """Log a failed ownership or permission check."""
        self.logger.warning(
            "Access denied",
            operation=operation,
            book_id=book_id,
            identity=identity,
            owner=owner
        )
