"""
Structured logging configuration for the Warden bot.

This module sets up structured logging using the structlog library on top of
stdlib logging, so discord.py and SQLAlchemy records land in the same sinks as
the bot's own event-style log lines. It is configured once from main.py.
"""

import logging
import logging.handlers
import os
import sys
import time
import uuid
from typing import Any, Optional

import structlog
from structlog.contextvars import bind_contextvars, merge_contextvars, unbind_contextvars
from structlog.stdlib import LoggerFactory


def generate_request_id() -> str:
    """Generate a unique request ID.

    Returns:
        A unique request ID string.
    """
    return str(uuid.uuid4())


# Configure standard logging
def configure_stdlib_logging(
    log_level: int = logging.INFO,
    log_file: Optional[str] = None,
    log_dir: str = "logs",
) -> None:
    """Configure standard logging.

    Args:
        log_level: The logging level to use.
        log_file: Optional log file name (without extension) inside ``log_dir``.
        log_dir: Directory the rotating log file is written to.
    """
    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=os.path.join(log_dir, f"{log_file}.log"),
            encoding="utf-8",
            maxBytes=32 * 1024 * 1024,  # 32 MB
            backupCount=10,
        )
        handlers.append(file_handler)

    logging.basicConfig(format="%(message)s", level=log_level, handlers=handlers, force=True)
    logging.getLogger("discord").setLevel(log_level)
    # Engine echo is far too chatty below WARNING
    logging.getLogger("sqlalchemy.engine").setLevel(max(log_level, logging.WARNING))


# Configure structlog
def configure_structlog(log_format: str = "console") -> None:
    """Configure structlog with processors for formatting and output.

    Args:
        log_format: The format to use for log output. Either "json" or "console".
    """
    processors = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            [
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.FUNC_NAME,
                structlog.processors.CallsiteParameter.LINENO,
            ]
        ),
        # Adds request_id and anything else bound by RequestContext
        merge_contextvars,
        structlog.processors.format_exc_info,
    ]

    if log_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        logger_factory=LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def init_logging(
    log_level: int = logging.INFO,
    log_file: Optional[str] = None,
    log_format: str = "console",
) -> structlog.stdlib.BoundLogger:
    """Initialize logging with both stdlib and structlog.

    Args:
        log_level: The logging level to use.
        log_file: Optional log file name. ``None`` logs to stdout only.
        log_format: The format to use for log output. Either "json" or "console".

    Returns:
        A structlog logger instance.
    """
    configure_stdlib_logging(log_level, log_file)
    configure_structlog(log_format)
    return structlog.get_logger("warden")


class RequestContext:
    """Context manager binding a request ID to every log line of one command.

    Example:
        ```python
        async with RequestContext(logger, "report", user_id=interaction.user.id):
            logger.info("report_pipeline_started")
        ```
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger,
        operation_name: str,
        request_id: Optional[str] = None,
        **bindings: Any,
    ):
        self.logger = logger
        self.operation_name = operation_name
        self.request_id = request_id or generate_request_id()
        self.bindings = {"request_id": self.request_id, **bindings}

    def __enter__(self) -> "RequestContext":
        bind_contextvars(**self.bindings)
        self.logger.debug(f"{self.operation_name}_started")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if exc_type is None:
            self.logger.debug(f"{self.operation_name}_completed")
        else:
            self.logger.error(
                f"{self.operation_name}_failed",
                error=str(exc_val),
                error_type=exc_type.__name__,
            )
        unbind_contextvars(*self.bindings)

    async def __aenter__(self) -> "RequestContext":
        return self.__enter__()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.__exit__(exc_type, exc_val, exc_tb)


class TimingContext:
    """Context manager for timing blocks of code.

    Example:
        ```python
        async with TimingContext(logger, "screenshot_scan") as ctx:
            verdict = await scanner.scan(data, filename)
            ctx.add_info(positives=verdict.positives)
        ```
    """

    def __init__(self, logger: structlog.stdlib.BoundLogger, operation_name: str):
        self.logger = logger
        self.operation_name = operation_name
        self.start_time = None
        self.additional_info = {}

    def add_info(self, **kwargs: Any) -> None:
        """Add additional information to be logged.

        Args:
            **kwargs: Key-value pairs to include in the log.
        """
        self.additional_info.update(kwargs)

    async def __aenter__(self) -> "TimingContext":
        self.start_time = time.monotonic()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        duration = time.monotonic() - self.start_time

        if exc_type is None:
            self.logger.info(
                f"{self.operation_name}_completed",
                duration=round(duration, 3),
                **self.additional_info,
            )
        else:
            self.logger.error(
                f"{self.operation_name}_failed",
                duration=round(duration, 3),
                error=str(exc_val),
                error_type=exc_type.__name__,
                **self.additional_info,
            )
