"""
Structured Logging Module
=========================

Provides structured logging using structlog with colored console output for
interactive runs, JSON output for log aggregation, and a plain-text log file
per run.

Usage:
    from browser_agent.utils.logger import get_logger

    logger = get_logger(__name__)
    logger.info("Executing action", action_type="click", x=10, y=20)

Each run also gets a :class:`RunLog`, the explicit logging context that owns
the run's output directory, its log file and its screenshot artifacts:

    with RunLog.create("./outputs") as run_log:
        run_log.save_screenshot(png_bytes)
"""

import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Optional, Union

import structlog
from structlog.types import Processor

from browser_agent import __version__

LOG_FILE_NAME = "cua-test.log"
RUN_DIR_PREFIX = "cua-test"


def add_app_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """
    Add application context to log entries.

    Args:
        logger: The wrapped logger object.
        method_name: The name of the log method called.
        event_dict: The event dictionary to process.

    Returns:
        The modified event dictionary.
    """
    event_dict["app"] = "browser-agent"
    event_dict["version"] = __version__
    return event_dict


def _shared_processors() -> list[Processor]:
    """Processors applied to every entry, from structlog and stdlib alike."""
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
        add_app_context,
    ]


def _formatter(renderer: Processor) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_shared_processors(),
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )


def setup_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """
    Configure structured logging for the application.

    Sets up structlog on top of the standard library so that a run log file
    can be attached later as an extra handler:
    - Interactive: Colored console output with pretty printing
    - Aggregation: JSON output on stdout

    This should be called once at application startup.

    Args:
        level: Console log level name (DEBUG, INFO, WARNING, ERROR).
        json_logs: Emit JSON lines instead of colored console output.
    """
    if json_logs:
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(
            colors=True,
            exception_formatter=structlog.dev.rich_traceback,
        )

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(_formatter(renderer))
    console.setLevel(getattr(logging, level.upper()))

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.addHandler(console)
    # The run log file records everything; the console handler filters.
    root.setLevel(logging.DEBUG)

    # Reduce noise from common libraries
    logging.getLogger("aiohttp").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """
    Get a structured logger instance.

    Args:
        name: The name for the logger, typically __name__.

    Returns:
        A bound structlog logger instance.

    Example:
        logger = get_logger(__name__)
        logger.info("Instruction completed", rounds=3)
    """
    return structlog.get_logger(name)


class LogContext:
    """
    Context manager for adding temporary context to logs.

    Usage:
        with LogContext(instruction=2):
            logger.info("Processing")  # Will include instruction=2
    """

    def __init__(self, **kwargs: Any) -> None:
        """
        Initialize log context.

        Args:
            **kwargs: Key-value pairs to add to log context.
        """
        self.context = kwargs
        self._token: Any = None

    def __enter__(self) -> "LogContext":
        """Enter the context, binding variables."""
        self._token = structlog.contextvars.bind_contextvars(**self.context)
        return self

    def __exit__(self, *args: Any) -> None:
        """Exit the context, unbinding variables."""
        structlog.contextvars.unbind_contextvars(*self.context.keys())


class RunLog:
    """
    Logging context for a single agent run.

    Owns the run's output directory, the plain-text log file handler and the
    screenshot artifacts written during the run. Lifecycle: create with a
    target directory, ``open()`` to start writing the log file, emit entries
    through the usual module loggers, ``close()`` to flush and detach.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        """
        Initialize the run log.

        Args:
            path: Directory that receives the log file and artifacts.
        """
        self.path = Path(path)
        self.log_file = self.path / LOG_FILE_NAME
        self.screenshot_count = 0
        self._handler: Optional[logging.Handler] = None

    @classmethod
    def create(
        cls,
        base_dir: Union[str, Path],
        prefix: str = RUN_DIR_PREFIX,
    ) -> "RunLog":
        """
        Create a timestamped run directory under ``base_dir``.

        Args:
            base_dir: Parent directory for all runs.
            prefix: Run directory name prefix.

        Returns:
            RunLog bound to ``<base_dir>/<prefix>-<timestamp>``.
        """
        stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
        path = Path(base_dir) / f"{prefix}-{stamp}"
        path.mkdir(parents=True, exist_ok=True)
        return cls(path)

    @property
    def is_open(self) -> bool:
        """Whether the log file handler is attached."""
        return self._handler is not None

    def open(self) -> "RunLog":
        """Attach the log file handler to the root logger."""
        if self._handler is not None:
            return self
        self.path.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(self.log_file, encoding="utf-8")
        handler.setFormatter(
            _formatter(structlog.dev.ConsoleRenderer(colors=False))
        )
        handler.setLevel(logging.DEBUG)
        logging.getLogger().addHandler(handler)
        self._handler = handler
        return self

    def save_screenshot(self, image: bytes) -> Path:
        """
        Write a screenshot artifact into the run directory.

        Args:
            image: Raw PNG bytes.

        Returns:
            Path of the written file.
        """
        self.screenshot_count += 1
        millis = int(time.time() * 1000)
        target = self.path / f"screenshot-{self.screenshot_count:04d}-{millis}.png"
        target.write_bytes(image)
        return target

    def close(self) -> None:
        """Flush and detach the log file handler."""
        if self._handler is None:
            return
        logging.getLogger().removeHandler(self._handler)
        self._handler.flush()
        self._handler.close()
        self._handler = None

    def __enter__(self) -> "RunLog":
        return self.open()

    def __exit__(self, *args: Any) -> None:
        self.close()
