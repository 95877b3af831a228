"""Logging configuration for the resource reconciler.

Provides configurable logging with:
- File-based logging with rotation
- Console output for real-time debugging
- Performance timing for remote calls and poll loops

Environment Variables:
    RECONCILER_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
    RECONCILER_LOG_FILE: Path to log file (default: ~/.reconciler/reconciler.log)
    RECONCILER_LOG_MAX_SIZE: Max log file size in MB (default: 10)
    RECONCILER_LOG_BACKUPS: Number of backup files to keep (default: 5)

Usage:
    from resource_reconciler.utils.logging_config import setup_logging, timed_section

    setup_logging()  # Call once at startup

    async with timed_section("create", resource_id=arn):
        ...
"""
import inspect
import functools
import logging
import os
import time
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Callable, Optional

# Performance logger - separate from main logger for easy filtering
perf_logger = logging.getLogger("reconciler.perf")
main_logger = logging.getLogger("reconciler")

_PACKAGE_LOGGER = "resource_reconciler"


def get_log_level() -> int:
    """Get log level from environment."""
    level_str = os.environ.get("RECONCILER_LOG_LEVEL", "INFO").upper()
    return getattr(logging, level_str, logging.INFO)


def get_log_file() -> Path:
    """Get log file path from environment."""
    default_path = Path.home() / ".reconciler" / "reconciler.log"
    path_str = os.environ.get("RECONCILER_LOG_FILE", str(default_path))
    return Path(path_str)


def setup_logging(log_file: Optional[Path] = None, level: Optional[int] = None) -> None:
    """Configure logging for the application.

    Sets up:
    - Console handler (INFO+ by default, respects RECONCILER_LOG_LEVEL)
    - File handler with rotation (DEBUG level - captures everything)
    - Performance logger for timing metrics

    Calling it again replaces the handlers installed by the previous call.
    """
    log_level = level if level is not None else get_log_level()
    log_file = Path(log_file) if log_file is not None else get_log_file()
    max_size_mb = int(os.environ.get("RECONCILER_LOG_MAX_SIZE", "10"))
    backup_count = int(os.environ.get("RECONCILER_LOG_BACKUPS", "5"))

    log_file.parent.mkdir(parents=True, exist_ok=True)

    main_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | %(name)-30s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
    perf_format = logging.Formatter(
        "%(asctime)s.%(msecs)03d | PERF | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(main_format)

    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(main_format)

    perf_log_file = log_file.parent / "reconciler-perf.log"
    perf_handler = RotatingFileHandler(
        perf_log_file,
        maxBytes=max_size_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8"
    )
    perf_handler.setLevel(logging.DEBUG)
    perf_handler.setFormatter(perf_format)

    for name in ("reconciler", _PACKAGE_LOGGER):
        logger = logging.getLogger(name)
        _close_handlers(logger)
        logger.setLevel(logging.DEBUG)  # Capture all, handlers filter
        logger.addHandler(console_handler)
        logger.addHandler(file_handler)

    # Perf records stay out of the main log file
    _close_handlers(perf_logger)
    perf_logger.setLevel(logging.DEBUG)
    perf_logger.propagate = False
    perf_logger.addHandler(perf_handler)
    perf_logger.addHandler(console_handler)

    main_logger.info(f"Logging initialized: level={logging.getLevelName(log_level)}, file={log_file}")
    perf_logger.info(f"Performance logging to: {perf_log_file}")


def _close_handlers(logger: logging.Logger) -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _perf_line(operation: str, resource_id: Optional[str], elapsed_ms: float, outcome: str, extra: dict) -> str:
    msg = f"{operation:20s} | {resource_id or 'N/A':40s} | {elapsed_ms:8.2f}ms | {outcome}"
    if extra:
        msg += " | " + " | ".join(f"{k}={v}" for k, v in extra.items())
    return msg


def timed(operation: str):
    """Decorator to log execution time of async functions.

    The resource id is taken from the wrapped function's ``resource_id``
    argument when it has one, passed by position or keyword.

    Usage:
        @timed("probe")
        async def probe(self, resource_id):
            ...
    """
    def decorator(func: Callable) -> Callable:
        if not inspect.iscoroutinefunction(func):
            raise TypeError("timed() only wraps coroutine functions")
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            resource_id = signature.bind_partial(*args, **kwargs).arguments.get("resource_id")
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = (time.perf_counter() - start) * 1000
                perf_logger.warning(_perf_line(operation, resource_id, elapsed, f"FAIL: {e}", {}))
                raise
            elapsed = (time.perf_counter() - start) * 1000
            perf_logger.info(_perf_line(operation, resource_id, elapsed, "OK", {}))
            return result

        return wrapper

    return decorator


@asynccontextmanager
async def timed_section(operation: str, resource_id: Optional[str] = None, **extra):
    """Async context manager for timing code sections.

    Args:
        operation: Name of the operation
        resource_id: Resource identifier
        **extra: Additional context to log

    Usage:
        async with timed_section("poll", resource_id=arn, intent="create"):
            await waiter.wait()
    """
    start = time.perf_counter()
    try:
        yield
    except Exception as e:
        elapsed = (time.perf_counter() - start) * 1000
        perf_logger.warning(_perf_line(operation, resource_id, elapsed, f"FAIL: {e}", extra))
        raise
    elapsed = (time.perf_counter() - start) * 1000
    perf_logger.info(_perf_line(operation, resource_id, elapsed, "OK", extra))
