"""
Centralized Logging Utilities and Decorators

Provides reusable logging setup and function decorators for consistent logging
across the feedpub publisher. Decorators work on plain functions and on
coroutine functions alike, so pipeline stages can be decorated the same way
whether they await I/O or not.

Usage:
    from feedpub.logger import setup_logging, log_function

    logger = setup_logging(
        logger_name="pipeline",
        log_file="logs/pipeline.log",
        verbose=True
    )

    @log_function(logger_name="storage", log_args=True)
    async def add_bytes(data):
        ...
"""

import functools
import inspect
import logging
import time
from pathlib import Path
from typing import Optional, Callable, Any


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    logger_name: str,
    log_file: str = "logs/feedpub.log",
    verbose: bool = False,
    level: int = logging.INFO,
) -> logging.Logger:
    """
    Set up logging with file and optional console handlers.

    Args:
        logger_name: Name for the logger (e.g., "pipeline")
        log_file: Path to log file (default: "logs/feedpub.log")
        verbose: If True, add console handler with DEBUG level (default: False)
        level: Base logging level (default: logging.INFO)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Avoid adding multiple handlers if already configured
    if logger.handlers:
        return logger

    logger.setLevel(logging.DEBUG if verbose else level)

    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logger.addHandler(file_handler)

    if verbose:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(
            logging.Formatter("%(levelname)s [%(name)s] %(message)s")
        )
        logger.addHandler(console_handler)

    return logger


def _resolve_logger(
    logger_name: str, func_name: str, log_file: Optional[str], level: int
) -> logging.Logger:
    if log_file:
        return setup_logging(
            logger_name=f"{logger_name}.{func_name}",
            log_file=log_file,
            level=level,
        )
    # Reuse whatever the application configured; never attach handlers here
    return logging.getLogger(logger_name)


def _describe_call(func_name: str, log_args: bool, args, kwargs) -> str:
    msg = f"Calling {func_name}"
    if log_args and (args or kwargs):
        args_repr = [repr(a) for a in args]
        kwargs_repr = [f"{k}={v!r}" for k, v in kwargs.items()]
        msg += f" with args: {', '.join(args_repr + kwargs_repr)}"
    return msg


def _describe_completion(
    func_name: str,
    elapsed: float,
    result: Any,
    log_execution_time: bool,
    log_result: bool,
) -> str:
    msg = f"Completed {func_name}"
    if log_execution_time:
        msg += f" in {elapsed:.2f}s"
    if log_result:
        msg += f" with result: {result!r}"
    return msg


def log_function(
    logger_name: Optional[str] = None,
    log_file: Optional[str] = None,
    level: int = logging.INFO,
    log_args: bool = False,
    log_result: bool = False,
    log_execution_time: bool = True,
) -> Callable:
    """
    Decorator to automatically log function entry, exit, execution time, and exceptions.

    Coroutine functions are detected and wrapped with an async wrapper, so the
    timing covers the awaited work and not just coroutine creation.

    Args:
        logger_name: Custom logger name (if None, uses the decorated function's module name)
        log_file: Optional custom log file path (if None, uses existing logger config)
        level: Log level for entry/exit messages (default: logging.INFO)
        log_args: If True, log function arguments (default: False)
        log_result: If True, log return value (default: False)
        log_execution_time: If True, log execution duration (default: True)

    Returns:
        Decorated function with logging

    Example:
        @log_function(logger_name="media", log_args=True)
        async def transcode(job):
            ...
    """

    def decorator(func: Callable) -> Callable:
        name = logger_name or func.__module__
        func_name = func.__name__

        def _log_failure(logger: logging.Logger, start: float, e: Exception):
            logger.error(
                f"Exception in {func_name} after {time.time() - start:.2f}s: "
                f"{type(e).__name__}: {e}",
                exc_info=True,
            )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                logger = _resolve_logger(name, func_name, log_file, level)
                logger.log(level, _describe_call(func_name, log_args, args, kwargs))
                start = time.time()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    _log_failure(logger, start, e)
                    raise
                logger.log(
                    level,
                    _describe_completion(
                        func_name,
                        time.time() - start,
                        result,
                        log_execution_time,
                        log_result,
                    ),
                )
                return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            logger = _resolve_logger(name, func_name, log_file, level)
            logger.log(level, _describe_call(func_name, log_args, args, kwargs))
            start = time.time()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                _log_failure(logger, start, e)
                raise
            logger.log(
                level,
                _describe_completion(
                    func_name, time.time() - start, result, log_execution_time, log_result
                ),
            )
            return result

        return wrapper

    return decorator


# Convenience decorators for common use cases


def log_with_timer(logger_name: Optional[str] = None) -> Callable:
    """Log entry/exit with execution time only."""
    return log_function(
        logger_name=logger_name,
        log_args=False,
        log_result=False,
        log_execution_time=True,
    )


def log_detailed(
    logger_name: Optional[str] = None, log_file: Optional[str] = None
) -> Callable:
    """
    Decorator that logs everything: args, result, and execution time.

    Example:
        @log_detailed("chain")
        def build_anchor_calls(...):
            ...
    """
    return log_function(
        logger_name=logger_name,
        log_file=log_file,
        log_args=True,
        log_result=True,
        log_execution_time=True,
    )
