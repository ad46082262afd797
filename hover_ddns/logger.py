import functools
import gzip
import inspect
import logging
import logging.handlers
import os
import shutil
import sys
from gzip import GzipFile
from pathlib import Path
from typing import Any, Callable, ParamSpec, TypeVar

logger = logging.getLogger("hover_ddns")
formatter = logging.Formatter(
    "%(asctime)s %(levelname)s [%(module)s:%(funcName)s:%(lineno)d] %(message)s"
)


def rotator(source, dest):
    with open(source, "rb") as f_in:
        with gzip.open(dest + ".gz", "wb") as f_out:
            assert isinstance(f_out, GzipFile)
            shutil.copyfileobj(f_in, f_out)
    os.remove(source)


def configure_logging(level: int | str = logging.WARNING, log_file: Path | None = None):
    """
    Attach the stdout handler and, if a log file is given, a midnight-rotating
    file handler whose rotated files are gzip-compressed.

    Calling it again replaces the handlers installed by a previous call.
    """
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.TimedRotatingFileHandler(
            log_file, when="midnight"
        )
        file_handler.setFormatter(formatter)
        file_handler.rotator = rotator
        logger.addHandler(file_handler)


P = ParamSpec("P")
R = TypeVar("R")


def log_exception(
    prefix: str = "",
    default_return: R | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Decorator that logs any exception raised by the wrapped function and
    returns ``default_return`` instead.

    Works for sync and async functions. The logged line carries the bound call
    arguments, and ``prefix`` may reference them by name, e.g.
    ``@log_exception("Lookup[{family}]")``.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        sig = inspect.signature(func)

        def describe_call(args: tuple, kwargs: dict) -> tuple[dict[str, Any], str]:
            try:
                bound = sig.bind(*args, **kwargs)
            except TypeError as e:
                logger.warning(
                    f"Failed to bind arguments for function {func.__qualname__}: {e}",
                    stacklevel=4,
                )
                return {}, ""
            bound.apply_defaults()
            params = ", ".join(f"{k}={v!r}" for k, v in bound.arguments.items())
            return bound.arguments, f"[{params}] " if params else ""

        def format_prefix(bound_args: dict[str, Any]) -> str:
            if not prefix:
                return ""
            try:
                return f"{prefix.format_map(bound_args)}: "
            except (KeyError, IndexError, ValueError):
                return f"{prefix}: "

        def report(e: Exception, args: tuple, kwargs: dict):
            bound_args, args_str = describe_call(args, kwargs)
            logger.error(
                f"{args_str}{format_prefix(bound_args)}{type(e).__name__}: {e}",
                exc_info=True,
                stacklevel=3,
            )

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    report(e, args, kwargs)
                    return default_return  # type: ignore[return-value]

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                report(e, args, kwargs)
                return default_return  # type: ignore[return-value]

        return sync_wrapper

    return decorator
