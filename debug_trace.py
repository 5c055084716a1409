"""
debug_trace.py

Logging setup and debug instrumentation.
Enable verbose tracing by setting DEBUG_TRACE = True below.
"""

import logging
import sys
from functools import wraps
from typing import Optional

# Set to True to log trace() calls at DEBUG level
DEBUG_TRACE = False

# Set to True to trace paint events (very verbose)
TRACE_PAINT = False

# Log file (None for stderr only)
LOG_FILE: Optional[str] = "trichomark_debug.log"

LOGGER_NAME = "trichomark"
_FORMAT = "[%(asctime)s.%(msecs)03d] [%(levelname)s] %(name)s: %(message)s"

log = logging.getLogger(LOGGER_NAME)

_file_handler: Optional[logging.FileHandler] = None


def setup_logging(debug: bool = DEBUG_TRACE, log_file: Optional[str] = LOG_FILE) -> None:
    """Configure the root logger: stderr always, plus *log_file* when given."""
    global _file_handler
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    formatter = logging.Formatter(_FORMAT, datefmt="%H:%M:%S")

    if not any(getattr(h, "_trichomark", False) for h in root.handlers):
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(formatter)
        stderr_handler._trichomark = True
        root.addHandler(stderr_handler)

    if log_file and _file_handler is None:
        try:
            _file_handler = logging.FileHandler(log_file, mode="w", encoding="utf-8")
        except OSError as e:
            log.warning("Cannot open log file %s: %s", log_file, e)
        else:
            _file_handler.setFormatter(formatter)
            root.addHandler(_file_handler)


def trace(msg: str, category: str = "INFO"):
    """Log a trace message tagged with *category*."""
    if not DEBUG_TRACE:
        return
    if category == "PAINT" and not TRACE_PAINT:
        return
    log.debug("[%s] %s", category, msg)


def trace_exception(msg: str = "Exception"):
    """Log the exception currently being handled."""
    log.exception(msg)


def trace_call(category: str = "CALL"):
    """Decorator to trace function calls."""
    def decorator(func):
        if not DEBUG_TRACE:
            return func

        @wraps(func)
        def wrapper(*args, **kwargs):
            func_name = func.__qualname__
            trace(f">>> {func_name}", category)
            try:
                result = func(*args, **kwargs)
                trace(f"<<< {func_name}", category)
                return result
            except Exception as e:
                log.error("!!! %s raised %s: %s", func_name, type(e).__name__, e)
                raise
        return wrapper
    return decorator


def close_log():
    """Detach and close the log file handler."""
    global _file_handler
    if _file_handler is not None:
        logging.getLogger().removeHandler(_file_handler)
        _file_handler.close()
        _file_handler = None
