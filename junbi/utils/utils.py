import copy
import logging
import sys
import time
from contextlib import contextmanager
from functools import wraps

logger = logging.getLogger("junbi")

_INDENT = "  "
_depth = 0


def _prefix() -> str:
    return _INDENT * _depth


def log_info(msg: str) -> None:
    logger.info(f"{_prefix()}{msg}")


def log_warning(msg: str) -> None:
    logger.warning(f"{_prefix()}{msg}")


def log_debug(msg: str) -> None:
    logger.debug(f"{_prefix()}{msg}")


@contextmanager
def log_indent():
    """Indent every log_* message emitted inside the block by one level."""
    global _depth
    _depth += 1
    try:
        yield
    finally:
        _depth -= 1


def log_time(label: str):
    """
    Decorator logging the wall time of a pipeline step.

    Nested steps are indented so the log reads like a call tree.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            log_info(f"{label}...")
            start = time.perf_counter()
            with log_indent():
                result = func(*args, **kwargs)
            log_info(f"{label} done in {time.perf_counter() - start:.2f}s")
            return result
        return wrapper
    return decorator


def setup_logging(level: int = logging.INFO) -> None:
    """Send junbi logs to stdout with the pipeline format."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logger.setLevel(level)


def trycopy(data):
    """Shallow copy when the object supports it, deep copy otherwise."""
    try:
        return data.copy()
    except (AttributeError, TypeError):
        return copy.deepcopy(data)
