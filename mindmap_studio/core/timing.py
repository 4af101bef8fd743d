"""
Stage timing for debug runs.

With MS_DEBUG=1 set when the package is imported, every decorated pipeline
stage prints its wall-clock time. Otherwise the decorator hands back the
function untouched.
"""

import functools
import time
from typing import Callable, ParamSpec, TypeVar

from .debug_log import is_debug_enabled

P = ParamSpec("P")
R = TypeVar("R")


def timer(func: Callable[P, R]) -> Callable[P, R]:
    """Print how long each call to func takes, failed calls included."""
    if not is_debug_enabled():
        return func

    @functools.wraps(func)
    def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        started = time.perf_counter()
        try:
            return func(*args, **kwargs)
        finally:
            print(f"[MS_DEBUG] {func.__qualname__}: {(time.perf_counter() - started) * 1000:.2f}ms")

    return wrapper
