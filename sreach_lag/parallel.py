"""Index-ordered fan-out over a thread pool."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def map_ordered(fn: Callable[[int, T], R], items: Sequence[T], max_workers: Optional[int] = None) -> List[R]:
    """
    Apply ``fn(index, item)`` to every item and return results by index.

    With ``max_workers`` of None or 1 the calls run inline. Otherwise they are
    dispatched to a thread pool; results are collected in submission order,
    so scheduling never changes the output ordering. The first exception (by
    index) propagates and cancels work that has not started yet.
    """
    if not max_workers or max_workers <= 1 or len(items) <= 1:
        return [fn(i, item) for i, item in enumerate(items)]

    executor = ThreadPoolExecutor(max_workers=max_workers)
    try:
        futures = [executor.submit(fn, i, item) for i, item in enumerate(items)]
        return [f.result() for f in futures]
    finally:
        executor.shutdown(wait=True, cancel_futures=True)
