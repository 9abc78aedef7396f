"""
Shared worker pool for data-parallel pixel work.

Page export runs on its own short-lived pool (see pack.py) so a page task
blocked on pixel chunks never occupies a slot the chunks need.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

logger = logging.getLogger(__name__)

_executor: Optional[ThreadPoolExecutor] = None
_lock = threading.Lock()


def default_worker_count() -> int:
    """Number of workers matching available hardware parallelism."""
    return os.cpu_count() or 1


def get_executor() -> ThreadPoolExecutor:
    """Return the process-wide pixel pool, creating it on first use."""
    global _executor
    with _lock:
        if _executor is None:
            workers = default_worker_count()
            _executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="atlaspack-pixels")
            logger.debug(f"Started pixel worker pool with {workers} threads")
        return _executor


def shutdown() -> None:
    """Stop the shared pool; the next get_executor() starts a fresh one."""
    global _executor
    with _lock:
        if _executor is not None:
            _executor.shutdown(wait=True)
            _executor = None
