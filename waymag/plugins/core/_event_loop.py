import os
from concurrent.futures import ThreadPoolExecutor
from typing import Optional

_GLOBAL_EXECUTOR: Optional[ThreadPoolExecutor] = None


def get_global_executor() -> ThreadPoolExecutor:
    """
    Returns the global thread pool executor.

    Exit watchers for helper processes park a worker for the whole lifetime
    of the process they wait on, so the pool is sized generously.

    Returns:
        ThreadPoolExecutor: The shared executor for blocking operations.
    """
    global _GLOBAL_EXECUTOR
    if _GLOBAL_EXECUTOR is None:
        max_workers = (os.cpu_count() or 1) + 4
        _GLOBAL_EXECUTOR = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="WaymagWorker"
        )
    return _GLOBAL_EXECUTOR


def shutdown_global_executor(wait: bool = False) -> None:
    """Stops the shared executor; the next get_global_executor() builds a new one."""
    global _GLOBAL_EXECUTOR
    if _GLOBAL_EXECUTOR is not None:
        _GLOBAL_EXECUTOR.shutdown(wait=wait, cancel_futures=True)
        _GLOBAL_EXECUTOR = None
