#!/usr/bin/env python3
"""
Parallel fan-out of independent store reads.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Any

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 8


def run_parallel(tasks: Dict[str, Callable[[], Any]], max_workers: int = DEFAULT_MAX_WORKERS) -> Dict[str, Any]:
    """
    Run named zero-argument callables concurrently and join their results.

    The first failing task aborts the whole fan-out: pending tasks are
    cancelled and the exception is re-raised, so callers never see a
    partial result.
    """
    if not tasks:
        return {}

    results: Dict[str, Any] = {}
    with ThreadPoolExecutor(max_workers=min(max_workers, len(tasks))) as executor:
        futures = {executor.submit(fn): name for name, fn in tasks.items()}
        for future in as_completed(futures):
            name = futures[future]
            try:
                results[name] = future.result()
            except Exception:
                logger.error(f"Fan-out task '{name}' failed", exc_info=True)
                for pending in futures:
                    pending.cancel()
                raise
    return results
