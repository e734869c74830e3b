"""Worker pool for the data-parallel parts of the prover.

Parallelism only ever happens *inside* one protocol step (one sum-check round, one
MSM); callers wait for every chunk before touching the transcript again. Work
submitted from inside a worker runs inline, so nested helpers (an MSM inside a
parallel map) cannot exhaust the pool.

Configuration is read from the environment at call time:

- ``SPARTAN_NUM_THREADS``: pool size (default ``os.cpu_count()``; ``1`` disables the pool).
"""

import logging  # pool lifecycle diagnostics
import os  # env-var lookup
import threading  # pool creation lock + worker marker
from concurrent.futures import ThreadPoolExecutor  # shared worker pool

LOGGER = logging.getLogger(__name__)

NUM_THREADS_ENV = "SPARTAN_NUM_THREADS"  # env var controlling pool size
MIN_PARALLEL_LEN = 1 << 8  # below this many items a range is processed inline

_pool = None
_pool_size = 0
_pool_lock = threading.Lock()
_worker = threading.local()


def num_threads():  # Configured worker count (>= 1).
    raw = os.environ.get(NUM_THREADS_ENV)
    if raw is None or raw.strip() == "":
        return max(1, os.cpu_count() or 1)
    try:
        n = int(raw)
    except ValueError:
        raise ValueError(f"{NUM_THREADS_ENV} must be an integer, got {raw!r}") from None
    if n < 1:
        raise ValueError(f"{NUM_THREADS_ENV} must be >= 1, got {n}")
    return n


def _mark_worker():  # Thread initializer: flag pool threads so nested calls run inline.
    _worker.active = True


def _executor():  # Lazily (re)create the shared pool when the configured size changes.
    global _pool, _pool_size
    n = num_threads()
    with _pool_lock:
        if _pool is None or _pool_size != n:
            if _pool is not None:
                _pool.shutdown(wait=False)
            LOGGER.debug("starting worker pool with %d threads", n)
            _pool = ThreadPoolExecutor(max_workers=n, thread_name_prefix="spartan", initializer=_mark_worker)
            _pool_size = n
        return _pool


def _inline():  # True when work should not be dispatched to the pool.
    return getattr(_worker, "active", False) or num_threads() == 1


def par_map(fn, items):  # Ordered map of fn over items on the worker pool.
    items = list(items)
    if len(items) <= 1 or _inline():
        return [fn(x) for x in items]
    return list(_executor().map(fn, items))


def chunk_ranges(n, parts):  # Split range(n) into at most `parts` contiguous (start, end) ranges.
    n, parts = int(n), max(1, int(parts))
    size = -(-n // parts) if n else 0
    return [(s, min(s + size, n)) for s in range(0, n, size)] if size else []


def par_chunks(fn, n, min_len=MIN_PARALLEL_LEN):  # Run fn(start, end) over chunks of range(n); results in order.
    n = int(n)
    if n <= 0:
        return []
    if n < min_len or _inline():
        return [fn(0, n)]
    return par_map(lambda se: fn(*se), chunk_ranges(n, num_threads()))
