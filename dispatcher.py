import logging
import queue
import random
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Tuple

from duration import DurationRange, NANOS_PER_SECOND
from metrics import Sample

logger = logging.getLogger(__name__)


def has_flat_wait_burst(parallel: int, wait: Optional[DurationRange]) -> bool:
    """True when every worker would sleep the same fixed time and fire together."""
    return parallel > 1 and wait is not None and wait.is_flat()


def dispatch(runner, count: int, parallel: int,
             wait: Optional[DurationRange] = None,
             rng: Optional[random.Random] = None,
             sleep: Callable[[float], None] = time.sleep) -> List[Sample]:
    """Send ``count`` requests through ``runner`` with at most ``parallel`` in flight.

    Samples are returned in completion order. The first exception raised by a
    task aborts the whole call and is re-raised; tasks that have not started
    are cancelled, while requests already on the wire are left to finish in
    their worker threads and their results are dropped.
    """
    if count < 1:
        raise ValueError(f"count must be positive, got {count}")
    if parallel < 1:
        raise ValueError(f"parallel must be positive, got {parallel}")

    if has_flat_wait_burst(parallel, wait):
        logger.info(f"Fixed wait of {wait.low_ns}ns with {parallel} workers; requests will fire in bursts.")

    logger.info(f"Starting dispatch: {count} requests, {parallel} workers, wait={wait}")
    start_time = time.perf_counter()

    # Workers push outcomes as they finish, so the queue holds true completion order
    completed: "queue.Queue[Tuple[Optional[Sample], Optional[BaseException]]]" = queue.Queue()
    results: List[Sample] = []

    def run_one(index: int):
        try:
            if wait is not None:
                delay_ns = wait.sample(rng)
                if delay_ns > 0:
                    sleep(delay_ns / NANOS_PER_SECOND)
            sample = runner.send()
        except BaseException as e:
            completed.put((None, e))
            return
        logger.debug(f"Request {index}: status={sample.status} took={sample.took_ns}ns")
        completed.put((sample, None))

    pool = ThreadPoolExecutor(max_workers=parallel, thread_name_prefix="rush-worker")
    try:
        for i in range(count):
            pool.submit(run_one, i)
        for _ in range(count):
            sample, error = completed.get()
            if error is not None:
                raise error
            results.append(sample)
    except BaseException as e:
        logger.error(f"Dispatch aborted after {len(results)}/{count} completed requests: {e}")
        pool.shutdown(wait=False, cancel_futures=True)
        raise
    pool.shutdown(wait=True)

    logger.info(f"Dispatch finished: {len(results)} requests in {time.perf_counter() - start_time:.2f}s")
    return results
