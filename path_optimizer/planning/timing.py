import functools
import logging
import time


logger = logging.getLogger(__name__)


def timeit(func):
    """Decorator to measure execution time of a function and log it."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start = time.perf_counter()
        result = func(*args, **kwargs)
        end = time.perf_counter()
        logger.debug(f"[TIMEIT] {func.__name__} executed in {end - start:.4f} seconds")
        return result
    return wrapper


def time_ms(start: float, end: float) -> float:
    """Elapsed milliseconds between two perf_counter readings."""
    return (end - start) * 1000.0


def log_stage_time(start: float, end: float, stage: str):
    logger.info(f"{stage} time cost: {time_ms(start, end):.2f} ms")
