import logging
import math
from collections import Counter
from typing import List, Sequence, Tuple

from errors import EmptyResultError
from metrics import Sample, Summary, HistogramBucket

logger = logging.getLogger(__name__)


def _round_half_away(x: float) -> int:
    if x < 0:
        return -_round_half_away(-x)
    # x + 0.5 is inexact near 0.5 and above 2**52; compare the fraction instead
    whole = math.floor(x)
    return whole + (1 if x - whole >= 0.5 else 0)


def percentile(sorted_times: Sequence[int], p: float) -> int:
    """Linearly interpolated percentile of latencies sorted ascending, 0 < p <= 1.

    rank = n * p and idx = floor(rank) - 1; the result blends the values at idx
    and idx + 1 by the fractional part of rank, rounded to whole nanoseconds.
    """
    if not sorted_times:
        raise EmptyResultError()
    if not 0 < p <= 1:
        raise ValueError(f"percentile must be in (0, 1], got {p}")

    n = len(sorted_times)
    rank = n * p
    whole = math.floor(rank)
    idx = whole - 1
    if idx < 0:
        return sorted_times[0]
    if idx + 1 >= n:
        return sorted_times[idx]

    frac = rank - whole
    value = sorted_times[idx] * (1 - frac) + sorted_times[idx + 1] * frac
    return _round_half_away(value)


def median(sorted_times: Sequence[int]) -> float:
    if not sorted_times:
        raise EmptyResultError()
    n = len(sorted_times)
    mid = n // 2
    if n % 2:
        return float(sorted_times[mid])
    return (sorted_times[mid - 1] + sorted_times[mid]) / 2


def mean_and_stddev(times: Sequence[int]) -> Tuple[float, float]:
    """Mean and population standard deviation (divisor n)."""
    n = len(times)
    if n == 0:
        raise EmptyResultError()
    mean = sum(times) / n
    variance = math.fsum((t - mean) ** 2 for t in times) / n
    return mean, math.sqrt(variance)


def histogram(samples: Sequence[Sample]) -> Tuple[List[HistogramBucket], int]:
    """Status code buckets sorted by code, plus the digit width of the largest count."""
    if not samples:
        raise EmptyResultError()
    n = len(samples)
    counts = Counter(s.status for s in samples)
    buckets = [
        HistogramBucket(status, count, count / n * 100)
        for status, count in sorted(counts.items())
    ]
    width = len(str(max(counts.values())))
    return buckets, width


def summarize(samples: Sequence[Sample]) -> Summary:
    if not samples:
        raise EmptyResultError()

    # min()/max() keep the first sample seen on ties
    fastest = min(samples, key=lambda s: s.took_ns)
    slowest = max(samples, key=lambda s: s.took_ns)

    times = [s.took_ns for s in samples]
    sorted_times = sorted(times)
    mean, stddev = mean_and_stddev(times)
    buckets, width = histogram(samples)

    summary = Summary(
        count=len(samples),
        min=fastest,
        max=slowest,
        first=samples[0],
        mean=mean,
        stddev=stddev,
        median=median(sorted_times),
        p90=percentile(sorted_times, 0.90),
        p95=percentile(sorted_times, 0.95),
        p99=percentile(sorted_times, 0.99),
        total=sum(times),
        histogram=buckets,
        histogram_width=width,
    )
    logger.debug(f"Summarized {summary.count} samples: mean={mean:.0f}ns p99={summary.p99}ns")
    return summary
