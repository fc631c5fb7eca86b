from typing import NamedTuple, List


class Sample(NamedTuple):
    status: int
    took_ns: int       # time to response status/headers, monotonic clock
    timestamp_ns: int  # wall clock at request start, Unix epoch


class HistogramBucket(NamedTuple):
    status: int
    count: int
    percent: float


class Summary(NamedTuple):
    count: int
    min: Sample
    max: Sample
    first: Sample  # index 0 in completion order, not the fastest
    mean: float
    stddev: float
    median: float
    p90: int
    p95: int
    p99: int
    total: int
    histogram: List[HistogramBucket]
    histogram_width: int  # digits of the largest bucket count, for alignment
