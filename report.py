import csv
import errno
import io
import logging
import os
from datetime import datetime, timezone
from typing import List, Optional, Sequence, TextIO, Tuple, Union

from config import SUMMARY_PRECISION, SUMMARY_WIDTH, TIMESTAMP_FORMAT
from duration import (
    NANOS_PER_MICRO, NANOS_PER_MILLI, NANOS_PER_SECOND, NANOS_PER_MINUTE, NANOS_PER_HOUR,
)
from metrics import Sample, Summary

logger = logging.getLogger(__name__)


def _unitify(ns: Union[int, float]) -> Tuple[str, float]:
    if ns < NANOS_PER_MICRO:
        return "ns", float(ns)
    if ns < NANOS_PER_MILLI:
        return "µs", ns / NANOS_PER_MICRO
    if ns < NANOS_PER_SECOND:
        return "ms", ns / NANOS_PER_MILLI
    if ns < NANOS_PER_MINUTE:
        return "s", ns / NANOS_PER_SECOND
    if ns < NANOS_PER_HOUR:
        return "m", ns / NANOS_PER_MINUTE
    return "h", ns / NANOS_PER_HOUR


def _shortest(value: float) -> str:
    # 2.0 -> "2", 1.5 -> "1.5"
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_duration(ns: Union[int, float], width: Optional[int] = None,
                    precision: Optional[int] = None) -> str:
    """Compact duration text in the largest unit not exceeding the value.

    ``width`` right-aligns the number only; the unit is appended after it.
    """
    unit, value = _unitify(ns)
    number = _shortest(value) if precision is None else f"{value:.{precision}f}"
    if width is not None:
        number = number.rjust(width)
    return number + unit


def format_timestamp(timestamp_ns: int) -> str:
    """RFC 3339 in UTC with nanosecond precision, e.g. 2024-01-02T03:04:05.000000001Z."""
    seconds, nanos = divmod(timestamp_ns, NANOS_PER_SECOND)
    instant = datetime.fromtimestamp(seconds, tz=timezone.utc)
    return f"{instant.strftime(TIMESTAMP_FORMAT)}.{nanos:09d}Z"


def render_summary(summary: Summary, width: int = SUMMARY_WIDTH,
                   precision: int = SUMMARY_PRECISION) -> str:
    def fmt(ns):
        return format_duration(ns, width=width, precision=precision)

    lines = [
        f"Results of {summary.count} probes:",
        "",
        f"Min:         {fmt(summary.min.took_ns)}\t({summary.min.status})",
        f"Max:         {fmt(summary.max.took_ns)}\t({summary.max.status})",
        f"First:       {fmt(summary.first.took_ns)}\t({summary.first.status})",
        f"Average:     {fmt(summary.mean)}",
        f"Median:      {fmt(summary.median)}",
        f"Std. Dev.:   {fmt(summary.stddev)}",
        f"90th %ile.:  {fmt(summary.p90)}",
        f"95th %ile.:  {fmt(summary.p95)}",
        f"99th %ile.:  {fmt(summary.p99)}",
        f"Total:       {fmt(summary.total)}",
        "",
        "Status codes:",
    ]
    w = summary.histogram_width
    for bucket in summary.histogram:
        lines.append(f"  {bucket.status}:  {bucket.count:>{w}}  ({bucket.percent:6.2f}%)")
    return "\n".join(lines) + "\n"


def _csv_row(sample: Sample) -> list:
    return [format_timestamp(sample.timestamp_ns), sample.status, sample.took_ns]


def render_csv(samples: Sequence[Sample]) -> List[str]:
    """One ``timestamp,status,latency_ns`` line per sample, in the given order."""
    return [",".join(str(field) for field in _csv_row(s)) for s in samples]


def parse_csv_line(line: str) -> Tuple[str, int, int]:
    timestamp, status, took_ns = next(csv.reader(io.StringIO(line.strip())))
    return timestamp, int(status), int(took_ns)


def write_csv_stream(stream: TextIO, samples: Sequence[Sample]):
    writer = csv.writer(stream, lineterminator="\n")
    for s in samples:
        writer.writerow(_csv_row(s))


def write_csv(path: str, samples: Sequence[Sample]):
    """Append rows to ``path``, creating it and any missing parent directories first."""
    if os.path.exists(path):
        mode = 'a'
    else:
        parent = os.path.dirname(path)
        if parent and not os.path.exists(parent):
            os.makedirs(parent)
        mode = 'w'

    with open(path, mode, newline='', encoding='utf-8') as f:
        write_csv_stream(f, samples)
    logger.info(f"Wrote {len(samples)} CSV rows to {path} (mode={mode})")


def check_csv_target(path: str):
    """Raise OSError unless ``path`` could be appended to or created; creates nothing."""
    target = os.path.abspath(path)
    if os.path.exists(target):
        if not os.path.isfile(target):
            raise IsADirectoryError(errno.EISDIR, "not a regular file", path)
        if not os.access(target, os.W_OK):
            raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), path)
        return

    # nearest existing ancestor must be a directory we can create entries in
    ancestor = os.path.dirname(target)
    while not os.path.exists(ancestor):
        ancestor = os.path.dirname(ancestor)
    if not os.path.isdir(ancestor):
        raise NotADirectoryError(errno.ENOTDIR, os.strerror(errno.ENOTDIR), ancestor)
    if not os.access(ancestor, os.W_OK | os.X_OK):
        raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), ancestor)
