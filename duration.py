import logging
import random
import re
from typing import NamedTuple, Optional, Dict

from errors import DurationParseError

logger = logging.getLogger(__name__)

NANOS_PER_MICRO = 1_000
NANOS_PER_MILLI = 1_000_000
NANOS_PER_SECOND = 1_000_000_000
NANOS_PER_MINUTE = 60 * NANOS_PER_SECOND
NANOS_PER_HOUR = 60 * NANOS_PER_MINUTE

_UNITS: Dict[str, int] = {}
for _names, _nanos in (
    (("ns", "nsec", "nanos"), 1),
    (("us", "µs", "usec", "micros"), NANOS_PER_MICRO),
    (("ms", "msec", "millis"), NANOS_PER_MILLI),
    (("s", "sec", "secs", "second", "seconds"), NANOS_PER_SECOND),
    (("m", "min", "mins", "minute", "minutes"), NANOS_PER_MINUTE),
    (("h", "hr", "hrs", "hour", "hours"), NANOS_PER_HOUR),
    (("d", "day", "days"), 24 * NANOS_PER_HOUR),
    (("w", "week", "weeks"), 7 * 24 * NANOS_PER_HOUR),
):
    for _name in _names:
        _UNITS[_name] = _nanos

_GROUP_RE = re.compile(r"\s*(\d+)\s*([^\d\s]*)")

_default_rng = random.Random()


def parse_duration(text: str) -> int:
    """Parse a duration such as ``250ms`` or ``1m 30s`` into nanoseconds."""
    stripped = text.strip()
    if not stripped:
        raise DurationParseError("empty duration", text)
    if stripped == "0":
        return 0

    total = 0
    pos = 0
    while pos < len(stripped):
        match = _GROUP_RE.match(stripped, pos)
        if not match:
            raise DurationParseError("expected number", stripped[pos:].strip())
        number, unit = match.group(1), match.group(2)
        if not unit:
            raise DurationParseError("time unit needed", number)
        if unit not in _UNITS:
            raise DurationParseError("unknown time unit", unit)
        total += int(number) * _UNITS[unit]
        pos = match.end()
    return total


class DurationRange(NamedTuple):
    low_ns: int
    high_ns: int

    def is_flat(self) -> bool:
        return self.low_ns == self.high_ns

    def sample(self, rng: Optional[random.Random] = None) -> int:
        # A flat range is deterministic; the rng is not consulted.
        if self.is_flat():
            return self.low_ns
        rng = rng if rng is not None else _default_rng
        return rng.randrange(self.low_ns, self.high_ns)


def parse_range(text: str) -> DurationRange:
    """Parse ``low..high`` or a single duration (flat range)."""
    if ".." in text:
        low_text, _, high_text = text.partition("..")
        low = parse_duration(low_text)
        high = parse_duration(high_text)
        if low > high:
            raise DurationParseError("lower bound exceeds upper bound", text)
        logger.debug(f"Parsed wait range {low}ns..{high}ns from {text!r}")
        return DurationRange(low, high)

    d = parse_duration(text)
    return DurationRange(d, d)
