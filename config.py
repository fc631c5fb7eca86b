import logging

# General
LOG_LEVEL = logging.WARNING  # -v raises to INFO, -vv to DEBUG
LOG_FORMAT = '%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s'
VERSION = "0.1.0"

# Request defaults
DEFAULT_METHOD = "GET"
DEFAULT_COUNT = 1
DEFAULT_PARALLEL = 1
DEFAULT_TIMEOUT = None  # No per-request transport timeout unless --timeout is given
USER_AGENT = f"rush/{VERSION}"

# Report
SUMMARY_WIDTH = 10
SUMMARY_PRECISION = 3
# RFC 3339, UTC, nanosecond fraction appended separately
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"

FLAT_WAIT_WARNING = (
    "warning: `wait` is set to a fixed duration and `parallel` is set to more than 1. "
    "That means that all requests will wait the same time for each worker. To avoid this, "
    "use a range for `wait`. For example: `-w 900ms..1100ms`."
)
