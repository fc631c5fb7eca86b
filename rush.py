import argparse
import logging
import sys
from typing import List, Optional

import config
from dispatcher import dispatch, has_flat_wait_burst
from duration import parse_duration, parse_range, NANOS_PER_SECOND
from errors import ConfigParseError, EmptyResultError, TransportError
from report import check_csv_target, render_summary, write_csv, write_csv_stream
from request_runner import Client, build_template, parse_headers
from stats import summarize

logger = logging.getLogger("rush")

EXIT_OK = 0
EXIT_ERROR = 1      # configuration or file I/O
EXIT_TRANSPORT = 3  # a request failed during dispatch


def positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid positive integer: {text!r}")
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rush",
        description="A tiny HTTP benchmarking and performance testing tool.",
    )
    parser.add_argument("url", help="The URL to be requested")
    parser.add_argument("-X", "--method", default=config.DEFAULT_METHOD,
                        help="The HTTP method to be used (default: %(default)s)")
    parser.add_argument("-H", "--header", action="append", default=[],
                        help="An HTTP header sent with every request, format 'key: value'; repeatable")
    parser.add_argument("-b", "--body", help="The body content to be sent with the request")
    parser.add_argument("-f", "--body-file",
                        help="Read the request body from this file; overrides --body if both are set")
    parser.add_argument("-c", "-n", "--count", type=positive_int, default=config.DEFAULT_COUNT,
                        help="The amount of requests which will be sent (default: %(default)s)")
    parser.add_argument("-p", "--parallel", type=positive_int, default=config.DEFAULT_PARALLEL,
                        help="The maximum amount of requests in flight at a time (default: %(default)s)")
    parser.add_argument("-w", "--wait",
                        help="A duration awaited before each request; a range 'from..to' "
                             "(e.g. '10ms..20ms') picks a random duration per request")
    parser.add_argument("-o", "--output",
                        help="Append per-request results as CSV to this file; created with its directories if missing")
    parser.add_argument("--csv", action="store_true",
                        help="Print per-request CSV rows to stdout instead of the summary")
    parser.add_argument("-s", "--silent", action="store_true", help="Do not print the summary")
    parser.add_argument("-k", "--insecure", action="store_true",
                        help="Accept invalid TLS certificates")
    parser.add_argument("-t", "--timeout", help="Transport timeout for a single request, e.g. '5s'")
    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Log progress to stderr; repeat for debug output")
    parser.add_argument("--log-file", help="Also write log records to this file")
    parser.add_argument("--version", action="version", version=f"%(prog)s {config.VERSION}")
    return parser


def setup_logging(verbosity: int = 0, log_file: Optional[str] = None):
    level = config.LOG_LEVEL
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handlers: List[logging.Handler] = [logging.StreamHandler()]  # stderr
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode='a'))

    logging.basicConfig(level=level, format=config.LOG_FORMAT, handlers=handlers, force=True)
    logger.debug(f"Logging setup complete. Level: {logging.getLevelName(level)}")


def read_body(body: Optional[str], body_file: Optional[str]) -> Optional[bytes]:
    if body_file:
        with open(body_file, 'rb') as f:
            return f.read()
    if body is not None:
        return body.encode('utf-8')
    return None


def parse_timeout(text: Optional[str]) -> Optional[float]:
    if text is None:
        return config.DEFAULT_TIMEOUT
    ns = parse_duration(text)
    if ns == 0:
        raise ConfigParseError("timeout must be greater than zero")
    return ns / NANOS_PER_SECOND


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.log_file)

    # Everything is validated before the first request goes out
    try:
        wait = parse_range(args.wait) if args.wait is not None else None
        timeout = parse_timeout(args.timeout)
        headers = parse_headers(args.header)
        body = read_body(args.body, args.body_file)
        template = build_template(args.url, args.method, headers, body)
    except ConfigParseError as e:
        print(f"error: {e}", file=sys.stderr)
        return EXIT_ERROR
    except OSError as e:
        print(f"error: cannot read body file: {e}", file=sys.stderr)
        return EXIT_ERROR

    if args.output:
        try:
            check_csv_target(args.output)
        except OSError as e:
            print(f"error: cannot write {args.output}: {e}", file=sys.stderr)
            return EXIT_ERROR

    if has_flat_wait_burst(args.parallel, wait):
        print(config.FLAT_WAIT_WARNING, file=sys.stderr)

    with Client(template, parallel=args.parallel, timeout=timeout, insecure=args.insecure) as client:
        try:
            samples = dispatch(client, args.count, args.parallel, wait=wait)
        except TransportError as e:
            print(f"error: {e}", file=sys.stderr)
            return EXIT_TRANSPORT

    if args.output:
        try:
            write_csv(args.output, samples)
        except OSError as e:
            print(f"error: cannot write {args.output}: {e}", file=sys.stderr)
            return EXIT_ERROR

    if args.csv:
        write_csv_stream(sys.stdout, samples)
    elif not args.silent:
        try:
            summary = summarize(samples)
        except EmptyResultError as e:
            print(e)
            return EXIT_OK
        print(render_summary(summary), end="")

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
