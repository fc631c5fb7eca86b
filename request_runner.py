import logging
import re
import time
import warnings
from typing import NamedTuple, Optional, Iterable
from urllib.parse import urlsplit

import requests
from requests.adapters import HTTPAdapter
from requests.structures import CaseInsensitiveDict
from urllib3.exceptions import InsecureRequestWarning

from config import USER_AGENT
from errors import ConfigParseError, TransportError
from metrics import Sample

logger = logging.getLogger(__name__)

# RFC 7230 token, used for both methods and header names
_TOKEN_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


class RequestTemplate(NamedTuple):
    method: str
    url: str
    headers: CaseInsensitiveDict
    body: Optional[bytes] = None


def parse_headers(lines: Iterable[str]) -> CaseInsensitiveDict:
    """Turn ``key: value`` strings into a case-insensitive header map."""
    headers = CaseInsensitiveDict()
    for line in lines:
        key, sep, value = line.partition(":")
        if not sep:
            raise ConfigParseError(f"invalid header format (expected 'key: value'): {line!r}")
        key = key.strip()
        value = value.strip()
        if not key:
            raise ConfigParseError(f"empty header key: {line!r}")
        if not value:
            raise ConfigParseError(f"empty header value: {line!r}")
        if not _TOKEN_RE.fullmatch(key):
            raise ConfigParseError(f"invalid header name: {key!r}")
        if "\r" in value or "\n" in value:
            raise ConfigParseError(f"invalid header value for {key!r}")
        headers[key] = value
    return headers


def build_template(url: str, method: str, headers: Optional[CaseInsensitiveDict] = None,
                   body: Optional[bytes] = None) -> RequestTemplate:
    if not _TOKEN_RE.fullmatch(method):
        raise ConfigParseError(f"invalid HTTP method: {method!r}")
    method = method.upper()

    parts = urlsplit(url)
    if parts.scheme.lower() not in ("http", "https") or not parts.netloc:
        raise ConfigParseError(f"invalid URL (expected http:// or https://): {url!r}")
    try:
        prepared = requests.Request(method, url).prepare()
    except (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema,
            requests.exceptions.InvalidSchema) as e:
        raise ConfigParseError(f"invalid URL {url!r}: {e}") from e

    return RequestTemplate(method, prepared.url, headers if headers is not None else CaseInsensitiveDict(), body)


class Client:
    """Sends the template request and times it; safe to share across worker threads."""

    def __init__(self, template: RequestTemplate, parallel: int = 1,
                 timeout: Optional[float] = None, insecure: bool = False):
        self.template = template
        self.timeout = timeout
        self.insecure = insecure

        self.session = requests.Session()
        adapter = HTTPAdapter(pool_connections=1, pool_maxsize=max(parallel, 1))
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)
        self.session.headers["User-Agent"] = USER_AGENT
        self.session.verify = not insecure
        if insecure:
            warnings.simplefilter("ignore", InsecureRequestWarning)

        # Proxy/CA settings from the environment, resolved once for the fixed URL
        self._send_kwargs = self.session.merge_environment_settings(
            template.url, {}, True, self.session.verify, None
        )
        self._send_kwargs["stream"] = True

    def _prepare(self) -> requests.PreparedRequest:
        request = requests.Request(
            self.template.method, self.template.url,
            headers=self.template.headers, data=self.template.body,
        )
        return self.session.prepare_request(request)

    def send(self) -> Sample:
        prepared = self._prepare()

        timestamp_ns = time.time_ns()
        before = time.perf_counter_ns()
        try:
            # stream=True returns as soon as status and headers are read
            response = self.session.send(prepared, timeout=self.timeout, **self._send_kwargs)
            took_ns = time.perf_counter_ns() - before
            try:
                for _ in response.iter_content(chunk_size=65536):
                    pass
            finally:
                response.close()
        except requests.RequestException as e:
            logger.debug(f"{self.template.method} {self.template.url} failed: {e!r}")
            raise TransportError(f"{self.template.method} {self.template.url} failed: {e}", cause=e) from e

        logger.debug(f"{self.template.method} {self.template.url} -> {response.status_code} in {took_ns}ns")
        return Sample(response.status_code, took_ns, timestamp_ns)

    def close(self):
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
