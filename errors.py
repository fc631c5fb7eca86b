from typing import Optional


class RushError(Exception):
    pass


class ConfigParseError(RushError, ValueError):
    """Raised for malformed configuration before any request is sent."""


class DurationParseError(ConfigParseError):
    def __init__(self, message: str, fragment: str):
        super().__init__(f"{message}: {fragment!r}")
        self.fragment = fragment


class TransportError(RushError):
    """A request failed below the HTTP layer (DNS, connect, TLS, timeout)."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class EmptyResultError(RushError):
    def __init__(self, message: str = "no result values"):
        super().__init__(message)
