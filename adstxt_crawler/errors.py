"""Exception hierarchy shared across the crawler."""

from __future__ import annotations


class AdsTxtError(Exception):
    """Base class for every error raised by adstxt-crawler."""


class ParseError(AdsTxtError):
    """The ads.txt input could not be read."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class InvalidRecordError(ParseError):
    """Raised in strict mode for an account type other than DIRECT or RESELLER."""

    def __init__(self, line_number: int, token: str) -> None:
        super().__init__(
            f"line {line_number}: account type is {token!r} and must be DIRECT or RESELLER"
        )
        self.line_number = line_number
        self.token = token


class FetchError(AdsTxtError):
    """A domain's ads.txt could not be retrieved over either scheme."""

    def __init__(self, domain: str, url: str | None, cause: BaseException | str) -> None:
        reason = cause if isinstance(cause, str) else f"{type(cause).__name__}: {cause}"
        super().__init__(f"could not get ads.txt for {domain or '<empty>'}: {reason}")
        self.domain = domain
        self.url = url
        self.cause = cause
        self.reason = reason


class StoreError(AdsTxtError):
    """The reference file or the domain list could not be loaded."""


class DeliveryError(AdsTxtError):
    """The report could not be delivered to its destination."""


__all__ = [
    "AdsTxtError",
    "DeliveryError",
    "FetchError",
    "InvalidRecordError",
    "ParseError",
    "StoreError",
]
