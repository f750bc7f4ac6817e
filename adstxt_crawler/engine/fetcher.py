"""HTTP retrieval of a domain's ads.txt with scheme fallback."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable
from urllib.parse import urlparse

import httpx
import structlog

from ..config import HttpConfig
from ..errors import FetchError
from .parser import Parser, Record

ADS_TXT_PATH = "/ads.txt"
SCHEMES = ("https", "http")


@dataclass(slots=True)
class FetchResponse:
    """Parsed ads.txt of one domain and the response it came from."""

    domain: str
    url: str
    status_code: int
    records: list[Record] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300


def _describe(exc: Exception) -> str:
    return f"{type(exc).__name__}: {exc}"


def normalise_domain(entry: str) -> str:
    """Reduce a domain list entry to its bare host.

    Accepts ``example.com``, ``www.example.com/path``, ``https://example.com/``
    and ``http://example.com:8080/page`` alike.
    """

    entry = entry.strip()
    if not entry:
        return ""
    parsed = urlparse(entry if "://" in entry else "//" + entry)
    host = parsed.netloc or parsed.path
    host = host.split("/")[0].rsplit("@", 1)[-1]
    if host.startswith("["):
        return host.split("]")[0].lstrip("[").lower()
    return host.split(":")[0].strip().rstrip(".").lower()


def build_client(config: HttpConfig) -> httpx.Client:
    """Create the HTTP client shared by every worker of a run."""

    return httpx.Client(
        follow_redirects=config.follow_redirects,
        timeout=config.timeout,
        headers={"User-Agent": config.user_agent},
        limits=httpx.Limits(
            max_connections=config.max_connections,
            max_keepalive_connections=min(20, config.max_connections),
        ),
    )


class Fetcher:
    """Retrieve ``https://{domain}/ads.txt``, falling back to plain HTTP.

    Only transport failures (DNS, TLS, connect, timeouts, broken connections)
    trigger the HTTP attempt; any HTTP status, including 404, is final and its
    body is handed to the parser.
    """

    def __init__(
        self,
        config: HttpConfig | None = None,
        client: httpx.Client | None = None,
        parser: Parser | None = None,
        logger: structlog.BoundLogger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or HttpConfig()
        self._owns_client = client is None
        self._client = client or build_client(self.config)
        self.parser = parser or Parser()
        self.logger = logger or structlog.get_logger("adstxt_crawler.fetcher")
        self._clock = clock

    def __enter__(self) -> "Fetcher":
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._client.close()

    def fetch(self, domain: str, deadline: float | None = None) -> FetchResponse:
        host = normalise_domain(domain)
        if not host:
            raise FetchError(domain, None, "empty domain")

        primary, fallback = (f"{scheme}://{host}{ADS_TXT_PATH}" for scheme in SCHEMES)
        try:
            return self._attempt(host, primary, deadline)
        except httpx.TransportError as exc:
            self.logger.warning("fetch_fallback", domain=host, url=primary, error=_describe(exc))
        try:
            return self._attempt(host, fallback, deadline)
        except httpx.TransportError as exc:
            self.logger.warning("fetch_error", domain=host, url=fallback, error=_describe(exc))
            raise FetchError(host, fallback, exc) from exc

    # ------------------------------------------------------------------
    def _attempt(self, host: str, url: str, deadline: float | None) -> FetchResponse:
        timeout = self._remaining(deadline)
        if timeout is not None and timeout <= 0:
            raise FetchError(host, url, "run deadline exceeded")
        try:
            response = self._get(url, timeout)
        except httpx.TransportError:
            raise
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise FetchError(host, url, exc) from exc
        return self._to_response(host, response)

    def _get(self, url: str, timeout: float | None) -> httpx.Response:
        """GET ``url``; the whole body must arrive within ``timeout`` seconds.

        The client timeout only bounds each connect or read, so the wall-clock
        limit is checked per chunk and exceeding it raises ``httpx.ReadTimeout``.
        """

        limit = self.config.timeout if timeout is None else timeout
        expires = self._clock() + limit
        options = {} if timeout is None else {"timeout": timeout}
        body = bytearray()
        with self._client.stream("GET", url, **options) as response:
            for chunk in response.iter_bytes():
                body.extend(chunk)
                if self._clock() >= expires:
                    raise httpx.ReadTimeout(
                        f"response not complete within {limit:g}s", request=response.request
                    )
        return httpx.Response(
            response.status_code,
            headers={"Content-Type": response.headers.get("Content-Type", "text/plain")},
            content=bytes(body),
            request=response.request,
        )

    def _remaining(self, deadline: float | None) -> float | None:
        if deadline is None:
            return None
        return min(self.config.timeout, deadline - self._clock())

    def _to_response(self, host: str, response: httpx.Response) -> FetchResponse:
        if not response.is_success:
            self.logger.warning(
                "non_success_status",
                domain=host,
                url=str(response.url),
                status=response.status_code,
            )
        records = self.parser.parse(response.text)
        self.logger.debug("fetched", domain=host, url=str(response.url), records=len(records))
        return FetchResponse(
            domain=host,
            url=str(response.url),
            status_code=response.status_code,
            records=records,
        )


__all__ = ["ADS_TXT_PATH", "FetchResponse", "Fetcher", "build_client", "normalise_domain"]
