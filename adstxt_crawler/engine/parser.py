"""Line-oriented ads.txt parsing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import IO, Iterator, Union
from urllib.parse import urlparse

import httpx

from ..errors import FetchError, InvalidRecordError, ParseError

_BOM = "\ufeff"

ParseSource = Union[str, bytes, IO[str], IO[bytes]]


class AccountType(str, Enum):
    """Relationship between the seller account and the publisher."""

    DIRECT = "DIRECT"
    RESELLER = "RESELLER"
    OTHER = "OTHER"

    @classmethod
    def classify(cls, token: str) -> "AccountType":
        """Map a third-column token to an account type, OTHER when unknown."""

        normalised = token.strip().upper()
        if normalised == cls.DIRECT.value:
            return cls.DIRECT
        if normalised == cls.RESELLER.value:
            return cls.RESELLER
        return cls.OTHER

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True, slots=True)
class Record:
    """One authorisation row of an ads.txt file.

    All string fields are held in canonical form (trimmed, lower-cased).
    Two records match when exchange domain and publisher account id are equal;
    account type and authority id are informational only.
    """

    exchange_domain: str
    publisher_account_id: str
    account_type: AccountType = AccountType.OTHER
    authority_id: str = ""

    @property
    def key(self) -> tuple[str, str]:
        return self.exchange_domain, self.publisher_account_id

    def matches(self, other: "Record") -> bool:
        return self.key == other.key


def canonical(value: str) -> str:
    return value.strip().lower()


class Parser:
    """Turn raw ads.txt text into ordered :class:`Record` values.

    Malformed rows are skipped rather than reported. In ``strict`` mode a third
    column other than DIRECT/RESELLER raises :class:`InvalidRecordError`.
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict

    def parse(self, source: ParseSource) -> list[Record]:
        records: list[Record] = []
        for line_number, row in enumerate(self._iter_lines(source), start=1):
            record = self.parse_row(row, line_number=line_number)
            if record is not None:
                records.append(record)
        return records

    def parse_row(self, row: str, line_number: int = 1) -> Record | None:
        comment = row.find("#")
        if comment != -1:
            row = row[:comment]

        fields = [canonical(field) for field in row.split(",")]
        if len(fields) < 2 or len(fields) > 4:
            return None

        exchange_domain, publisher_account_id = fields[0], fields[1]
        if not exchange_domain or not publisher_account_id:
            return None

        account_type = AccountType.OTHER
        if len(fields) >= 3:
            account_type = AccountType.classify(fields[2])
            if self.strict and account_type is AccountType.OTHER:
                raise InvalidRecordError(line_number, fields[2])

        authority_id = fields[3] if len(fields) == 4 else ""
        return Record(
            exchange_domain=exchange_domain,
            publisher_account_id=publisher_account_id,
            account_type=account_type,
            authority_id=authority_id,
        )

    def _iter_lines(self, source: ParseSource) -> Iterator[str]:
        if isinstance(source, (str, bytes)):
            payload = source
        else:
            try:
                payload = source.read()
            except (OSError, ValueError) as exc:
                raise ParseError(f"could not read ads.txt input: {exc}", cause=exc) from exc
        if isinstance(payload, bytes):
            try:
                payload = payload.decode("utf-8-sig")
            except UnicodeDecodeError as exc:
                raise ParseError(f"ads.txt input is not valid UTF-8: {exc}", cause=exc) from exc
        yield from payload.removeprefix(_BOM).splitlines()


def parse(source: ParseSource, strict: bool = False) -> list[Record]:
    """Parse ads.txt text, bytes or a readable stream."""

    return Parser(strict=strict).parse(source)


def parse_from_url(
    url: str,
    client: httpx.Client | None = None,
    timeout: float = 10.0,
    strict: bool = False,
) -> list[Record]:
    """GET ``url`` and parse the body; transport errors and non-2xx are FetchError."""

    owns_client = client is None
    http = client or httpx.Client(follow_redirects=True, timeout=timeout)
    host = urlparse(url).hostname or url
    try:
        response = http.get(url, timeout=timeout)
        response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        raise FetchError(host, url, f"unexpected status {exc.response.status_code}") from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise FetchError(host, url, exc) from exc
    finally:
        if owns_client:
            http.close()
    return Parser(strict=strict).parse(response.text)


__all__ = ["AccountType", "Parser", "ParseSource", "Record", "canonical", "parse", "parse_from_url"]
